"""
Module: conftest.py
Description: Shared pytest fixtures for harness tests.

Provides test settings, mocked SQS queues and clients, and common
error fixtures. Uses moto for AWS service mocking so the pump, drain
and exchange run against an in-memory SQS.
"""

import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from config.settings import Settings
from models.message import TransportMessage
from sqs_queue.sqs import QueueUrlCache, SQSClient

TEST_QUEUE_ADDRESS = "harness-test-queue"


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Disables .env loading and shortens every wait so that pump
    workers stop quickly and drains do not sleep between rounds.
    """
    return Settings(
        _env_file=None,
        aws_region="us-east-1",
        log_level="DEBUG",
        exchange_max_attempts=100,
        exchange_delay_seconds=0.05,
        drain_settle_seconds=0,
        receive_wait_seconds=0,
        idle_sleep_seconds=0.01,
        critical_failure_threshold=2,
        stop_timeout_seconds=5,
    )


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def mock_sqs(aws_credentials):
    """Activate moto for the duration of a test."""
    with mock_aws():
        yield


@pytest.fixture
def sqs_client(mock_sqs):
    """Provide an SQSClient talking to mocked SQS."""
    return SQSClient(region_name="us-east-1")


@pytest.fixture
def queue_url(sqs_client):
    """Create the test queue and return its URL."""
    return sqs_client.create_queue(TEST_QUEUE_ADDRESS)


@pytest.fixture
def url_cache(sqs_client, queue_url):
    """Provide a QueueUrlCache that resolves the test queue."""
    return QueueUrlCache(sqs_client)


@pytest.fixture
def ping_message():
    """A transport message whose body is 'ping'."""
    return TransportMessage(message_id="msg-ping", headers={"kind": "test"}, body="ping")


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError(
        error_response={'Error': {'Code': code, 'Message': 'Test error'}},
        operation_name=operation
    )


@pytest.fixture
def purge_in_progress_error():
    """The error SQS returns for a second purge inside 60 seconds."""
    return _client_error('AWS.SimpleQueueService.PurgeQueueInProgress', 'PurgeQueue')


@pytest.fixture
def access_denied_error():
    """A ClientError no part of the harness tolerates."""
    return _client_error('AccessDenied', 'PurgeQueue')
