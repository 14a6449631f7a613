"""
Module: test_sqs.py
Description: Unit tests for SQSClient and QueueUrlCache.

Exercises the boto3 wrapper against moto SQS and checks error
propagation with patched low-level client calls.
"""

from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from sqs_queue.sqs import QueueUrlCache, SQSClient, is_purge_in_progress


class TestSQSClient:
    """Test cases for SQSClient operations."""

    def test_client_initialization_invalid_region(self):
        """Test SQSClient rejects an empty region."""
        with pytest.raises(ValueError, match="region_name must be a non-empty string"):
            SQSClient(region_name="")

    def test_create_queue_is_idempotent(self, sqs_client):
        """Test creating an existing queue returns the same URL."""
        first = sqs_client.create_queue("orders")
        second = sqs_client.create_queue("orders")

        assert first == second
        assert sqs_client.get_queue_url("orders") == first

    def test_send_receive_delete(self, sqs_client, queue_url):
        """Test a sent body is received and gone after delete."""
        message_id = sqs_client.send(queue_url, "ping")

        messages = sqs_client.receive(queue_url, max_messages=5)

        assert len(messages) == 1
        assert messages[0].body == "ping"
        assert messages[0].message_id == message_id

        sqs_client.delete(queue_url, messages[0].receipt_handle)
        assert sqs_client.approximate_message_count(queue_url) == 0

    def test_receive_empty_returns_empty_list(self, sqs_client, queue_url):
        """Test receiving from an empty queue returns []."""
        assert sqs_client.receive(queue_url, max_messages=1) == []

    def test_receive_passes_visibility_timeout(self, sqs_client, queue_url):
        """Test the optional visibility timeout reaches ReceiveMessage."""
        with patch.object(sqs_client.sqs, 'receive_message', return_value={}) as mock_receive:
            sqs_client.receive(queue_url, max_messages=2, wait_seconds=3, visibility_timeout=7)

        mock_receive.assert_called_once_with(
            QueueUrl=queue_url,
            MaxNumberOfMessages=2,
            WaitTimeSeconds=3,
            VisibilityTimeout=7
        )

    @pytest.mark.parametrize("max_messages", [0, 11])
    def test_receive_invalid_batch(self, sqs_client, queue_url, max_messages):
        """Test batch sizes outside 1..10 are rejected."""
        with pytest.raises(ValueError, match="max_messages must be between 1 and 10"):
            sqs_client.receive(queue_url, max_messages=max_messages)

    def test_send_invalid_parameters(self, sqs_client, queue_url):
        """Test send rejects empty URLs and bodies."""
        with pytest.raises(ValueError, match="queue_url must be a non-empty string"):
            sqs_client.send("", "ping")

        with pytest.raises(ValueError, match="raw_body must be a non-empty string"):
            sqs_client.send(queue_url, "")

    def test_purge_empties_queue(self, sqs_client, queue_url):
        """Test purge removes queued messages."""
        sqs_client.send(queue_url, "one")
        sqs_client.send(queue_url, "two")

        sqs_client.purge(queue_url)

        assert sqs_client.approximate_message_count(queue_url) == 0

    def test_purge_in_progress_is_reraised(self, sqs_client, queue_url, purge_in_progress_error):
        """Test the purge rate-limit error propagates from the client."""
        with patch.object(sqs_client.sqs, 'purge_queue', side_effect=purge_in_progress_error):
            with pytest.raises(ClientError) as exc_info:
                sqs_client.purge(queue_url)

        assert is_purge_in_progress(exc_info.value)

    def test_send_error_is_reraised(self, sqs_client, queue_url):
        """Test send failures propagate as ClientError."""
        error = ClientError(
            error_response={'Error': {'Code': 'InvalidMessageContents', 'Message': 'Test error'}},
            operation_name='SendMessage'
        )
        with patch.object(sqs_client.sqs, 'send_message', side_effect=error):
            with pytest.raises(ClientError):
                sqs_client.send(queue_url, "ping")

    def test_get_queue_url_missing_queue(self, sqs_client):
        """Test resolving an unknown queue raises ClientError."""
        with pytest.raises(ClientError):
            sqs_client.get_queue_url("does-not-exist")


class TestIsPurgeInProgress:
    """Test cases for purge rate-limit detection."""

    @pytest.mark.parametrize("code", [
        'AWS.SimpleQueueService.PurgeQueueInProgress',
        'PurgeQueueInProgress',
    ])
    def test_recognized_codes(self, code):
        """Test both spellings of the error code are recognized."""
        error = ClientError({'Error': {'Code': code, 'Message': 'x'}}, 'PurgeQueue')
        assert is_purge_in_progress(error)

    def test_other_codes(self, access_denied_error):
        """Test unrelated codes are not treated as in-progress."""
        assert not is_purge_in_progress(access_denied_error)


class TestQueueUrlCache:
    """Test cases for QueueUrlCache."""

    def test_resolves_with_prefix(self, sqs_client):
        """Test the prefix is prepended to the address."""
        queue_url = sqs_client.create_queue("ci-orders")
        cache = QueueUrlCache(sqs_client, queue_name_prefix="ci-")

        assert cache.queue_name("orders") == "ci-orders"
        assert cache.get_queue_url("orders") == queue_url

    def test_lookup_is_cached(self, sqs_client, queue_url):
        """Test GetQueueUrl is called once per address."""
        cache = QueueUrlCache(sqs_client)

        with patch.object(sqs_client, 'get_queue_url', wraps=sqs_client.get_queue_url) as mock_get:
            first = cache.get_queue_url("harness-test-queue")
            second = cache.get_queue_url("harness-test-queue")

        assert first == second == queue_url
        mock_get.assert_called_once_with("harness-test-queue")

    def test_remember_seeds_cache(self, sqs_client):
        """Test remembered URLs are returned without a lookup."""
        cache = QueueUrlCache(sqs_client)
        cache.remember("orders", "https://example/orders")

        with patch.object(sqs_client, 'get_queue_url') as mock_get:
            assert cache.get_queue_url("orders") == "https://example/orders"

        mock_get.assert_not_called()

    def test_invalid_address(self, sqs_client):
        """Test empty addresses are rejected."""
        with pytest.raises(ValueError, match="address must be a non-empty string"):
            QueueUrlCache(sqs_client).get_queue_url("")
