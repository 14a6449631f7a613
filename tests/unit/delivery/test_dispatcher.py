"""
Module: test_dispatcher.py
Description: Unit tests for MessageDispatcher.
"""

import json

import pytest
from botocore.exceptions import ClientError

from delivery.dispatcher import MessageDispatcher, SendOptions
from sqs_queue.sqs import QueueUrlCache


class TestMessageDispatcher:
    """Test cases for MessageDispatcher."""

    def test_send_writes_envelope(self, sqs_client, queue_url, url_cache, ping_message):
        """Test the queued body is the message envelope."""
        dispatcher = MessageDispatcher(sqs_client, url_cache)

        sqs_message_id = dispatcher.send(ping_message, SendOptions(destination="harness-test-queue"))

        received = sqs_client.receive(queue_url, max_messages=1)
        assert received[0].message_id == sqs_message_id
        assert json.loads(received[0].body)["body"] == "ping"

    def test_send_rejects_non_messages(self, sqs_client, url_cache):
        """Test only TransportMessage instances can be sent."""
        dispatcher = MessageDispatcher(sqs_client, url_cache)

        with pytest.raises(ValueError, match="message must be a TransportMessage instance"):
            dispatcher.send({"body": "ping"}, SendOptions(destination="harness-test-queue"))

    def test_send_to_unknown_destination(self, sqs_client, url_cache, ping_message):
        """Test sending to a queue that does not exist raises ClientError."""
        dispatcher = MessageDispatcher(sqs_client, url_cache)

        with pytest.raises(ClientError):
            dispatcher.send(ping_message, SendOptions(destination="nowhere"))

    def test_create_queue_if_necessary(self, sqs_client):
        """Test provisioning creates the prefixed queue and caches its URL."""
        cache = QueueUrlCache(sqs_client, queue_name_prefix="ci-")
        dispatcher = MessageDispatcher(sqs_client, cache)

        queue_url = dispatcher.create_queue_if_necessary("billing")

        assert sqs_client.get_queue_url("ci-billing") == queue_url
        assert cache.get_queue_url("billing") == queue_url
