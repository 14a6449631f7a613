"""
Package: sqs_queue
Description: SQS queue operations for the delivery harness.

Provides a synchronous boto3-backed client for sending, receiving,
deleting and purging messages, plus queue URL resolution.
"""

from .sqs import QueueUrlCache, ReceivedMessage, SQSClient, is_purge_in_progress

__all__ = ["QueueUrlCache", "ReceivedMessage", "SQSClient", "is_purge_in_progress"]
