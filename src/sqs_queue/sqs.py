"""
Module: sqs.py
Description: SQS client for harness queue operations.

Wraps the boto3 SQS client with the narrow set of primitives the
harness consumes: send, receive, delete, purge and queue resolution.
Every failure is logged with its AWS error code and re-raised.

Key Components:
- SQSClient: Thread-safe wrapper over a boto3 SQS client
- ReceivedMessage: Body and receipt handle of one received message
- QueueUrlCache: Logical address to queue URL resolution with caching
- is_purge_in_progress(): Detects the purge rate-limit rejection

Dependencies: boto3, botocore
"""

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from utils.logger import get_logger

logger = get_logger(__name__)

PURGE_IN_PROGRESS_CODES = frozenset({
    'AWS.SimpleQueueService.PurgeQueueInProgress',
    'PurgeQueueInProgress',
})

# SQS caps a single ReceiveMessage call at ten messages
MAX_RECEIVE_BATCH = 10


def is_purge_in_progress(error: ClientError) -> bool:
    """Return True if a purge was rejected because one already runs."""
    return error.response.get('Error', {}).get('Code') in PURGE_IN_PROGRESS_CODES


@dataclass(frozen=True)
class ReceivedMessage:
    """One message returned by ReceiveMessage."""

    body: str
    receipt_handle: str
    message_id: str


class SQSClient:
    """
    SQS client for harness queue operations.

    boto3 low-level clients are thread-safe, so a single instance is
    shared by the drain, the dispatcher and every pump worker.

    Example:
        >>> client = SQSClient(region_name="us-east-1")
        >>> url = client.create_queue("orders")
        >>> client.send(url, "ping")
    """

    def __init__(
        self,
        region_name: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        client=None
    ):
        """
        Initialize SQS client.

        Args:
            region_name: AWS region of the queues
            endpoint_url: Optional endpoint override
            client: Pre-built boto3 SQS client (takes precedence)
        """
        if not region_name or not isinstance(region_name, str):
            raise ValueError("region_name must be a non-empty string")

        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.sqs = client or boto3.client(
            'sqs',
            region_name=region_name,
            endpoint_url=endpoint_url
        )

        logger.info(
            "SQS client initialized",
            region_name=region_name,
            endpoint_url=endpoint_url
        )

    def create_queue(self, queue_name: str) -> str:
        """
        Create a queue if it does not exist yet.

        CreateQueue is idempotent for identical attributes, so calling
        this for an existing queue returns its URL.

        Args:
            queue_name: Name of the queue

        Returns:
            Queue URL

        Raises:
            ClientError: If SQS operation fails
            ValueError: If queue_name is invalid
        """
        if not queue_name or not isinstance(queue_name, str):
            raise ValueError("queue_name must be a non-empty string")

        try:
            response = self.sqs.create_queue(QueueName=queue_name)
            queue_url = response['QueueUrl']
            logger.info("Queue created if necessary", queue_name=queue_name, queue_url=queue_url)
            return queue_url

        except ClientError as e:
            logger.error(
                "Failed to create queue",
                queue_name=queue_name,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

    def get_queue_url(self, queue_name: str) -> str:
        """Resolve a queue name to its URL."""
        if not queue_name or not isinstance(queue_name, str):
            raise ValueError("queue_name must be a non-empty string")

        try:
            return self.sqs.get_queue_url(QueueName=queue_name)['QueueUrl']

        except ClientError as e:
            logger.error(
                "Failed to resolve queue URL",
                queue_name=queue_name,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

    def send(self, queue_url: str, raw_body: str) -> str:
        """
        Send a raw body to a queue.

        Args:
            queue_url: Destination queue URL
            raw_body: Message body, sent as-is

        Returns:
            Message ID from SQS

        Raises:
            ClientError: If SQS operation fails
            ValueError: If parameters are invalid
        """
        if not queue_url or not isinstance(queue_url, str):
            raise ValueError("queue_url must be a non-empty string")
        if not isinstance(raw_body, str) or not raw_body:
            raise ValueError("raw_body must be a non-empty string")

        try:
            response = self.sqs.send_message(QueueUrl=queue_url, MessageBody=raw_body)
            message_id = response['MessageId']
            logger.debug("Message sent to SQS", message_id=message_id, queue_url=queue_url)
            return message_id

        except ClientError as e:
            logger.error(
                "Failed to send message to SQS",
                queue_url=queue_url,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

    def receive(
        self,
        queue_url: str,
        max_messages: int = MAX_RECEIVE_BATCH,
        wait_seconds: int = 0,
        visibility_timeout: Optional[int] = None
    ) -> List[ReceivedMessage]:
        """
        Receive up to max_messages messages.

        Args:
            queue_url: Source queue URL
            max_messages: Batch size, 1 to 10
            wait_seconds: Long poll wait, 0 to 20
            visibility_timeout: Optional visibility timeout override

        Returns:
            Received messages, possibly empty

        Raises:
            ClientError: If SQS operation fails
            ValueError: If max_messages is out of range
        """
        if not 1 <= max_messages <= MAX_RECEIVE_BATCH:
            raise ValueError(f"max_messages must be between 1 and {MAX_RECEIVE_BATCH}")

        request = {
            'QueueUrl': queue_url,
            'MaxNumberOfMessages': max_messages,
            'WaitTimeSeconds': wait_seconds,
        }
        if visibility_timeout is not None:
            request['VisibilityTimeout'] = visibility_timeout

        try:
            response = self.sqs.receive_message(**request)

        except ClientError as e:
            logger.error(
                "Failed to receive messages from SQS",
                queue_url=queue_url,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

        return [
            ReceivedMessage(
                body=m['Body'],
                receipt_handle=m['ReceiptHandle'],
                message_id=m['MessageId']
            )
            for m in response.get('Messages', [])
        ]

    def delete(self, queue_url: str, receipt_handle: str) -> None:
        """Delete one received message by its receipt handle."""
        try:
            self.sqs.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)

        except ClientError as e:
            logger.error(
                "Failed to delete message from SQS",
                queue_url=queue_url,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

    def purge(self, queue_url: str) -> None:
        """
        Purge a queue.

        SQS allows one purge per queue every 60 seconds; a second
        request inside that window fails with PurgeQueueInProgress,
        which is logged at warning level and re-raised like any other
        ClientError.
        """
        try:
            self.sqs.purge_queue(QueueUrl=queue_url)
            logger.info("Queue purged", queue_url=queue_url)

        except ClientError as e:
            log = logger.warning if is_purge_in_progress(e) else logger.error
            log(
                "Failed to purge queue",
                queue_url=queue_url,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

    def approximate_message_count(self, queue_url: str) -> int:
        """Return ApproximateNumberOfMessages for a queue."""
        try:
            response = self.sqs.get_queue_attributes(
                QueueUrl=queue_url,
                AttributeNames=['ApproximateNumberOfMessages']
            )
            return int(response['Attributes']['ApproximateNumberOfMessages'])

        except ClientError as e:
            logger.error(
                "Failed to read queue attributes",
                queue_url=queue_url,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        self.sqs.close()


class QueueUrlCache:
    """
    Resolves logical queue addresses to URLs, caching each lookup.

    The configured prefix is prepended to the address to form the
    queue name, so several harness runs can share one account.
    """

    def __init__(self, sqs_client: SQSClient, queue_name_prefix: str = ""):
        self.sqs_client = sqs_client
        self.queue_name_prefix = queue_name_prefix
        self._urls: Dict[str, str] = {}
        self._lock = threading.Lock()

    def queue_name(self, address: str) -> str:
        if not address or not isinstance(address, str):
            raise ValueError("address must be a non-empty string")
        return f"{self.queue_name_prefix}{address}"

    def get_queue_url(self, address: str) -> str:
        """
        Resolve an address to its queue URL.

        Args:
            address: Logical queue address

        Returns:
            Queue URL

        Raises:
            ClientError: If the queue does not exist
        """
        with self._lock:
            cached = self._urls.get(address)
        if cached is not None:
            return cached

        queue_url = self.sqs_client.get_queue_url(self.queue_name(address))
        with self._lock:
            self._urls[address] = queue_url

        logger.debug("Queue URL resolved", address=address, queue_url=queue_url)
        return queue_url

    def remember(self, address: str, queue_url: str) -> None:
        """Seed the cache, e.g. with the URL returned by CreateQueue."""
        with self._lock:
            self._urls[address] = queue_url
