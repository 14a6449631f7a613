"""
Module: delivery/dispatcher.py
Description: Sends transport messages to logical queue addresses.

Encodes a TransportMessage as the JSON envelope the pump decodes and
sends it to the queue resolved for the destination address.
"""

from dataclasses import dataclass

from models.message import TransportMessage
from sqs_queue.sqs import QueueUrlCache, SQSClient
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SendOptions:
    """Where a message goes."""

    destination: str


class MessageDispatcher:
    """
    Dispatches TransportMessages over SQS.

    Example:
        >>> dispatcher = MessageDispatcher(sqs_client, url_cache)
        >>> dispatcher.send(TransportMessage(body="ping"), SendOptions("orders"))
    """

    def __init__(self, sqs_client: SQSClient, url_cache: QueueUrlCache):
        self.sqs_client = sqs_client
        self.url_cache = url_cache

    def create_queue_if_necessary(self, address: str) -> str:
        """
        Provision the queue for an address and cache its URL.

        Returns:
            Queue URL
        """
        queue_url = self.sqs_client.create_queue(self.url_cache.queue_name(address))
        self.url_cache.remember(address, queue_url)
        return queue_url

    def send(self, message: TransportMessage, options: SendOptions) -> str:
        """
        Send a message to options.destination.

        Args:
            message: Message to send
            options: Send options carrying the destination address

        Returns:
            SQS message ID

        Raises:
            ValueError: If message is not a TransportMessage
            ClientError: If the queue cannot be resolved or the send fails
        """
        if not isinstance(message, TransportMessage):
            raise ValueError("message must be a TransportMessage instance")

        queue_url = self.url_cache.get_queue_url(options.destination)
        sqs_message_id = self.sqs_client.send(queue_url, message.to_envelope())

        logger.info(
            "Message dispatched",
            message_id=message.message_id,
            sqs_message_id=sqs_message_id,
            destination=options.destination
        )
        return sqs_message_id
