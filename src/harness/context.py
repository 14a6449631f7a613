"""
Module: context.py
Description: Fixture-scoped harness wiring a live SQS pump to test code.

One SQSTestContext owns the SQS client, queue URL cache, dispatcher,
message pump and the broadcasters the pump reports into. Tests drain
the endpoint queue, start dequeueing, then run synchronous exchanges
against the running pump.

Key Components:
- SQSTestContext: create_queue / purge_queue / init_and_start_dequeueing
  / send_raw_and_receive_message / send_and_receive_message / close

Dependencies: config, delivery, sqs_queue, harness
"""

from typing import Optional

from config.settings import Settings, settings as default_settings
from delivery.dispatcher import MessageDispatcher, SendOptions
from delivery.pump import PushRuntimeSettings, PushSettings, SQSMessagePump
from harness.broadcaster import EventBroadcaster
from harness.drain import DrainReport, QueueDrainer
from harness.errors import CriticalPumpFault
from harness.exchange import ExchangeCoordinator
from models.message import TransportMessage
from sqs_queue.sqs import QueueUrlCache, SQSClient
from utils.logger import get_logger

logger = get_logger(__name__)


class SQSTestContext:
    """
    Test fixture context around one endpoint queue.

    Not thread safe: exchanges made through one context must not
    overlap, because each exchange takes the first event published
    after it subscribes.

    The broadcasters are created with the context and outlive the
    pump; close() stops the workers before releasing the client.

    Example:
        >>> with SQSTestContext("OrderTests") as context:
        ...     context.create_queue()
        ...     context.purge_queue()
        ...     context.init_and_start_dequeueing()
        ...     received = context.send_raw_and_receive_message(envelope)
    """

    def __init__(
        self,
        endpoint_name: str,
        config: Optional[Settings] = None,
        sqs_client: Optional[SQSClient] = None
    ):
        """
        Build the context.

        Args:
            endpoint_name: Logical address of the endpoint queue
            config: Harness settings, defaults to the global settings
            sqs_client: Pre-built client (defaults to one from config)
        """
        if not endpoint_name or not isinstance(endpoint_name, str):
            raise ValueError("endpoint_name must be a non-empty string")

        self.config = config or default_settings
        self.address = endpoint_name

        self.sqs_client = sqs_client or SQSClient(
            region_name=self.config.aws_region,
            endpoint_url=self.config.sqs_endpoint_url
        )
        self.queue_url_cache = QueueUrlCache(self.sqs_client, self.config.queue_name_prefix)
        self.dispatcher = MessageDispatcher(self.sqs_client, self.queue_url_cache)
        self.message_pump = SQSMessagePump(
            self.sqs_client,
            self.queue_url_cache,
            receive_wait_seconds=self.config.receive_wait_seconds,
            receive_batch_size=self.config.receive_batch_size,
            visibility_timeout=self.config.visibility_timeout_seconds,
            idle_sleep_seconds=self.config.idle_sleep_seconds,
            critical_failure_threshold=self.config.critical_failure_threshold,
            stop_timeout_seconds=self.config.stop_timeout_seconds
        )
        self.drainer = QueueDrainer(
            self.sqs_client,
            settle_seconds=self.config.drain_settle_seconds,
            batch_size=self.config.drain_batch_size
        )

        self.received_messages: EventBroadcaster[TransportMessage] = EventBroadcaster("received_messages")
        self.exceptions_thrown_by_receiver: EventBroadcaster[BaseException] = EventBroadcaster(
            "exceptions_thrown_by_receiver"
        )
        self.critical_errors_thrown_by_receiver: EventBroadcaster[CriticalPumpFault] = EventBroadcaster(
            "critical_errors_thrown_by_receiver"
        )
        self.coordinator = ExchangeCoordinator(
            self.received_messages,
            self.exceptions_thrown_by_receiver,
            self.config.retry_budget()
        )
        self._closed = False

    @property
    def queue_url(self) -> str:
        return self.queue_url_cache.get_queue_url(self.address)

    def create_queue(self) -> str:
        """Provision the endpoint queue if it does not exist."""
        return self.dispatcher.create_queue_if_necessary(self.address)

    def purge_queue(self) -> DrainReport:
        """Drain the endpoint queue, tolerating the purge rate limit."""
        return self.drainer.drain(self.queue_url)

    def init_and_start_dequeueing(self) -> None:
        """Initialize the pump with broadcasting callbacks and start it."""
        self.message_pump.init(
            on_message=self.received_messages.publish,
            on_error=self._on_receive_error,
            on_critical_error=self.critical_errors_thrown_by_receiver.publish,
            push_settings=PushSettings(input_queue=self.address)
        )
        self.message_pump.start(PushRuntimeSettings(max_concurrency=self.config.max_concurrency))

    def send_raw_and_receive_message(self, raw_message: str) -> TransportMessage:
        """
        Put a raw body on the endpoint queue and wait for the pump.

        Raises:
            ExchangeTimeoutError: If the pump reported nothing in time
            Exception: The error the pump raised for the message
        """
        return self.coordinator.exchange(
            lambda: self.sqs_client.send(self.queue_url, raw_message)
        )

    def send_and_receive_message(self, message: TransportMessage) -> TransportMessage:
        """Dispatch a message to the endpoint and wait for the pump."""
        return self.coordinator.exchange(
            lambda: self.dispatcher.send(message, SendOptions(destination=self.address))
        )

    def close(self) -> None:
        """Stop the pump, then release the SQS client once no worker uses it."""
        if self._closed:
            return
        self._closed = True

        self.message_pump.stop()
        live_workers = self.message_pump.live_workers
        if live_workers:
            # A worker still inside receive() would hit a closed client
            logger.warning(
                "Leaving SQS client open, workers still running",
                address=self.address,
                workers=live_workers
            )
            return

        self.sqs_client.close()
        logger.info("Test context closed", address=self.address)

    def __enter__(self) -> "SQSTestContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _on_receive_error(self, subject, error: Optional[BaseException]) -> None:
        if error is not None:
            self.exceptions_thrown_by_receiver.publish(error)
