"""
Module: delivery/pump.py
Description: Background SQS receive loop pushing messages to callbacks.

Runs a fixed number of worker threads that long-poll the input queue,
decode each body into a TransportMessage and hand it to the message
callback. Per-message failures go to the error callback; repeated
receive failures and unexpected worker faults go to a separate
critical-error callback; workers keep running after reporting them.

Key Components:
- SQSMessagePump: init() -> start() -> stop() lifecycle
- PushSettings / PushRuntimeSettings: Input queue and concurrency
- PumpState: Lifecycle states

Dependencies: botocore, threading
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from harness.errors import CriticalPumpFault, MessageDecodeError
from models.message import TransportMessage
from sqs_queue.sqs import MAX_RECEIVE_BATCH, QueueUrlCache, ReceivedMessage, SQSClient
from utils.logger import get_logger

logger = get_logger(__name__)

OnMessage = Callable[[TransportMessage], None]
OnError = Callable[[Any, Optional[BaseException]], None]
OnCriticalError = Callable[[CriticalPumpFault], None]


class PumpState(str, Enum):
    CREATED = "created"
    INITIALIZED = "initialized"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PushSettings:
    """Input queue address and startup behaviour."""

    input_queue: str
    purge_on_startup: bool = False


@dataclass(frozen=True)
class PushRuntimeSettings:
    """Number of concurrent receive workers."""

    max_concurrency: int = 1

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")


class SQSMessagePump:
    """
    Continuously receives from one SQS queue on background threads.

    Decoded messages are deleted after the message callback returns.
    Bodies that cannot be decoded are reported through the error
    callback and deleted, since no retry can fix them. Messages whose
    callback raises are reported and left on the queue for redelivery
    once their visibility timeout expires.

    Example:
        >>> pump = SQSMessagePump(sqs_client, url_cache)
        >>> pump.init(on_message, on_error, on_critical, PushSettings("orders"))
        >>> pump.start(PushRuntimeSettings(max_concurrency=2))
        >>> pump.stop()
    """

    def __init__(
        self,
        sqs_client: SQSClient,
        url_cache: QueueUrlCache,
        receive_wait_seconds: int = 1,
        receive_batch_size: int = 10,
        visibility_timeout: Optional[int] = None,
        idle_sleep_seconds: float = 0.05,
        critical_failure_threshold: int = 5,
        stop_timeout_seconds: float = 30.0
    ):
        if critical_failure_threshold < 1:
            raise ValueError("critical_failure_threshold must be at least 1")
        if not 1 <= receive_batch_size <= MAX_RECEIVE_BATCH:
            raise ValueError(f"receive_batch_size must be between 1 and {MAX_RECEIVE_BATCH}")

        self.sqs_client = sqs_client
        self.url_cache = url_cache
        self.receive_wait_seconds = receive_wait_seconds
        self.receive_batch_size = receive_batch_size
        self.visibility_timeout = visibility_timeout
        self.idle_sleep_seconds = idle_sleep_seconds
        self.critical_failure_threshold = critical_failure_threshold
        self.stop_timeout_seconds = stop_timeout_seconds

        self.state = PumpState.CREATED
        self.queue_url: Optional[str] = None
        self._on_message: Optional[OnMessage] = None
        self._on_error: Optional[OnError] = None
        self._on_critical_error: Optional[OnCriticalError] = None
        self._stop_event = threading.Event()
        self._workers: List[threading.Thread] = []
        self._lock = threading.Lock()

    def init(
        self,
        on_message: OnMessage,
        on_error: OnError,
        on_critical_error: OnCriticalError,
        push_settings: PushSettings
    ) -> None:
        """
        Bind callbacks and resolve the input queue.

        Args:
            on_message: Called with each decoded TransportMessage
            on_error: Called with (message or raw body, exception) when
                decoding or on_message fails
            on_critical_error: Called with a CriticalPumpFault after
                repeated receive failures or an unexpected worker fault
            push_settings: Input queue and startup options

        Raises:
            RuntimeError: If the pump was already initialized
            ClientError: If the input queue cannot be resolved or purged
        """
        with self._lock:
            if self.state is not PumpState.CREATED:
                raise RuntimeError(f"pump cannot be initialized in state {self.state.value}")

            self.queue_url = self.url_cache.get_queue_url(push_settings.input_queue)
            if push_settings.purge_on_startup:
                self.sqs_client.purge(self.queue_url)

            self._on_message = on_message
            self._on_error = on_error
            self._on_critical_error = on_critical_error
            self.state = PumpState.INITIALIZED

        logger.info(
            "Message pump initialized",
            queue_url=self.queue_url,
            purge_on_startup=push_settings.purge_on_startup
        )

    def start(self, runtime_settings: PushRuntimeSettings) -> None:
        """
        Launch the receive workers.

        Raises:
            RuntimeError: If the pump is not initialized or already ran
        """
        with self._lock:
            if self.state is not PumpState.INITIALIZED:
                raise RuntimeError(f"pump cannot be started in state {self.state.value}")

            for index in range(runtime_settings.max_concurrency):
                worker = threading.Thread(
                    target=self._run_worker,
                    name=f"sqs-pump-{index}",
                    daemon=True
                )
                self._workers.append(worker)
                worker.start()
            self.state = PumpState.RUNNING

        logger.info(
            "Message pump started",
            queue_url=self.queue_url,
            max_concurrency=runtime_settings.max_concurrency
        )

    @property
    def live_workers(self) -> List[str]:
        """Names of worker threads still running."""
        return [worker.name for worker in self._workers if worker.is_alive()]

    def stop(self) -> None:
        """
        Signal all workers to exit and wait for them.

        Returns once in-flight receives have settled. Calling stop()
        again, or on a pump that never started, does nothing.
        """
        with self._lock:
            if self.state is not PumpState.RUNNING:
                if self.state is PumpState.INITIALIZED:
                    self.state = PumpState.STOPPED
                return
            self.state = PumpState.STOPPED
            workers = list(self._workers)

        self._stop_event.set()
        for worker in workers:
            worker.join(timeout=self.stop_timeout_seconds)
            if worker.is_alive():
                logger.warning("Worker did not stop in time", worker=worker.name)

        logger.info("Message pump stopped", queue_url=self.queue_url)

    def _run_worker(self) -> None:
        consecutive_failures = 0

        while not self._stop_event.is_set():
            try:
                messages = self.sqs_client.receive(
                    self.queue_url,
                    max_messages=self.receive_batch_size,
                    wait_seconds=self.receive_wait_seconds,
                    visibility_timeout=self.visibility_timeout
                )
            except (ClientError, BotoCoreError) as e:
                consecutive_failures += 1
                logger.warning(
                    "Receive failed",
                    queue_url=self.queue_url,
                    consecutive_failures=consecutive_failures,
                    error=str(e)
                )
                if consecutive_failures >= self.critical_failure_threshold:
                    self._raise_critical(consecutive_failures, e)
                    consecutive_failures = 0
                self._stop_event.wait(self.idle_sleep_seconds)
                continue
            except Exception as e:
                # Not a transport error: retrying the same call will not help
                consecutive_failures += 1
                self._raise_critical(consecutive_failures, e)
                consecutive_failures = 0
                self._stop_event.wait(self.idle_sleep_seconds)
                continue

            consecutive_failures = 0
            if not messages:
                if self.receive_wait_seconds == 0:
                    self._stop_event.wait(self.idle_sleep_seconds)
                continue

            for received in messages:
                try:
                    self._process(received)
                except Exception as e:
                    self._raise_critical(1, e)

    def _process(self, received: ReceivedMessage) -> None:
        try:
            message = TransportMessage.from_envelope(received.body)
        except ValueError as e:
            error = MessageDecodeError(received.body, str(e))
            logger.warning(
                "Discarding undecodable message",
                queue_url=self.queue_url,
                sqs_message_id=received.message_id,
                error=str(e)
            )
            self._report_error(received.body, error)
            self._delete(received)
            return

        try:
            self._on_message(message)
        except Exception as e:
            logger.warning(
                "Message handler failed, leaving message for redelivery",
                message_id=message.message_id,
                error=str(e),
                error_type=type(e).__name__
            )
            self._report_error(message, e)
            return

        logger.debug("Message processed", message_id=message.message_id)
        self._delete(received)

    def _report_error(self, subject: Any, error: BaseException) -> None:
        try:
            self._on_error(subject, error)
        except Exception as e:
            logger.error("Error callback failed", error=str(e), error_type=type(e).__name__)

    def _delete(self, received: ReceivedMessage) -> None:
        try:
            self.sqs_client.delete(self.queue_url, received.receipt_handle)
        except (ClientError, BotoCoreError) as e:
            # The message reappears after its visibility timeout
            logger.warning(
                "Failed to delete processed message",
                sqs_message_id=received.message_id,
                error=str(e),
                error_type=type(e).__name__
            )

    def _raise_critical(self, consecutive_failures: int, last_error: BaseException) -> None:
        fault = CriticalPumpFault(self.queue_url, consecutive_failures, last_error)
        fault.__cause__ = last_error
        logger.error(
            "Critical receive failure",
            queue_url=self.queue_url,
            consecutive_failures=consecutive_failures,
            error=str(last_error)
        )
        try:
            self._on_critical_error(fault)
        except Exception as e:
            logger.error("Critical error callback failed", error=str(e))
