"""
Module: exchange.py
Description: Synchronous send-then-wait exchange over the delivery loop.

Turns the pump's push-based event stream into a single blocking call:
subscribe to both event kinds, run the send action, then poll until
the first message or the first delivery error shows up, or until the
retry budget runs out.

Key Components:
- ExchangeCoordinator: try_exchange() / exchange()
- _FirstEventSlot: Set-once cell written by broadcaster threads

Dependencies: tenacity, threading
"""

import threading
import time
from typing import Any, Callable, Optional

from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from harness.broadcaster import EventBroadcaster
from harness.outcome import ExchangeOutcome
from models.budget import RetryBudget
from models.message import TransportMessage
from utils.logger import get_logger

logger = get_logger(__name__)


class _FirstEventSlot:
    """Holds the first event handed to it; later events are ignored."""

    def __init__(self):
        self._lock = threading.Lock()
        self._filled = False
        self._value: Any = None

    def capture(self, event: Any) -> None:
        with self._lock:
            if not self._filled:
                self._value = event
                self._filled = True

    @property
    def filled(self) -> bool:
        with self._lock:
            return self._filled

    @property
    def value(self) -> Any:
        with self._lock:
            return self._value


class ExchangeCoordinator:
    """
    Blocks the caller until a send is observed by the delivery loop.

    Events are not correlated to the send: the first message or error
    published after subscription wins. Overlapping exchanges on one
    coordinator therefore see each other's events and are not
    supported; run exchanges sharing a coordinator one at a time.

    Example:
        >>> coordinator = ExchangeCoordinator(received, errors, RetryBudget())
        >>> message = coordinator.exchange(lambda: sqs_client.send(url, envelope))
    """

    def __init__(
        self,
        messages: EventBroadcaster,
        errors: EventBroadcaster,
        budget: Optional[RetryBudget] = None,
        sleep: Optional[Callable[[float], None]] = None
    ):
        """
        Initialize the coordinator.

        Args:
            messages: Broadcaster of delivered TransportMessage events
            errors: Broadcaster of delivery error events
            budget: Poll budget, defaults to RetryBudget()
            sleep: Sleep function used between polls (tests may inject one)
        """
        self.messages = messages
        self.errors = errors
        self.budget = budget or RetryBudget()
        self._sleep = sleep or time.sleep

    def try_exchange(self, send_action: Callable[[], Any]) -> ExchangeOutcome:
        """
        Run send_action and wait for the first resulting event.

        Exceptions raised by send_action propagate unchanged, after
        both subscriptions have been released.

        Args:
            send_action: Callable performing the send

        Returns:
            ExchangeOutcome describing what happened first
        """
        received = _FirstEventSlot()
        thrown = _FirstEventSlot()

        with self.messages.subscribe(received.capture), self.errors.subscribe(thrown.capture):
            send_action()
            attempts = self._wait_for_either(received, thrown)

        if thrown.filled:
            error = thrown.value
            logger.warning(
                "Exchange observed a delivery error",
                error=str(error),
                error_type=type(error).__name__,
                attempts=attempts
            )
            return ExchangeOutcome.failed(error, self.budget, attempts)

        if received.filled:
            message = received.value
            logger.debug("Exchange delivered", message_id=message.message_id, attempts=attempts)
            return ExchangeOutcome.delivered(message, self.budget, attempts)

        logger.warning(
            "Exchange timed out",
            max_attempts=self.budget.max_attempts,
            delay_seconds=self.budget.delay_seconds
        )
        return ExchangeOutcome.timed_out(self.budget, attempts)

    def exchange(self, send_action: Callable[[], Any]) -> TransportMessage:
        """
        Run send_action and return the delivered message.

        Raises:
            ExchangeTimeoutError: If nothing arrived within the budget
            Exception: The delivery error published by the pump, unchanged
        """
        return self.try_exchange(send_action).unwrap()

    def _wait_for_either(self, received: _FirstEventSlot, thrown: _FirstEventSlot) -> int:
        # One free check up front, then max_attempts delayed polls
        retrying = Retrying(
            sleep=self._sleep,
            stop=stop_after_attempt(self.budget.max_attempts + 1),
            wait=wait_fixed(self.budget.delay_seconds),
            retry=retry_if_result(lambda ready: not ready),
        )

        try:
            retrying(lambda: received.filled or thrown.filled)
        except RetryError:
            # Budget exhausted; the caller reads the empty slots as a timeout
            logger.debug("Exchange poll budget exhausted", max_attempts=self.budget.max_attempts)

        return max(retrying.statistics.get('attempt_number', 1) - 1, 0)
