"""
Module: broadcaster.py
Description: In-process multi-subscriber event broadcaster.

Fans one event out to every current subscriber, synchronously and in
subscription order. Pump workers publish from their own threads, so
the subscriber list is guarded by a lock and handlers run on a
snapshot taken under it.

Key Components:
- EventBroadcaster: publish / subscribe / unsubscribe
- Subscription: Disposable token, usable as a context manager

Dependencies: threading, itertools
"""

import itertools
import threading
from typing import Any, Callable, Generic, List, Tuple, TypeVar

from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Handler = Callable[[Any], None]


class Subscription:
    """
    Handle returned by EventBroadcaster.subscribe().

    Disposing twice is a no-op. Using the token in a with-block
    unsubscribes on exit, whatever the exit path.
    """

    def __init__(self, broadcaster: "EventBroadcaster", token: int):
        self._broadcaster = broadcaster
        self.token = token

    def dispose(self) -> None:
        self._broadcaster.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()


class EventBroadcaster(Generic[T]):
    """
    Push-based notification channel for one kind of event.

    No buffering: a handler subscribed after an event was published
    never sees it. A handler that raises is logged and skipped; the
    remaining handlers are still notified and publish() never raises
    because of a subscriber.

    Example:
        >>> received = EventBroadcaster("received_messages")
        >>> with received.subscribe(print):
        ...     received.publish("ping")
        ping
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: List[Tuple[int, Handler]] = []
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def subscribe(self, handler: Callable[[T], None]) -> Subscription:
        """
        Register a handler for future events.

        Args:
            handler: Callable invoked with each published event

        Returns:
            Subscription token for unsubscribe()
        """
        if not callable(handler):
            raise ValueError("handler must be callable")

        with self._lock:
            token = next(self._tokens)
            self._handlers.append((token, handler))

        logger.debug("Subscriber added", broadcaster=self.name, token=token)
        return Subscription(self, token)

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a handler. Unknown or already removed tokens are ignored."""
        with self._lock:
            # Rebinding instead of mutating keeps in-flight snapshots intact
            self._handlers = [
                (token, handler)
                for token, handler in self._handlers
                if token != subscription.token
            ]

        logger.debug("Subscriber removed", broadcaster=self.name, token=subscription.token)

    def publish(self, event: T) -> None:
        """
        Deliver an event to every current subscriber.

        Returns once every handler in the snapshot has been called.

        Args:
            event: Event value passed to each handler
        """
        with self._lock:
            snapshot = self._handlers

        for token, handler in snapshot:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    "Subscriber failed while handling event",
                    broadcaster=self.name,
                    token=token,
                    error=str(e),
                    error_type=type(e).__name__
                )
