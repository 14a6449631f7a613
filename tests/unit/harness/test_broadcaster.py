"""
Module: test_broadcaster.py
Description: Unit tests for EventBroadcaster.

Covers fan-out order, absence of buffering, unsubscribe semantics,
failing subscribers and concurrent publishers.
"""

import threading

import pytest

from harness.broadcaster import EventBroadcaster


class TestEventBroadcaster:
    """Test cases for EventBroadcaster."""

    def test_publish_reaches_subscribers_in_order(self):
        """Test every subscriber is called, in subscription order."""
        broadcaster = EventBroadcaster("test")
        calls = []

        broadcaster.subscribe(lambda e: calls.append(("first", e)))
        broadcaster.subscribe(lambda e: calls.append(("second", e)))
        broadcaster.publish("ping")

        assert calls == [("first", "ping"), ("second", "ping")]

    def test_no_buffering_for_late_subscribers(self):
        """Test events published before subscribing are never seen."""
        broadcaster = EventBroadcaster("test")
        seen = []

        broadcaster.publish("early")
        broadcaster.subscribe(seen.append)
        broadcaster.publish("late")

        assert seen == ["late"]

    def test_unsubscribe_stops_delivery(self):
        """Test an unsubscribed handler gets no further events."""
        broadcaster = EventBroadcaster("test")
        seen = []

        subscription = broadcaster.subscribe(seen.append)
        broadcaster.publish(1)
        broadcaster.unsubscribe(subscription)
        broadcaster.publish(2)

        assert seen == [1]
        assert broadcaster.subscriber_count == 0

    def test_unsubscribe_is_idempotent(self):
        """Test disposing a subscription twice is a no-op."""
        broadcaster = EventBroadcaster("test")
        keep = broadcaster.subscribe(lambda e: None)
        drop = broadcaster.subscribe(lambda e: None)

        drop.dispose()
        drop.dispose()

        assert broadcaster.subscriber_count == 1
        keep.dispose()
        assert broadcaster.subscriber_count == 0

    def test_subscription_context_manager(self):
        """Test a with-block unsubscribes even when it raises."""
        broadcaster = EventBroadcaster("test")

        with pytest.raises(RuntimeError):
            with broadcaster.subscribe(lambda e: None):
                assert broadcaster.subscriber_count == 1
                raise RuntimeError("boom")

        assert broadcaster.subscriber_count == 0

    def test_failing_subscriber_does_not_block_others(self):
        """Test a raising handler is swallowed and later handlers still run."""
        broadcaster = EventBroadcaster("test")
        seen = []

        def explode(event):
            raise ValueError("subscriber bug")

        broadcaster.subscribe(explode)
        broadcaster.subscribe(seen.append)

        broadcaster.publish("ping")

        assert seen == ["ping"]

    def test_unsubscribe_during_publish(self):
        """Test a handler removing itself mid-notification skips nobody."""
        broadcaster = EventBroadcaster("test")
        seen = []
        subscriptions = {}

        def once(event):
            seen.append(("once", event))
            subscriptions["once"].dispose()

        subscriptions["once"] = broadcaster.subscribe(once)
        broadcaster.subscribe(lambda e: seen.append(("always", e)))

        broadcaster.publish(1)
        broadcaster.publish(2)

        assert seen == [("once", 1), ("always", 1), ("always", 2)]

    def test_handler_unsubscribing_a_later_handler(self):
        """Test removing another handler mid-publish does not crash."""
        broadcaster = EventBroadcaster("test")
        seen = []
        subscriptions = {}

        broadcaster.subscribe(lambda e: subscriptions["later"].dispose())
        subscriptions["later"] = broadcaster.subscribe(seen.append)

        broadcaster.publish(1)
        broadcaster.publish(2)

        # The in-flight notification already holds its snapshot
        assert seen == [1]

    def test_concurrent_publishers(self):
        """Test publishing from many threads delivers every event once."""
        broadcaster = EventBroadcaster("test")
        seen = []
        lock = threading.Lock()

        def record(event):
            with lock:
                seen.append(event)

        broadcaster.subscribe(record)

        def publish_range(start):
            for i in range(start, start + 100):
                broadcaster.publish(i)

        threads = [threading.Thread(target=publish_range, args=(n * 100,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(seen) == list(range(800))

    def test_subscribe_requires_callable(self):
        """Test subscribe rejects non-callables."""
        with pytest.raises(ValueError, match="handler must be callable"):
            EventBroadcaster("test").subscribe("not callable")
