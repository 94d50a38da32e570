"""Tests for the notification bus fan-out."""

import queue
import threading

import pytest

from floor_twin import NotificationBus


class TestFanOut:
    """Every subscriber sees every publication."""

    def test_same_object_to_all_subscribers(self):
        bus = NotificationBus("test")
        a = bus.subscribe()
        b = bus.subscribe()
        item = object()

        reached = bus.publish(item)

        assert reached == 2
        assert a.get(timeout=1) is item
        assert b.get(timeout=1) is item
        assert bus.published == 1

    def test_publish_without_subscribers(self):
        """Publishing with nobody listening is a no-op."""
        bus = NotificationBus("test")
        assert bus.publish("x") == 0
        assert bus.subscriber_count == 0

    def test_unsubscribe_stops_delivery(self):
        bus = NotificationBus("test")
        sub = bus.subscribe()
        bus.publish(1)

        assert bus.unsubscribe(sub) is True
        bus.publish(2)

        assert sub.drain() == [1]
        assert sub.closed is True
        assert bus.unsubscribe(sub) is False

    def test_context_manager_unsubscribes(self):
        bus = NotificationBus("test")
        with bus.subscribe() as sub:
            assert bus.subscriber_count == 1
        assert bus.subscriber_count == 0
        assert sub.closed is True

    def test_order_preserved(self):
        """Items arrive in publication order."""
        bus = NotificationBus("test")
        sub = bus.subscribe()
        for i in range(5):
            bus.publish(i)
        assert list(sub) == [0, 1, 2, 3, 4]


class TestSlowSubscriber:
    """A full mailbox never blocks the publisher or other subscribers."""

    def test_full_mailbox_drops_oldest(self):
        bus = NotificationBus("test")
        slow = bus.subscribe(maxsize=1)
        fast = bus.subscribe(maxsize=100)

        for i in range(10):
            bus.publish(i)

        assert slow.drain() == [9]
        assert slow.dropped == 9
        assert fast.drain() == list(range(10))
        assert fast.dropped == 0

    def test_publish_does_not_block_on_unread_subscriber(self):
        """A subscriber that never reads cannot stall the publishing thread."""
        bus = NotificationBus("test")
        bus.subscribe(maxsize=2)
        done = threading.Event()

        def publisher():
            for i in range(1000):
                bus.publish(i)
            done.set()

        thread = threading.Thread(target=publisher)
        thread.start()
        thread.join(timeout=5)

        assert done.is_set()

    def test_get_times_out_when_empty(self):
        bus = NotificationBus("test")
        sub = bus.subscribe()
        with pytest.raises(queue.Empty):
            sub.get(timeout=0.01)
        assert sub.pending() == 0
