"""Notification bus: fan-out of immutable events to independent subscribers."""

import itertools
import logging
import queue
import threading
from typing import Generic, Iterator, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription(Generic[T]):
    """A subscriber's handle: a bounded mailbox of published items.

    When the mailbox is full the oldest item is discarded, so publishing
    never waits on a slow reader.
    """

    def __init__(self, bus: "NotificationBus[T]", sub_id: int, maxsize: int):
        self.bus = bus
        self.id = sub_id
        self._queue: "queue.Queue[T]" = queue.Queue(maxsize=maxsize)
        self.dropped = 0
        self.closed = False

    def offer(self, item: T) -> None:
        """Enqueue without blocking, evicting the oldest item if full."""
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self.dropped += 1
                except queue.Empty:
                    pass

    def get(self, timeout: Optional[float] = None) -> T:
        """Wait for the next item.

        Raises:
            queue.Empty: If nothing arrives within the timeout
        """
        return self._queue.get(timeout=timeout)

    def drain(self) -> List[T]:
        """Return every pending item without waiting."""
        items = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        """Unsubscribe from the bus."""
        self.bus.unsubscribe(self)

    def __iter__(self) -> Iterator[T]:
        return iter(self.drain())

    def __enter__(self) -> "Subscription[T]":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class NotificationBus(Generic[T]):
    """Observer registry with explicit subscribe/unsubscribe handles.

    The bus has its own lock, separate from the simulation state lock, and
    never calls subscriber code, so a blocked subscriber cannot stall a tick.
    """

    def __init__(self, name: str = "bus", default_maxsize: int = 256):
        self.name = name
        self.default_maxsize = default_maxsize
        self._lock = threading.Lock()
        self._subscribers: List[Subscription[T]] = []
        self._ids = itertools.count(1)
        self.published = 0

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription[T]:
        """Register a new subscriber."""
        with self._lock:
            sub = Subscription(self, next(self._ids), maxsize or self.default_maxsize)
            self._subscribers.append(sub)
        logger.debug("%s: subscriber %d joined", self.name, sub.id)
        return sub

    def unsubscribe(self, subscription: Subscription[T]) -> bool:
        """Remove a subscriber. Returns False if it was not registered."""
        with self._lock:
            try:
                self._subscribers.remove(subscription)
            except ValueError:
                return False
            subscription.closed = True
        logger.debug("%s: subscriber %d left", self.name, subscription.id)
        return True

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, item: T) -> int:
        """Deliver the same item to every current subscriber.

        Returns:
            Number of subscribers reached
        """
        with self._lock:
            subscribers = list(self._subscribers)
            self.published += 1
        for sub in subscribers:
            sub.offer(item)
        return len(subscribers)
