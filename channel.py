"""Process-wide "link changed" broadcast.

Each subscriber owns an unbounded queue, so publishing never waits on a slow
or absent reader. A subscriber sees every event published after it
subscribed, in publish order; nothing is replayed.
"""
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional

from logging_config import get_logger

logger = get_logger(__name__)


class LinkChangeCause(str, Enum):
    GENERATED = "generated"
    MANUAL_SET = "manual_set"
    LOADED = "loaded"


@dataclass(frozen=True)
class ChangeEvent:
    url: str = field(repr=False)
    caused_by: LinkChangeCause


class Subscription:
    def __init__(self, channel: "NotificationChannel"):
        self._channel = channel
        self._queue: "queue.SimpleQueue[ChangeEvent]" = queue.SimpleQueue()
        self.closed = False

    def _deliver(self, event: ChangeEvent) -> None:
        self._queue.put_nowait(event)

    def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Next event, or None if ``timeout`` elapses (or the subscription is closed and drained)."""
        if self.closed and self._queue.empty():
            return None
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def get_nowait(self) -> Optional[ChangeEvent]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._channel._unsubscribe(self)

    def __iter__(self) -> Iterator[ChangeEvent]:
        """Drain events that are already queued."""
        while True:
            event = self.get_nowait()
            if event is None:
                return
            yield event

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class NotificationChannel:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: List[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        with self._lock:
            self._subscribers.append(subscription)
        logger.debug(f"New link subscriber ({self.subscriber_count} active)")
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)
        logger.debug(f"Link subscriber left ({self.subscriber_count} active)")

    def publish(self, event: ChangeEvent) -> int:
        # Deliver under the lock so every subscriber sees one shared order
        with self._lock:
            for subscription in self._subscribers:
                subscription._deliver(event)
            delivered = len(self._subscribers)
        logger.debug(f"Published link change ({event.caused_by.value}) to {delivered} subscribers")
        return delivered
