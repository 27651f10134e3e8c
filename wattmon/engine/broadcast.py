"""Fan-out of live updates to subscribers.

Each subscriber owns a bounded queue. Publishing only ever does a
non-blocking put into those queues, so a slow or broken subscriber cannot
hold up the publisher or anyone else. When a queue is full its oldest
message is discarded to make room.
"""

from __future__ import annotations

import itertools
import queue
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from wattmon.models.power_models import ComponentReading, PowerSample
from wattmon.models.session_models import Session
from wattmon.utils.logger import Logger

TOPIC_POWER = "power"
TOPIC_COMPONENTS = "components"
TOPIC_SESSION = "session"


@dataclass(frozen=True)
class BroadcastMessage:
    """One published update."""

    topic: str
    payload: Any
    sequence: int

    def to_dict(self) -> dict[str, Any]:
        return {"topic": self.topic, "sequence": self.sequence, "payload": self.payload}


MessageListener = Callable[[BroadcastMessage], None]


class PublishChannel(ABC):
    """Transport accepting topic/payload messages."""

    @abstractmethod
    def publish(self, topic: str, payload: Any) -> None:
        """Deliver a message to all current subscribers."""

    @abstractmethod
    def subscribe(self) -> Subscription:
        """Register a new subscriber."""

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscriber. Unknown handles are ignored."""


class Subscription:
    """Handle for one subscriber's message queue.

    Messages can be pulled with ``get()`` / iteration, or pushed to a
    ``listener`` by a dedicated dispatch thread.

    Args:
        subscription_id: Identifier assigned by the hub.
        maxsize: Queue capacity before the oldest message is dropped.
        listener: Optional callback invoked for each message, in order.
    """

    def __init__(
        self,
        subscription_id: int,
        maxsize: int = 256,
        listener: MessageListener | None = None,
    ) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be greater than zero")
        self.id = subscription_id
        self._queue: queue.Queue[BroadcastMessage | None] = queue.Queue(maxsize)
        self._put_lock = threading.Lock()
        self._closed = threading.Event()
        self._listener = listener
        self._thread: threading.Thread | None = None
        self.dropped = 0

        if listener is not None:
            self._thread = threading.Thread(
                target=self._dispatch,
                daemon=True,
                name=f"wattmon-subscriber-{subscription_id}",
            )
            self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, message: BroadcastMessage) -> None:
        """Enqueue without blocking, evicting the oldest message when full."""
        if self.closed:
            return
        self._enqueue(message)

    def _enqueue(self, message: BroadcastMessage | None) -> None:
        with self._put_lock:
            while True:
                try:
                    self._queue.put_nowait(message)
                    return
                except queue.Full:
                    try:
                        self._queue.get_nowait()
                        self.dropped += 1
                    except queue.Empty:
                        pass

    def get(self, timeout: float | None = None) -> BroadcastMessage | None:
        """Next message, or None on timeout or once closed."""
        if self.closed and self._queue.empty():
            return None
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def __iter__(self) -> Iterator[BroadcastMessage]:
        while True:
            message = self.get()
            if message is None:
                return
            yield message

    def close(self) -> None:
        """Stop delivery; wakes any blocked ``get()`` or dispatch thread."""
        if self.closed:
            return
        self._closed.set()
        self._enqueue(None)
        current = threading.current_thread()
        if self._thread is not None and self._thread is not current:
            self._thread.join(timeout=1.0)

    def _dispatch(self) -> None:
        log = Logger.get("engine.broadcast")
        while True:
            message = self._queue.get()
            if message is None:
                return
            try:
                if self._listener is not None:
                    self._listener(message)
            except Exception as exc:
                log.warning(
                    f"Subscriber {self.id} failed on {message.topic} "
                    f"#{message.sequence}: {exc}"
                )


class BroadcastHub(PublishChannel):
    """In-process publish channel for power, component and session updates."""

    def __init__(self, default_maxsize: int = 256) -> None:
        self._default_maxsize = default_maxsize
        self._subscribers: dict[int, Subscription] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._sequence = itertools.count(1)
        self._log = Logger.get("engine.broadcast")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(
        self,
        listener: MessageListener | None = None,
        maxsize: int | None = None,
    ) -> Subscription:
        """Register a subscriber.

        Args:
            listener: Optional push callback run on the subscriber's own thread.
            maxsize: Queue capacity; defaults to the hub's setting.
        """
        subscription = Subscription(
            next(self._ids),
            maxsize=maxsize or self._default_maxsize,
            listener=listener,
        )
        with self._lock:
            self._subscribers[subscription.id] = subscription
        self._log.info(f"Subscriber {subscription.id} connected")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            removed = self._subscribers.pop(subscription.id, None)
        subscription.close()
        if removed is not None:
            self._log.info(
                f"Subscriber {subscription.id} disconnected "
                f"({subscription.dropped} messages dropped)"
            )

    def publish(self, topic: str, payload: Any) -> None:
        """Offer a message to every subscriber; never blocks or raises for them."""
        with self._lock:
            message = BroadcastMessage(topic, payload, next(self._sequence))
            subscribers = list(self._subscribers.values())

        for subscription in subscribers:
            try:
                subscription.offer(message)
            except Exception as exc:
                self._log.warning(
                    f"Dropping {topic} for subscriber {subscription.id}: {exc}"
                )

    def publish_update(
        self,
        sample: PowerSample,
        components: Sequence[ComponentReading],
        session: Session | None,
    ) -> None:
        """Publish the power, components and session topics, in that order."""
        self.publish(TOPIC_POWER, sample.to_dict())
        self.publish(TOPIC_COMPONENTS, [c.to_dict() for c in components])
        self.publish(TOPIC_SESSION, session.to_dict() if session else None)

    def close(self) -> None:
        """Unsubscribe everyone."""
        with self._lock:
            subscribers = list(self._subscribers.values())
        for subscription in subscribers:
            self.unsubscribe(subscription)
