# broadcast.py
# Fan-out of engine output to independent observers (UI, voice, logging).
#
# StateChannel  - latest value retained; late subscribers get it immediately.
# EventChannel  - each subscriber owns a bounded buffer; a slow reader never
#                 blocks the publisher. On overflow the oldest event is
#                 dropped, except critical events which are always kept.

import logging
import threading
from collections import deque
from typing import Callable, Deque, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class StateChannel(Generic[T]):
    """Holds the current state and notifies callbacks on every publish."""

    def __init__(self, initial: T) -> None:
        self._lock = threading.Lock()
        # Serializes deliveries so every subscriber sees values in publish order.
        # Re-entrant so a callback may publish on the same thread.
        self._delivery = threading.RLock()
        self._value = initial
        self._callbacks: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def publish(self, value: T) -> None:
        with self._delivery:
            with self._lock:
                self._value = value
                callbacks = list(self._callbacks)
            for callback in callbacks:
                self._notify(callback, value)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a callback; it is called at once with the current state.

        A publish racing with this call is delivered after the initial
        value, never before it.

        Returns:
            A function that removes the callback.
        """
        with self._delivery:
            with self._lock:
                self._callbacks.append(callback)
                current = self._value
            self._notify(callback, current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    @staticmethod
    def _notify(callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception(f"State subscriber {callback!r} failed.")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class EventSubscription(Generic[T]):
    """
    One observer's bounded event buffer.

    Args:
        maxsize:  Soft bound on buffered events.
        critical: Event types that may push the buffer past maxsize
                  rather than be dropped.
    """

    def __init__(self, channel: "EventChannel[T]", maxsize: int, critical: Tuple[type, ...]) -> None:
        self._channel = channel
        self._maxsize = maxsize
        self._critical = critical
        self._buffer: Deque[T] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self.dropped = 0

    def __len__(self) -> int:
        with self._cond:
            return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: T) -> None:
        with self._cond:
            if self._closed:
                return
            self._buffer.append(event)
            if len(self._buffer) > self._maxsize:
                self._drop_oldest()
            self._cond.notify()

    def _drop_oldest(self) -> None:
        for i, queued in enumerate(self._buffer):
            if not isinstance(queued, self._critical):
                del self._buffer[i]
                self.dropped += 1
                logger.debug(f"Event buffer full, dropped {type(queued).__name__}.")
                return
        # Only critical events buffered: let it grow.

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """
        Next event, blocking up to timeout seconds (forever if None).

        Returns:
            The event, or None on timeout or once closed and empty.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._buffer or self._closed, timeout):
                return None
            if self._buffer:
                return self._buffer.popleft()
            return None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until an event is buffered or the subscription closes. False on timeout."""
        with self._cond:
            return bool(self._cond.wait_for(lambda: self._buffer or self._closed, timeout))

    def drain(self) -> List[T]:
        """Remove and return every buffered event without blocking."""
        with self._cond:
            events = list(self._buffer)
            self._buffer.clear()
            return events

    def close(self) -> None:
        self._channel.unsubscribe(self)
        with self._cond:
            self._closed = True
            self._cond.notify_all()


class EventChannel(Generic[T]):
    """At-most-once delivery of each published event to every subscriber."""

    def __init__(self, default_maxsize: int = 10, critical: Tuple[type, ...] = ()) -> None:
        self._lock = threading.Lock()
        self._subscribers: List[EventSubscription[T]] = []
        self._default_maxsize = default_maxsize
        self._critical = critical

    def subscribe(self, maxsize: Optional[int] = None) -> EventSubscription[T]:
        size = self._default_maxsize if maxsize is None else maxsize
        if size < 1:
            raise ValueError(f"Event buffer size must be at least 1, got {size}")
        sub = EventSubscription(self, size, self._critical)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: EventSubscription[T]) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def publish(self, event: T) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for sub in subscribers:
            sub.offer(event)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
