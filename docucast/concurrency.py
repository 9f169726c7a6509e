"""
Concurrency Module
===================
asyncio utilities shared by the conversion and playback controllers.
Both controllers run on a single event loop; these helpers provide
cooperative cancellation, ordered state streams and retry backoff.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CancellationToken:
    """
    Token for cooperative task cancellation.

    Tasks check is_cancelled() around every suspension point and use
    sleep() instead of asyncio.sleep() so a cancel wakes them up at once.
    """

    def __init__(self):
        self._cancelled = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancelled.is_set()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, returning early on cancellation.

        Returns:
            True if the full delay elapsed, False if cancelled
        """
        if self.is_cancelled():
            return False
        if seconds <= 0:
            await asyncio.sleep(0)
            return not self.is_cancelled()
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=max(0.0, seconds))
        except asyncio.TimeoutError:
            return True
        return False


class _Closed:
    """Sentinel marking the end of a subscription."""


_CLOSED = _Closed()


class Subscription(Generic[T]):
    """
    Ordered, cancellable view over a StateStream.

    Iterate with `async for`; iteration ends when the stream completes or
    when close() is called.
    """

    def __init__(self, stream: "StateStream[T]"):
        self._stream = stream
        self._queue: deque = deque()
        self._wakeup = asyncio.Event()
        self._closed = False

    def _push(self, item) -> None:
        if self._closed:
            return
        self._queue.append(item)
        self._wakeup.set()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Unsubscribe. Pending iteration finishes after buffered items."""
        if self._closed:
            return
        self._queue.append(_CLOSED)
        self._wakeup.set()
        self._closed = True
        self._stream._detach(self)

    def pending(self) -> list[T]:
        """Drain buffered states without waiting."""
        items = []
        while self._queue and self._queue[0] is not _CLOSED:
            items.append(self._queue.popleft())
        return items

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        while not self._queue:
            self._wakeup.clear()
            await self._wakeup.wait()
        item = self._queue.popleft()
        if item is _CLOSED:
            self._queue.appendleft(_CLOSED)
            raise StopAsyncIteration
        return item


class StateStream(Generic[T]):
    """
    Broadcasts state values to subscribers in emission order.

    New subscribers first receive the current value. Publishing a value
    for which `is_terminal` returns True completes the stream: every
    subscriber receives it and then ends, and later subscribers get the
    terminal value followed by the end of iteration.
    """

    def __init__(self, initial: T, is_terminal: Optional[Callable[[T], bool]] = None):
        self._current = initial
        self._is_terminal = is_terminal or (lambda _value: False)
        self._subscribers: list[Subscription[T]] = []
        self._completed = False

    @property
    def value(self) -> T:
        return self._current

    @property
    def completed(self) -> bool:
        return self._completed

    def subscribe(self) -> Subscription[T]:
        sub: Subscription[T] = Subscription(self)
        sub._push(self._current)
        if self._completed:
            sub.close()
        else:
            self._subscribers.append(sub)
        return sub

    def publish(self, value: T) -> bool:
        """
        Emit a new value.

        Returns:
            False if the stream already completed (the value is dropped)
        """
        if self._completed:
            logger.debug(f"Dropping state published after completion: {value!r}")
            return False
        self._current = value
        for sub in list(self._subscribers):
            sub._push(value)
        if self._is_terminal(value):
            self.complete()
        return True

    def complete(self) -> None:
        """End every subscription; the current value stays readable."""
        self._completed = True
        for sub in list(self._subscribers):
            sub.close()
        self._subscribers.clear()

    def _detach(self, sub: Subscription[T]) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry budget with exponential backoff.

    Attributes:
        max_failures: Consecutive failures tolerated before giving up
        base_delay: Delay after the first failure, in seconds
        max_delay: Upper bound for any single delay
        multiplier: Growth factor between consecutive delays
    """
    max_failures: int = 5
    base_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0

    def __post_init__(self):
        if self.max_failures < 1:
            raise ValueError("max_failures must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be non-negative")

    def exhausted(self, failures: int) -> bool:
        return failures >= self.max_failures

    def delay_for(self, failures: int) -> float:
        """Backoff before the next attempt after `failures` consecutive failures."""
        if failures <= 0:
            return 0.0
        delay = self.base_delay * (self.multiplier ** (failures - 1))
        return min(delay, self.max_delay)
