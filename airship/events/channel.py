"""Bounded hand-off between a stream's decoder and its consumers.

EventChannel is a single-producer, multi-consumer buffer guarded by one
condition variable. Every event put is taken by exactly one consumer. Only
the producer closes the channel; consumers drain what is buffered and then
observe the close.
"""

import threading
import time
from collections import deque
from collections.abc import Iterator
from typing import Generic, TypeVar

from ..exceptions import ChannelClosed

T = TypeVar("T")


class EventChannel(Generic[T]):
    """Bounded, closable channel of events.

    Iterating the channel yields events until it is closed and drained,
    which lets several consumer threads share one stream:

    Examples:
        >>> for event in response.events():
        ...     handle(event)

        >>> channel = response.events()
        >>> try:
        ...     event = channel.next(timeout=3.0)
        ... except TimeoutError:
        ...     ...  # stream is idle
        ... except ChannelClosed:
        ...     ...  # stream ended; see response.err()
    """

    def __init__(self, capacity: int = 10) -> None:
        """Initialize an empty open channel.

        Args:
            capacity: Number of events buffered before put() blocks

        Raises:
            ValueError: If capacity < 1
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._items: deque[T] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._interrupted = False

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def depth(self) -> int:
        """Get the number of events buffered and not yet taken.

        Note:
            This is a snapshot; it may change as soon as it is returned.
        """
        with self._cond:
            return len(self._items)

    def put(self, item: T) -> bool:
        """Offer an event, blocking while the buffer is full.

        Returns:
            True if the event was buffered, False if the channel was
            interrupted first (the event is dropped)

        Raises:
            RuntimeError: If the channel is closed
        """
        with self._cond:
            while len(self._items) >= self.capacity and not self._interrupted:
                self._cond.wait()
            if self._closed:
                raise RuntimeError("put on closed channel")
            if self._interrupted:
                return False
            self._items.append(item)
            self._cond.notify_all()
            return True

    def interrupt(self) -> None:
        """Make any pending and future put() return False.

        Buffered events remain available to consumers.
        """
        with self._cond:
            self._interrupted = True
            self._cond.notify_all()

    def close(self) -> None:
        """Close the channel; consumers stop once the buffer is drained.

        Raises:
            RuntimeError: If the channel is already closed
        """
        with self._cond:
            if self._closed:
                raise RuntimeError("channel already closed")
            self._closed = True
            self._cond.notify_all()

    def next(self, timeout: float | None = None) -> T:
        """Take the next event, blocking until one is available.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Returns:
            The next buffered event

        Raises:
            ChannelClosed: If the channel is closed and drained
            TimeoutError: If no event arrived within timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._items:
                if self._closed:
                    raise ChannelClosed("channel closed")
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError("no event within timeout")
                self._cond.wait(remaining)
            item = self._items.popleft()
            self._cond.notify_all()
            return item

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the channel is closed.

        Returns:
            True if the channel is closed, False on timeout
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._closed, timeout)

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        try:
            return self.next()
        except ChannelClosed:
            raise StopIteration from None
