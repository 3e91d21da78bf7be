"""Output fan-out to live subscribers.

Every published line is kept in an append-only backlog and pushed into the
queue of each registered subscription. A new subscription takes a copy of the
backlog before it is registered, under the same lock that publishing takes, so
it sees each line exactly once. The copy is replayed in full; only live lines
are subject to the per-subscription buffer limit.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from typing import AsyncIterator, Iterable, Iterator

import anyio

__all__ = [
    "Broadcaster",
    "Subscription",
]

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """Receive side of a broadcast: a stream of output lines.

    Lines captured before the subscription was created are replayed in full.
    Live lines are buffered per subscription; when the buffer is full the
    oldest live line is dropped, so a slow consumer never blocks the
    publisher. Closing never drops a line.

    Example:
        sub = runner.read_output()
        for line in sub:
            print(line)

        # or from async code
        async for line in sub:
            print(line)
    """

    def __init__(self, maxsize: int = 0, backlog: Iterable[str] = ()) -> None:
        self.maxsize = maxsize
        self._replay: deque[str] = deque(backlog)
        # Unbounded underneath: maxsize is enforced for lines in _put so the
        # close marker always fits
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = False
        self._finished = False
        self._dropped = 0

    @property
    def closed(self) -> bool:
        """True once the publisher closed this subscription."""
        return self._closed

    @property
    def dropped(self) -> int:
        """Number of live lines dropped because the buffer was full."""
        return self._dropped

    def get(self, timeout: float | None = None) -> str | None:
        """Return the next line, or None once the subscription is closed.

        Args:
            timeout: Seconds to block (None = forever)

        Raises:
            queue.Empty: If no line arrived within timeout
        """
        if self._replay:
            return self._replay.popleft()
        if self._finished:
            return None
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            self._finished = True
            return None
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[str]:
        while True:
            line = self.get()
            if line is None:
                return
            yield line

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            line = await anyio.to_thread.run_sync(self.get, abandon_on_cancel=True)
            if line is None:
                return
            yield line

    # Publisher side. Callers hold the Broadcaster lock, so there is a single
    # producer per queue at any time.

    def _put(self, line: str) -> None:
        if self._closed:
            return
        if self.maxsize and self._queue.qsize() >= self.maxsize:
            try:
                self._queue.get_nowait()
                self._dropped += 1
                logger.debug("Subscriber queue full, dropping oldest line")
            except queue.Empty:
                pass
        self._queue.put_nowait(line)

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)


class Broadcaster:
    """Registry of subscriptions plus the backlog of everything published.

    Thread safety: all methods take one internal lock, distinct from any
    lifecycle lock held by the owner.
    """

    def __init__(self, buffer_size: int = 0) -> None:
        self.buffer_size = buffer_size
        self._subscribers: list[Subscription] = []
        self._backlog: list[str] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, line: str) -> None:
        """Record a line and deliver it to every registered subscription."""
        with self._lock:
            self._backlog.append(line)
            for sub in self._subscribers:
                sub._put(line)

    def subscribe(self) -> Subscription:
        """Create a subscription primed with the backlog.

        After close_all() the subscription still receives the backlog but is
        closed immediately and never registered.
        """
        with self._lock:
            sub = Subscription(maxsize=self.buffer_size, backlog=self._backlog)
            if self._closed:
                sub._close()
            else:
                self._subscribers.append(sub)
                logger.debug(f"Subscriber added, total: {len(self._subscribers)}")
        return sub

    def unsubscribe(self, sub: Subscription) -> bool:
        """Remove and close a subscription. Returns whether it was registered."""
        with self._lock:
            registered = sub in self._subscribers
            if registered:
                self._subscribers.remove(sub)
                logger.debug(f"Subscriber removed, remaining: {len(self._subscribers)}")
            sub._close()
        return registered

    def close_all(self) -> int:
        """Close every subscription and refuse new registrations.

        Returns:
            Number of subscriptions closed
        """
        with self._lock:
            self._closed = True
            subscribers, self._subscribers = self._subscribers, []
            for sub in subscribers:
                sub._close()
        if subscribers:
            logger.debug(f"Closed {len(subscribers)} subscriber(s)")
        return len(subscribers)

    def text(self) -> str:
        """Return everything published so far, concatenated in order."""
        with self._lock:
            return "".join(self._backlog)
