"""Bounded, closable FIFO between the poll loop and the dispatcher.

``put`` blocks while the queue is full, so a slow dispatcher stalls the
poll loop instead of dropping events.  ``close`` wakes every waiter:
producers get QueueClosedError immediately, consumers keep receiving the
remaining items and get QueueClosedError once the queue is drained.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_CAPACITY = 1024


class QueueClosedError(Exception):
    """Raised by put() after close(), and by get() once closed and drained."""


class EventQueue(Generic[T]):
    """Async bounded queue with close-then-drain semantics."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"Queue capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._items: deque[T] = deque()
        self._closed = False
        self._cond = asyncio.Condition()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)

    async def put(self, item: T) -> None:
        """Append *item*, waiting for free space while the queue is full."""
        async with self._cond:
            while len(self._items) >= self._capacity and not self._closed:
                await self._cond.wait()
            if self._closed:
                raise QueueClosedError("put() on a closed queue")
            self._items.append(item)
            self._cond.notify_all()

    async def get(self) -> T:
        """Remove and return the oldest item, waiting while the queue is empty."""
        async with self._cond:
            while not self._items and not self._closed:
                await self._cond.wait()
            if not self._items:
                raise QueueClosedError("queue closed and drained")
            item = self._items.popleft()
            self._cond.notify_all()
            return item

    async def close(self) -> None:
        """Mark the queue closed and wake all waiters.  Idempotent."""
        async with self._cond:
            self._closed = True
            self._cond.notify_all()

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            try:
                yield await self.get()
            except QueueClosedError:
                return
