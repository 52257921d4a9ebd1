"""
Single-flight wrapper around another caching strategy.

Each key gets its own reader/writer lock, created lazily and kept for the life
of the wrapper. ``get`` takes the read side. ``set`` and ``get_or_set`` take
the write side for their whole body, so concurrent ``get_or_set`` calls on a
missing key run the supplier once and the others read what it stored.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from .base import CachingStrategy, Supplier


class ReadWriteLock:
    """Writer-preferring asyncio reader/writer lock."""

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._waiting_writers == 0)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            self._waiting_writers += 1
            try:
                await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._waiting_writers -= 1
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class _LockMap:
    def __init__(self) -> None:
        self._guard = asyncio.Lock()
        self._locks: dict[int, ReadWriteLock] = {}

    async def get(self, key: int) -> ReadWriteLock:
        async with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = ReadWriteLock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)


class LockedCache(CachingStrategy):
    def __init__(self, inner: CachingStrategy, _locks: Optional[_LockMap] = None) -> None:
        self.inner = inner
        self._locks = _locks if _locks is not None else _LockMap()

    async def get(self, key: int) -> Optional[Any]:
        lock = await self._locks.get(key)
        async with lock.read():
            return await self.inner.get(key)

    async def set(self, key: int, value: Any) -> None:
        lock = await self._locks.get(key)
        async with lock.write():
            await self.inner.set(key, value)

    async def get_or_set(self, key: int, supplier: Supplier) -> Any:
        lock = await self._locks.get(key)
        async with lock.write():
            cached = await self.inner.get(key)
            if cached is not None:
                return cached
            value = await supplier()
            await self.inner.set(key, value)
            return value

    async def clear(self) -> None:
        await self.inner.clear()

    def with_duration(self, seconds: int) -> "LockedCache":
        return LockedCache(self.inner.with_duration(seconds), self._locks)

    def until_next_block(self) -> "LockedCache":
        return LockedCache(self.inner.until_next_block(), self._locks)
