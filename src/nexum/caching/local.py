"""
In-process TTL cache.

Two maps share one key space: fingerprint -> pickled value and
fingerprint -> expiration (unix seconds). Readers look at the expiration first,
writers store the value first, so a reader never sees an expiration without
its value. Expired entries are dropped lazily on ``get`` and, optionally, by a
background sweep task.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .base import CachingStrategy, Supplier, deserialize_value, serialize_value
from .clock import Clock, SystemClock, last_second_of_block


logger = logging.getLogger(__name__)


class ExpirationPolicy:
    def expires_at(self, now: int) -> int:
        raise NotImplementedError

    def with_duration(self, seconds: int) -> "ExpirationPolicy":
        raise NotImplementedError


@dataclass(frozen=True)
class FixedDuration(ExpirationPolicy):
    seconds: int

    def expires_at(self, now: int) -> int:
        return now + self.seconds

    def with_duration(self, seconds: int) -> "FixedDuration":
        return FixedDuration(seconds)


@dataclass(frozen=True)
class UntilNextBlock(ExpirationPolicy):
    def expires_at(self, now: int) -> int:
        return last_second_of_block(now)

    def with_duration(self, seconds: int) -> "UntilNextBlock":
        # Block alignment wins over a duration.
        return self


@dataclass
class _LocalStorage:
    values: dict[int, bytes] = field(default_factory=dict)
    expirations: dict[int, int] = field(default_factory=dict)
    value_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    expiration_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    sweep_task: Optional[asyncio.Task] = None


class LocalCache(CachingStrategy):
    def __init__(
        self,
        policy: Optional[ExpirationPolicy] = None,
        clock: Optional[Clock] = None,
        _storage: Optional[_LocalStorage] = None,
    ) -> None:
        self.policy = policy or FixedDuration(0)
        self.clock = clock or SystemClock()
        self._storage = _storage or _LocalStorage()

    @classmethod
    def with_fixed_duration(cls, seconds: int, clock: Optional[Clock] = None) -> "LocalCache":
        return cls(FixedDuration(seconds), clock)

    @classmethod
    def with_next_block(cls, clock: Optional[Clock] = None) -> "LocalCache":
        return cls(UntilNextBlock(), clock)

    def __len__(self) -> int:
        return len(self._storage.values)

    async def get(self, key: int) -> Optional[Any]:
        storage = self._storage
        async with storage.expiration_lock:
            expiration = storage.expirations.get(key)
        if expiration is None:
            return None
        now = self.clock.now()
        if now > expiration:
            await self._remove_if_expired(key, now)
            return None

        async with storage.value_lock:
            raw = storage.values.get(key)
        if raw is None:
            return None
        return deserialize_value(raw)

    async def set(self, key: int, value: Any) -> None:
        raw = serialize_value(value)
        expiration = self.policy.expires_at(self.clock.now())
        storage = self._storage
        async with storage.value_lock:
            storage.values[key] = raw
        async with storage.expiration_lock:
            storage.expirations[key] = expiration

    async def get_or_set(self, key: int, supplier: Supplier) -> Any:
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await supplier()
        await self.set(key, value)
        return value

    async def clear(self) -> None:
        storage = self._storage
        async with storage.expiration_lock:
            storage.expirations.clear()
        async with storage.value_lock:
            storage.values.clear()

    def with_duration(self, seconds: int) -> "LocalCache":
        """Same storage with a ``seconds`` time-to-live. A next-block cache stays next-block."""
        return LocalCache(self.policy.with_duration(seconds), self.clock, self._storage)

    def until_next_block(self) -> "LocalCache":
        return LocalCache(UntilNextBlock(), self.clock, self._storage)

    async def _remove_if_expired(self, key: int, now: int) -> bool:
        # Lock order is value then expiration; the entry may have been
        # refreshed since the caller saw it expired.
        storage = self._storage
        async with storage.value_lock:
            async with storage.expiration_lock:
                expiration = storage.expirations.get(key)
                if expiration is None or now <= expiration:
                    return False
                del storage.expirations[key]
                storage.values.pop(key, None)
        return True

    async def sweep(self) -> int:
        """Remove every expired entry. Returns how many were removed."""
        now = self.clock.now()
        async with self._storage.expiration_lock:
            expired = [k for k, exp in self._storage.expirations.items() if now > exp]
        removed = 0
        for key in expired:
            if await self._remove_if_expired(key, now):
                removed += 1
        if removed:
            logger.debug(
                "Swept expired cache entries",
                extra={"event": "cache.local.sweep", "removed": removed},
            )
        return removed

    def start_sweep(self, interval: float) -> asyncio.Task:
        """
        Start the periodic sweep on the running loop.

        Calling it again while a sweep is running returns the existing task.
        The task is shared by every cache bound to the same storage.
        """
        storage = self._storage
        if storage.sweep_task is not None and not storage.sweep_task.done():
            return storage.sweep_task
        storage.sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop(interval))
        return storage.sweep_task

    async def stop_sweep(self) -> None:
        task = self._storage.sweep_task
        if task is None:
            return
        self._storage.sweep_task = None
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.sweep()
