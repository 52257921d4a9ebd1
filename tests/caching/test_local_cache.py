"""Tests for the in-process TTL cache."""

from __future__ import annotations

import asyncio

import pytest

from nexum.caching import LocalCache, UntilNextBlock
from nexum.caching.base import serialize_value
from nexum.caching.clock import last_second_of_block
from nexum.errors import CacheSerializeError


class FakeClock:
    def __init__(self, now: int = 0) -> None:
        self.current = now

    def now(self) -> int:
        return self.current


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


class TestBlockBoundary:
    @pytest.mark.parametrize(
        ("now", "expected"),
        [(0, 5), (3, 5), (4, 5), (5, 11), (6, 11), (11, 17)],
    )
    def test_last_second(self, now: int, expected: int) -> None:
        assert last_second_of_block(now) == expected


class TestFixedDuration:
    @pytest.mark.asyncio
    async def test_hit_before_expiry(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(10, clock)
        await cache.set(1, {"a": [1, 2]})
        clock.current = 10
        assert await cache.get(1) == {"a": [1, 2]}

    @pytest.mark.asyncio
    async def test_expired_entry_is_deleted(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(10, clock)
        await cache.set(1, "value")
        clock.current = 11
        assert await cache.get(1) is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_miss(self, clock: FakeClock) -> None:
        assert await LocalCache(clock=clock).get(42) is None

    @pytest.mark.asyncio
    async def test_get_or_set(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(10, clock)
        calls = []

        async def supplier() -> int:
            calls.append(1)
            return 7

        assert await cache.get_or_set(3, supplier) == 7
        assert await cache.get_or_set(3, supplier) == 7
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_supplier_error_stores_nothing(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(10, clock)

        async def supplier() -> int:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cache.get_or_set(3, supplier)
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_clear(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(10, clock)
        await cache.set(1, "a")
        await cache.set(2, "b")
        await cache.clear()
        assert await cache.get(1) is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_unpicklable_value(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(10, clock)
        with pytest.raises(CacheSerializeError):
            await cache.set(1, lambda: None)


class TestNextBlock:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("set_at", "get_at", "hit"),
        [(0, 5, True), (3, 5, True), (3, 6, False), (5, 11, True), (5, 12, False)],
    )
    async def test_expiry(self, clock: FakeClock, set_at: int, get_at: int, hit: bool) -> None:
        cache = LocalCache.with_next_block(clock)
        clock.current = set_at
        await cache.set(1, "value")
        clock.current = get_at
        assert (await cache.get(1) == "value") is hit


class TestRebind:
    @pytest.mark.asyncio
    async def test_shares_storage(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(100, clock)
        short = cache.with_duration(1)
        await short.set(1, "short")
        assert await cache.get(1) == "short"
        clock.current = 2
        assert await cache.get(1) is None

    @pytest.mark.asyncio
    async def test_until_next_block(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(100, clock).until_next_block()
        await cache.set(1, "value")
        clock.current = 6
        assert await cache.get(1) is None

    @pytest.mark.asyncio
    async def test_with_duration_keeps_next_block(self, clock: FakeClock) -> None:
        cache = LocalCache.with_next_block(clock).with_duration(100)
        assert isinstance(cache.policy, UntilNextBlock)
        await cache.set(1, "value")
        clock.current = 6
        assert await cache.get(1) is None


class TestSweep:
    @pytest.mark.asyncio
    async def test_sweep_removes_expired(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(5, clock)
        await cache.set(1, "old")
        clock.current = 4
        await cache.set(2, "new")
        clock.current = 6
        assert await cache.sweep() == 1
        assert len(cache) == 1
        assert await cache.get(2) == "new"

    @pytest.mark.asyncio
    async def test_entry_refreshed_during_sweep_survives(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(5, clock)
        storage = cache._storage
        await cache.set(1, "old")
        clock.current = 10

        async with storage.value_lock:
            sweep = asyncio.create_task(cache.sweep())
            # The sweep has listed key 1 as expired and now waits for the lock.
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            storage.values[1] = serialize_value("fresh")
            storage.expirations[1] = 15

        assert await sweep == 0
        assert await cache.get(1) == "fresh"

    @pytest.mark.asyncio
    async def test_background_task_starts_once(self, clock: FakeClock) -> None:
        cache = LocalCache.with_fixed_duration(1, clock)
        await cache.set(1, "value")
        clock.current = 5
        task = cache.start_sweep(0.01)
        assert cache.start_sweep(0.01) is task
        assert cache.with_duration(3).start_sweep(0.01) is task
        for _ in range(50):
            if len(cache) == 0:
                break
            await asyncio.sleep(0.01)
        assert len(cache) == 0
        await cache.stop_sweep()
        assert task.cancelled()
