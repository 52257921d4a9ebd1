"""Two-tier cache: a fast first tier in front of a slower second tier."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional

from .base import CachingStrategy, Supplier


async def _both(first: Awaitable[None], second: Awaitable[None]) -> None:
    results = await asyncio.gather(first, second, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result


class MultiCache(CachingStrategy):
    def __init__(self, first: CachingStrategy, second: CachingStrategy) -> None:
        self.first = first
        self.second = second

    async def get(self, key: int) -> Optional[Any]:
        value = await self.first.get(key)
        if value is not None:
            return value
        return await self.second.get(key)

    async def set(self, key: int, value: Any) -> None:
        await _both(self.first.set(key, value), self.second.set(key, value))

    async def get_or_set(self, key: int, supplier: Supplier) -> Any:
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await supplier()
        await self.set(key, value)
        return value

    async def clear(self) -> None:
        await _both(self.first.clear(), self.second.clear())

    def with_duration(self, seconds: int) -> "MultiCache":
        return MultiCache(self.first.with_duration(seconds), self.second.with_duration(seconds))

    def until_next_block(self) -> "MultiCache":
        return MultiCache(self.first.until_next_block(), self.second.until_next_block())
