"""
Redis-backed cache tier.

Values are pickled like the local tier and stored under ``<prefix><key>``
with a millisecond TTL derived from the expiration policy, so Redis drops
expired entries itself. Several processes can share one tier.

Dependencies: redis (``redis.asyncio`` client)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..config import DEFAULT_REDIS_PREFIX, Settings
from ..errors import CacheBackendError
from .base import CachingStrategy, Supplier, deserialize_value, serialize_value
from .clock import Clock, SystemClock
from .local import ExpirationPolicy, FixedDuration, UntilNextBlock


logger = logging.getLogger(__name__)


class RedisCache(CachingStrategy):
    def __init__(
        self,
        client: "aioredis.Redis",
        policy: Optional[ExpirationPolicy] = None,
        clock: Optional[Clock] = None,
        prefix: str = DEFAULT_REDIS_PREFIX,
    ) -> None:
        self.client = client
        self.policy = policy or FixedDuration(0)
        self.clock = clock or SystemClock()
        self.prefix = prefix

    @classmethod
    def from_url(
        cls,
        url: str,
        policy: Optional[ExpirationPolicy] = None,
        clock: Optional[Clock] = None,
        prefix: str = DEFAULT_REDIS_PREFIX,
    ) -> "RedisCache":
        return cls(aioredis.from_url(url), policy, clock, prefix)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, policy: Optional[ExpirationPolicy] = None) -> "RedisCache":
        settings = settings or Settings.from_env()
        if not settings.redis_url:
            raise CacheBackendError("NEXUM_REDIS_URL is not set")
        return cls.from_url(settings.redis_url, policy)

    def _name(self, key: int) -> str:
        return f"{self.prefix}{key}"

    def ttl_ms(self) -> int:
        # An entry stays readable through its last second.
        now = self.clock.now()
        return max(1, self.policy.expires_at(now) - now + 1) * 1000

    async def get(self, key: int) -> Optional[Any]:
        try:
            raw = await self.client.get(self._name(key))
        except RedisError as exc:
            raise CacheBackendError(f"Redis get failed: {exc}") from exc
        if raw is None:
            return None
        return deserialize_value(raw)

    async def set(self, key: int, value: Any) -> None:
        raw = serialize_value(value)
        try:
            await self.client.set(self._name(key), raw, px=self.ttl_ms())
        except RedisError as exc:
            raise CacheBackendError(f"Redis set failed: {exc}") from exc

    async def get_or_set(self, key: int, supplier: Supplier) -> Any:
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await supplier()
        await self.set(key, value)
        return value

    async def clear(self) -> None:
        """Delete every key under this cache's prefix."""
        removed = 0
        try:
            names = [name async for name in self.client.scan_iter(match=f"{self.prefix}*")]
            if names:
                removed = await self.client.delete(*names)
        except RedisError as exc:
            raise CacheBackendError(f"Redis clear failed: {exc}") from exc
        logger.debug(
            "Cleared redis cache",
            extra={"event": "cache.redis.clear", "prefix": self.prefix, "removed": removed},
        )

    def with_duration(self, seconds: int) -> "RedisCache":
        return RedisCache(self.client, self.policy.with_duration(seconds), self.clock, self.prefix)

    def until_next_block(self) -> "RedisCache":
        return RedisCache(self.client, UntilNextBlock(), self.clock, self.prefix)

    async def close(self) -> None:
        await self.client.aclose()
