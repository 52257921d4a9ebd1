"""Pluggable query caches: none, local TTL, redis, single-flight locked, two-tier."""

from .base import CachingNone, CachingStrategy
from .clock import Clock, SystemClock
from .local import FixedDuration, LocalCache, UntilNextBlock
from .locked import LockedCache, ReadWriteLock
from .multi import MultiCache
from .redis_cache import RedisCache

__all__ = [
    "CachingStrategy",
    "CachingNone",
    "Clock",
    "SystemClock",
    "LocalCache",
    "FixedDuration",
    "UntilNextBlock",
    "LockedCache",
    "ReadWriteLock",
    "MultiCache",
    "RedisCache",
]
