"""
Caching strategy contract.

Keys are uint64 fingerprints (see ``nexum.utils.fingerprint``). Values are any
picklable object. A stored value of ``None`` is indistinguishable from a miss.
"""

from __future__ import annotations

import pickle
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..errors import CacheDeserializeError, CacheSerializeError
from ..utils import fingerprint


T = TypeVar("T")
Supplier = Callable[[], Awaitable[T]]


def serialize_value(value: Any) -> bytes:
    try:
        return pickle.dumps(value)
    except (pickle.PicklingError, TypeError, AttributeError) as exc:
        raise CacheSerializeError(f"Cannot serialize {type(value).__name__}: {exc}") from exc


def deserialize_value(raw: bytes) -> Any:
    try:
        return pickle.loads(raw)
    except (pickle.UnpicklingError, EOFError, AttributeError, ImportError, IndexError, TypeError, ValueError) as exc:
        raise CacheDeserializeError(f"Cannot deserialize cached value: {exc}") from exc


class CachingStrategy(ABC):
    @abstractmethod
    async def get(self, key: int) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, key: int, value: Any) -> None:
        ...

    @abstractmethod
    async def get_or_set(self, key: int, supplier: Supplier) -> Any:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    @abstractmethod
    def with_duration(self, seconds: int) -> "CachingStrategy":
        """Same storage, fixed time-to-live policy."""

    @abstractmethod
    def until_next_block(self) -> "CachingStrategy":
        """Same storage, entries expire at the end of the current block."""

    @staticmethod
    def key_for(*parts: Any) -> int:
        return fingerprint(*parts)


class CachingNone(CachingStrategy):
    """Never stores anything."""

    async def get(self, key: int) -> Optional[Any]:
        return None

    async def set(self, key: int, value: Any) -> None:
        return None

    async def get_or_set(self, key: int, supplier: Supplier) -> Any:
        return await supplier()

    async def clear(self) -> None:
        return None

    def with_duration(self, seconds: int) -> "CachingNone":
        return self

    def until_next_block(self) -> "CachingNone":
        return self
