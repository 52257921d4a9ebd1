"""Query executor wrapper that serves repeated queries from a cache."""

from __future__ import annotations

from typing import Any, Sequence

from ...caching.base import CachingStrategy
from ...sigil.address import Address
from ..transfers import TokenTransfer
from .base import QueryExecutor


class CachedQueryExecutor:
    """
    Wrap a ``QueryExecutor``.

    The cache key is a fingerprint of the backend endpoint, contract,
    function, arguments, payments and expected shape, so identical logical
    requests share one entry. Combine with ``LockedCache`` to collapse
    concurrent identical queries into one fetch.
    """

    def __init__(self, inner: QueryExecutor, cache: CachingStrategy) -> None:
        self.inner = inner
        self.cache = cache

    @property
    def endpoint_id(self) -> str:
        return getattr(self.inner, "endpoint_id", type(self.inner).__name__)

    def key_for(
        self,
        contract: "Address | str",
        function: str,
        args: Sequence[bytes],
        shape: Any = None,
        egld_value: int = 0,
        esdt_transfers: Sequence[TokenTransfer] = (),
    ) -> int:
        return self.cache.key_for(
            self.endpoint_id,
            Address.parse(contract),
            function,
            list(args),
            shape,
            egld_value,
            list(esdt_transfers),
        )

    async def execute(
        self,
        contract: "Address | str",
        function: str,
        args: Sequence[bytes],
        shape: Any = None,
        egld_value: int = 0,
        esdt_transfers: Sequence[TokenTransfer] = (),
    ) -> Any:
        key = self.key_for(contract, function, args, shape, egld_value, esdt_transfers)

        async def fetch() -> Any:
            return await self.inner.execute(contract, function, args, shape, egld_value, esdt_transfers)

        return await self.cache.get_or_set(key, fetch)

    def with_cache(self, cache: CachingStrategy) -> "CachedQueryExecutor":
        return CachedQueryExecutor(self.inner, cache)
