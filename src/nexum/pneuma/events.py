"""
Contract event queries against an Elasticsearch-style events index.

Indexed documents look like::

    {"address": "erd1...", "identifier": "...", "topics": ["<hex>", ...],
     "data": "<hex>", "timestamp": 1700348150, ...}

``topics[0]`` is the event identifier; indexed event fields follow in
declaration order, so a filter on field ``i`` targets topic ``i + 1``.
Decoded payload is ``topics[1:] + [data]``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, Sequence

import httpx

from ..codec import decode_multi
from ..config import DEFAULT_ELASTIC_INDEX, DEFAULT_HTTP_TIMEOUT
from ..errors import (
    CodecDecodeError,
    EventQueryMalformedHitError,
    GatewayTransportError,
    ResponseMissingHitsError,
)
from ..sigil.address import Address


logger = logging.getLogger(__name__)


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class TimestampOption:
    gte: Optional[int] = None
    lte: Optional[int] = None

    @classmethod
    def greater_than_or_equal(cls, timestamp: int) -> "TimestampOption":
        return cls(gte=timestamp)

    @classmethod
    def lower_than_or_equal(cls, timestamp: int) -> "TimestampOption":
        return cls(lte=timestamp)

    @classmethod
    def between(cls, start: int, end: int) -> "TimestampOption":
        return cls(gte=start, lte=end)

    def to_range(self) -> dict[str, str]:
        bounds = {}
        if self.gte is not None:
            bounds["gte"] = str(self.gte)
        if self.lte is not None:
            bounds["lte"] = str(self.lte)
        return bounds


@dataclass(frozen=True)
class EventQueryOptions:
    from_: Optional[int] = None
    size: Optional[int] = None
    sort: Optional[SortOrder] = None
    timestamp: Optional[TimestampOption] = None


@dataclass(frozen=True)
class FilterTerm:
    """Equality filter on the indexed event field at ``field_index``."""

    value: bytes
    field_index: int

    @property
    def topic_position(self) -> int:
        return self.field_index + 1


@dataclass(frozen=True)
class EventQueryResult:
    timestamp: int
    event: Any


class SearchClient(Protocol):
    async def search(self, index: str, body: dict[str, Any]) -> dict[str, Any]: ...


class ElasticSearchClient:
    """Minimal ``_search`` client over httpx."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def search(self, index: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.url}/{index}/_search"
        try:
            response = await self._client.post(url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise GatewayTransportError(f"Search on {url} failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayTransportError(f"Search on {url} returned a non-JSON body") from exc

    async def aclose(self) -> None:
        await self._client.aclose()


def build_query_body(
    contract: Address,
    event_identifier: str,
    options: Optional[EventQueryOptions] = None,
    filters: Sequence[FilterTerm] = (),
) -> dict[str, Any]:
    """Build the search body: pagination, sort, then the bool filter."""
    options = options or EventQueryOptions()
    conditions: list[dict[str, Any]] = [
        {"match": {"address": contract.to_bech32()}},
        {"term": {"topics": event_identifier.encode("utf-8").hex()}},
    ]
    for term in filters:
        conditions.append({"term": {"topics": term.value.hex()}})
    if options.timestamp is not None:
        conditions.append({"range": {"timestamp": options.timestamp.to_range()}})

    body: dict[str, Any] = {}
    if options.from_ is not None:
        body["from"] = options.from_
    if options.size is not None:
        body["size"] = options.size
    if options.sort is not None:
        body["sort"] = [{"timestamp": SortOrder(options.sort).value}]
    body["query"] = {"bool": {"filter": conditions}}
    return body


def _hex(value: str, hit: Any, what: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except (TypeError, ValueError) as exc:
        raise EventQueryMalformedHitError(f"cannot hex-decode {what} {value!r}", hit) from exc


class EventQueryExecutor:
    def __init__(self, client: SearchClient, index: str = DEFAULT_ELASTIC_INDEX) -> None:
        self.client = client
        self.index = index

    async def execute(
        self,
        contract: "Address | str",
        event_identifier: str,
        shape: Any,
        options: Optional[EventQueryOptions] = None,
        filters: Sequence[FilterTerm] = (),
    ) -> list[EventQueryResult]:
        """
        Fetch and decode events emitted by ``contract``.

        Raises:
            ResponseMissingHitsError: If the response has no ``hits.hits``
            EventQueryMalformedHitError: If any hit can't be parsed or decoded
        """
        contract = Address.parse(contract)
        body = build_query_body(contract, event_identifier, options, filters)
        logger.debug(
            "Querying events",
            extra={"event": "events.query", "contract": contract.to_bech32(), "identifier": event_identifier},
        )
        response = await self.client.search(self.index, body)

        hits = (response.get("hits") or {}).get("hits") if isinstance(response, dict) else None
        if not isinstance(hits, list):
            raise ResponseMissingHitsError()

        results = []
        for hit in hits:
            record = self._parse_hit(hit, event_identifier, filters, shape)
            if record is not None:
                results.append(record)
        return results

    @staticmethod
    def _parse_hit(
        hit: Any,
        event_identifier: str,
        filters: Sequence[FilterTerm],
        shape: Any,
    ) -> Optional[EventQueryResult]:
        if not isinstance(hit, dict) or not isinstance(hit.get("_source"), dict):
            raise EventQueryMalformedHitError("hit has no _source", hit)
        source = hit["_source"]
        topics = source.get("topics")
        timestamp = source.get("timestamp")
        if not isinstance(topics, list) or not isinstance(timestamp, int):
            raise EventQueryMalformedHitError("_source needs topics and an integer timestamp", hit)
        if not topics:
            return None

        try:
            identifier = _hex(topics[0], hit, "event identifier").decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EventQueryMalformedHitError("event identifier is not utf-8", hit) from exc
        if identifier != event_identifier:
            return None

        # the index matches topics regardless of position; enforce it here
        for term in filters:
            position = term.topic_position
            if position >= len(topics):
                return None
            try:
                if bytes.fromhex(topics[position]) != term.value:
                    return None
            except (TypeError, ValueError):
                return None

        payload = [_hex(t, hit, "topic") for t in topics[1:]]
        payload.append(_hex(source.get("data") or "", hit, "data"))
        try:
            event = decode_multi(payload, shape, strict=False)
        except CodecDecodeError as exc:
            raise EventQueryMalformedHitError(f"cannot decode event payload: {exc}", hit) from exc
        return EventQueryResult(timestamp=timestamp, event=event)
