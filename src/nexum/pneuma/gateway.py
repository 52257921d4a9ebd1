"""
Async gateway HTTP client.

Thin wrapper over ``httpx.AsyncClient``. Gateway responses use the envelope
``{"data": ..., "error": "...", "code": "..."}``. ``get``/``post`` return the
status and parsed body; ``get_data``/``post_data`` also unwrap the envelope.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..config import DEFAULT_HTTP_TIMEOUT
from ..errors import GatewayParseError, GatewayTransportError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayResponse:
    status_code: int
    body: Optional[Any]


class GatewayClient:
    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.url}/{path.lstrip('/')}"

    async def _request(self, method: str, path: str, body: Optional[Any] = None) -> GatewayResponse:
        url = self._url(path)
        logger.debug("Gateway request", extra={"event": "gateway.request", "method": method, "url": url})
        try:
            response = await self._client.request(method, url, json=body)
        except httpx.HTTPError as exc:
            raise GatewayTransportError(f"{method} {url} failed: {exc}") from exc

        if not response.content:
            parsed = None
        else:
            try:
                parsed = response.json()
            except ValueError:
                parsed = None

        if response.status_code >= 500 and parsed is None:
            raise GatewayTransportError(
                f"{method} {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return GatewayResponse(response.status_code, parsed)

    async def get(self, path: str) -> GatewayResponse:
        return await self._request("GET", path)

    async def post(self, path: str, body: Any) -> GatewayResponse:
        return await self._request("POST", path, body)

    async def get_data(self, path: str) -> dict[str, Any]:
        return unwrap_data(await self.get(path), f"GET {path}")

    async def post_data(self, path: str, body: Any) -> dict[str, Any]:
        return unwrap_data(await self.post(path, body), f"POST {path}")


def unwrap_data(response: GatewayResponse, what: str) -> dict[str, Any]:
    """
    Return the ``data`` object of a gateway envelope.

    Raises:
        GatewayTransportError: If the response has no body and a non-2xx status
        GatewayParseError: If the body is not an envelope or carries an error
    """
    body = response.body
    if body is None:
        if response.status_code >= 400:
            raise GatewayTransportError(f"{what} returned HTTP {response.status_code}", response.status_code)
        raise GatewayParseError(f"{what} returned an empty or non-JSON body")
    if not isinstance(body, dict):
        raise GatewayParseError(f"{what} returned {type(body).__name__}, expected an object")
    data = body.get("data")
    if not isinstance(data, dict):
        error = body.get("error") or "no data"
        raise GatewayParseError(f"{what} failed: {error} ({body.get('code', '')})")
    return data
