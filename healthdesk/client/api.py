"""Async httpx client for the health report API.

All methods return the envelope's ``data`` or raise HealthApiError.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Healthdesk-Token"


class HealthApiError(Exception):
    """Raised when a request fails or the API reports ``success: false``."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class MetadataFetchError(HealthApiError):
    """The metadata request failed; nothing else can be fetched without it."""


class HealthApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` for the /api/health endpoints."""

    def __init__(
        self,
        base_url: str = "",
        token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json", "X-Requested-With": "XMLHttpRequest"}
        if token:
            headers[TOKEN_HEADER] = token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HealthApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = await self._client.request(method, f"/api/health{path}", params=params)
        except httpx.TimeoutException as e:
            raise HealthApiError(f"Request timed out: {path}") from e
        except httpx.HTTPError as e:
            raise HealthApiError(f"Network error: {e}") from e

        try:
            body = resp.json()
        except ValueError as e:
            raise HealthApiError(
                f"Invalid JSON response ({resp.status_code}) from {path}", resp.status_code,
            ) from e

        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise HealthApiError(message or f"Request failed ({resp.status_code})", resp.status_code)
        return body.get("data")

    # ── Endpoints ────────────────────────────────────────────────────────

    async def fetch_metadata(self, cache_buster: int | str) -> dict[str, Any]:
        """GET /metadata"""
        try:
            return await self._request("GET", "/metadata", params={"_": cache_buster})
        except HealthApiError as e:
            raise MetadataFetchError(str(e), e.status_code) from e

    async def run_category(self, category: str, cache_buster: int | str = "") -> dict[str, Any]:
        """POST /category — returns ``{category, results}``."""
        params: dict[str, Any] = {"category": category}
        if cache_buster:
            params["_"] = cache_buster
        return await self._request("POST", "/category", params=params)

    async def run_check(self, slug: str) -> dict[str, Any]:
        """GET /check"""
        return await self._request("GET", "/check", params={"slug": slug})

    async def stats(self, cache_ttl: int = 0) -> dict[str, Any]:
        """GET /stats"""
        params = {"cache": 1, "cache_ttl": cache_ttl} if cache_ttl > 0 else None
        return await self._request("GET", "/stats", params=params)

    async def clear_cache(self) -> None:
        """POST /cache/clear"""
        await self._request("POST", "/cache/clear")
