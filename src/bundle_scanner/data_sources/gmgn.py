"""
GMGN quotation API client for the Bundle Scanner.

Secondary trade provider, used for tokens that did not launch on
pump.fun. Trades carry a unix timestamp instead of a slot and
human-scaled decimal amounts. Pagination is cursor based.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..circuit_breaker import CircuitBreaker, CircuitOpenError
from ..errors import CircuitOpen, UpstreamUnavailable
from ._retry import async_http_get

logger = logging.getLogger(__name__)

# Retry configuration
_MAX_RETRIES = 3
_BACKOFF_BASE = 1.0  # seconds


class GmgnClient:
    """Async wrapper around the GMGN Solana trades endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 15,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._cb = circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={
                    "Accept": "application/json, text/plain, */*",
                    "Referer": "https://gmgn.ai/",
                    "Origin": "https://gmgn.ai",
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def get_trades(
        self,
        mint: str,
        limit: int = 100,
        cursor: Optional[str] = None,
    ) -> tuple[list[dict[str, Any]], Optional[str]]:
        """Return ``(trades, next_cursor)`` for one page of *mint* trades.

        ``next_cursor`` is ``None`` once the history is exhausted.
        """
        url = f"{self._base_url}/trades/sol/{mint}"
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["cursor"] = cursor
        body = await self._get(url, params=params)
        if not isinstance(body, dict):
            raise UpstreamUnavailable("GMGN", f"unexpected trades body for {mint}")
        data = body.get("data") or {}
        history = data.get("history")
        if history is None:
            raise UpstreamUnavailable("GMGN", f"no trade history in body for {mint}")
        return list(history), data.get("next") or None

    async def _get(self, url: str, *, params: dict[str, Any]) -> Any:
        client = await self._get_client()

        async def _do() -> Any:
            return await async_http_get(
                client, url, params=params,
                max_retries=_MAX_RETRIES, backoff_base=_BACKOFF_BASE,
                label="GMGN",
            )

        if self._cb is None:
            return await _do()
        try:
            return await self._cb.call(_do)
        except CircuitOpenError as exc:
            logger.warning("GMGN circuit OPEN – fast-failing %s", url)
            raise CircuitOpen("GMGN") from exc
