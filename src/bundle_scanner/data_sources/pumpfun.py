"""
pump.fun frontend API client for the Bundle Scanner.

Primary trade provider: every trade on a pump.fun bonding curve, with the
block slot it landed in. Uses ``httpx`` for async HTTP with retry +
exponential backoff.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..circuit_breaker import CircuitBreaker, CircuitOpenError
from ..errors import CircuitOpen, UpstreamUnavailable
from ._retry import async_http_get

logger = logging.getLogger(__name__)

# Retry configuration
_MAX_RETRIES = 3
_BACKOFF_BASE = 1.0  # seconds


class PumpFunClient:
    """Async wrapper around the pump.fun trade history endpoint."""

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
                    "Referer": "https://pump.fun/",
                    "Origin": "https://pump.fun",
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def get_trades(self, mint: str, limit: int, offset: int) -> list[dict[str, Any]]:
        """Return one page of trades for *mint*, oldest offset first.

        Raises ``UpstreamUnavailable`` on failure or when the body is not
        a list (pump.fun answers unknown mints with an error object).
        """
        if not mint:
            raise ValueError("mint address is required")
        url = f"{self._base_url}/trades/all/{mint}"
        params = {"limit": limit, "offset": offset, "minimumSize": 0}
        data = await self._get(url, params=params)
        if not isinstance(data, list):
            raise UpstreamUnavailable("pump.fun", f"unexpected trades body for {mint}")
        return data

    async def has_token(self, mint: str) -> bool:
        """Return True if pump.fun lists trades for *mint*.

        A single unretried request that bypasses the circuit breaker: an
        unknown mint answers with an HTTP error, which says nothing about
        the host's health. Raises ``CircuitOpen`` while the breaker is
        rejecting, since the venue cannot be told then.
        """
        if self._cb is not None and self._cb.is_rejecting():
            raise CircuitOpen("pump.fun")
        client = await self._get_client()
        try:
            data = await async_http_get(
                client, f"{self._base_url}/trades/all/{mint}",
                params={"limit": 1, "offset": 0, "minimumSize": 0},
                max_retries=1, label="pump.fun",
            )
        except UpstreamUnavailable as exc:
            logger.debug("Token %s not found on pump.fun: %s", mint[:8], exc)
            return False
        return isinstance(data, list)

    async def _get(self, url: str, *, params: dict[str, Any]) -> Any:
        client = await self._get_client()

        async def _do() -> Any:
            return await async_http_get(
                client, url, params=params,
                max_retries=_MAX_RETRIES, backoff_base=_BACKOFF_BASE,
                label="pump.fun",
            )

        if self._cb is None:
            return await _do()
        try:
            return await self._cb.call(_do)
        except CircuitOpenError as exc:
            logger.warning("pump.fun circuit OPEN – fast-failing %s", url)
            raise CircuitOpen("pump.fun") from exc
