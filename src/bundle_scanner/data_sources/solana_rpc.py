"""
Solana RPC client helpers for the Bundle Scanner.

Uses the standard JSON-RPC interface plus the Helius DAS ``getAsset``
method for token metadata. Uses ``httpx`` for async HTTP with retry +
exponential backoff; every failure surfaces as ``UpstreamUnavailable``
so that callers choose where a per-wallet failure may be absorbed.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ._retry import async_http_post_json
from ..circuit_breaker import CircuitBreaker, CircuitOpenError
from ..errors import CircuitOpen, MalformedToken, UpstreamUnavailable
from ..models import TokenInfo

logger = logging.getLogger(__name__)

# Retry configuration
_MAX_RETRIES = 3
_BACKOFF_BASE = 1.5  # seconds

WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"


class SolanaRpcClient:
    """Async Solana JSON-RPC client (chain-state reader)."""

    def __init__(
        self,
        endpoint: str,
        timeout: int = 15,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._id_counter = 0
        self._cb = circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Token metadata
    # ------------------------------------------------------------------

    async def get_asset(self, mint: str) -> dict:
        """Fetch Helius DAS asset data for a mint.

        Relevant response fields::

            result.content.metadata.symbol
            result.token_info.symbol / decimals / supply
            result.token_info.price_info.price_per_token
        """
        result = await self._call("getAsset", {"id": mint})
        if isinstance(result, dict):
            return result
        return {}

    async def get_token_metadata(self, mint: str) -> TokenInfo:
        """Return :class:`TokenInfo` for *mint* (symbol, decimals, supply, price).

        The SOL asset is read too so the token price can be expressed in
        SOL. Raises ``MalformedToken`` when decimals or a non-zero supply
        are missing.
        """
        asset = await self.get_asset(mint)
        if not asset:
            raise MalformedToken(mint, "asset not found")

        token_info = asset.get("token_info") or {}
        decimals = token_info.get("decimals")
        supply = token_info.get("supply")
        if decimals is None:
            raise MalformedToken(mint, "decimals missing")
        try:
            decimals = int(decimals)
            supply_raw = int(supply) if supply is not None else 0
        except (TypeError, ValueError) as exc:
            raise MalformedToken(mint, f"unparseable supply/decimals: {exc}") from exc
        if supply_raw <= 0:
            raise MalformedToken(mint, "total supply absent or zero")

        symbol = (
            token_info.get("symbol")
            or ((asset.get("content") or {}).get("metadata") or {}).get("symbol")
            or "Unknown"
        )
        price_usd = _price_per_token(token_info)

        price_in_sol = 0.0
        if price_usd:
            try:
                sol_asset = await self.get_asset(WRAPPED_SOL_MINT)
            except UpstreamUnavailable as exc:
                # Display-only field; the analysis does not depend on it
                logger.warning("SOL price lookup failed: %s", exc)
                sol_asset = {}
            sol_price = _price_per_token(sol_asset.get("token_info") or {})
            if sol_price:
                price_in_sol = price_usd / sol_price

        return TokenInfo(
            address=mint,
            symbol=symbol,
            decimals=decimals,
            total_supply_raw=supply_raw,
            total_supply=supply_raw / 10 ** decimals,
            price_usd=price_usd,
            price_in_sol=price_in_sol,
        )

    # ------------------------------------------------------------------
    # Wallet state
    # ------------------------------------------------------------------

    async def get_token_account_balances(self, wallet: str, mint: str) -> list[int]:
        """Return the raw balance of every *mint* token account owned by *wallet*.

        A wallet may split its position across several accounts. Amounts
        are read from the ``amount`` string (exact), never ``uiAmount``.
        """
        result = await self._call(
            "getTokenAccountsByOwner",
            [
                wallet,
                {"mint": mint},
                {"encoding": "jsonParsed"},
            ],
        )
        if not isinstance(result, dict):
            return []
        balances: list[int] = []
        for account in result.get("value") or []:
            try:
                info = account["account"]["data"]["parsed"]["info"]
                amount = (info.get("tokenAmount") or {}).get("amount")
            except (KeyError, TypeError):
                logger.debug("Unparsed token account for %s: %r", wallet[:8], account)
                continue
            if amount:
                balances.append(int(amount))
        return balances

    async def get_signatures(self, address: str, limit: int = 1000) -> list[dict[str, Any]]:
        """Return up to *limit* signature infos for *address*, newest first."""
        opts = {"limit": limit, "commitment": "finalized"}
        result = await self._call("getSignaturesForAddress", [address, opts])
        if not isinstance(result, list):
            return []
        return result

    async def get_signature_count(self, wallet: str, limit: int) -> int:
        """Return how many signatures *wallet* has, counting at most *limit*."""
        return len(await self.get_signatures(wallet, limit))

    async def get_transaction(self, signature: str) -> Optional[dict[str, Any]]:
        """Fetch a transaction in ``jsonParsed`` encoding."""
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if isinstance(result, dict):
            return result
        return None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _call(self, method: str, params: list[Any] | dict) -> Any:
        """JSON-RPC call with retry + exponential backoff, guarded by circuit breaker.

        Raises ``UpstreamUnavailable`` when retries are exhausted or the
        circuit is open.
        """
        self._id_counter += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._id_counter,
            "method": method,
            "params": params,
        }
        client = await self._get_client()

        async def _do() -> Any:
            return await async_http_post_json(
                client, self._endpoint, json_payload=payload,
                max_retries=_MAX_RETRIES, backoff_base=_BACKOFF_BASE,
                label=f"Solana RPC ({method})",
            )

        if self._cb is None:
            return await _do()
        try:
            return await self._cb.call(_do)
        except CircuitOpenError as exc:
            logger.warning("Solana RPC circuit OPEN – fast-failing %s", method)
            raise CircuitOpen(f"Solana RPC ({method})") from exc


def _price_per_token(token_info: dict) -> float:
    price = (token_info.get("price_info") or {}).get("price_per_token")
    try:
        return float(price) if price is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
