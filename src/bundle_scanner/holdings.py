"""
Current holdings aggregation.

Reads how many tokens a set of wallets still holds. One lookup per
wallet, all in flight together; holdings are best-effort telemetry, so a
failed lookup is logged, counted as zero and never cancels its siblings.
An open chain-reader circuit is not a per-wallet failure; it propagates.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from .data_sources.solana_rpc import SolanaRpcClient
from .errors import CircuitOpen
from .models import Bundle, HoldingsResult, TokenInfo
from config import MAX_CONCURRENT_RPC

logger = logging.getLogger(__name__)


async def current_holdings(
    rpc: SolanaRpcClient,
    wallets: Iterable[str],
    mint: str,
    token_decimals: int,
    *,
    concurrency: int = MAX_CONCURRENT_RPC,
) -> HoldingsResult:
    """Return raw per-wallet balances of *mint* and their human-scaled total."""
    unique = sorted(set(wallets))
    sem = asyncio.Semaphore(concurrency)

    async def _throttled(w: str) -> Optional[int]:
        async with sem:
            return await _wallet_balance(rpc, w, mint)

    balances = await asyncio.gather(*[_throttled(w) for w in unique])

    result = HoldingsResult()
    for wallet, balance in zip(unique, balances):
        if balance is None:
            result.failed_wallets.append(wallet)
            balance = 0
        result.per_wallet[wallet] = balance
        result.total_raw += balance
    result.total = result.total_raw / 10 ** token_decimals

    if result.failed_wallets:
        logger.warning(
            "Holdings lookup failed for %d/%d wallets of %s",
            len(result.failed_wallets), len(unique), mint[:8],
        )
    return result


def apply_bundle_holdings(
    bundles: Iterable[Bundle],
    holdings: HoldingsResult,
    token_info: TokenInfo,
) -> None:
    """Fill each bundle's holding fields from its participants' balances."""
    for bundle in bundles:
        raw = sum(holdings.per_wallet.get(w, 0) for w in bundle.wallets)
        bundle.holding_amount_raw = raw
        bundle.holding_amount = raw / 10 ** token_info.decimals
        bundle.holding_percentage = raw / token_info.total_supply_raw * 100


async def _wallet_balance(rpc: SolanaRpcClient, wallet: str, mint: str) -> Optional[int]:
    """Sum every token account of *wallet* for *mint*; ``None`` on failure."""
    try:
        accounts = await rpc.get_token_account_balances(wallet, mint)
    except CircuitOpen:
        raise
    except Exception as exc:
        logger.warning("Holdings lookup failed for %s: %s", wallet[:8], exc)
        return None
    return sum(accounts, 0)
