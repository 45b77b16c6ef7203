"""
Team wallet classification.

No on-chain flag marks a wallet as belonging to a token's team, so the
set is re-derived on every call from two independent rules, unioned:

* **Freshness**: a wallet with at most ``FRESH_WALLET_THRESHOLD``
  signatures was most likely created for this launch.
* **Common funder**: when one funder fed more than one of the analysed
  wallets, every wallet it funded is promoted, fresh or not.

A failed lookup fails open toward exclusion: the wallet is treated as not
fresh / unfunded and classification carries on with the rest. An open
chain-reader circuit is not a per-wallet failure and propagates.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Iterable, Optional

from .data_sources.solana_rpc import SolanaRpcClient
from .errors import CircuitOpen
from .funding_analyzer import resolve_funder
from .models import TeamClassification, WalletFundingRecord
from config import FRESH_WALLET_THRESHOLD, MAX_CONCURRENT_RPC

logger = logging.getLogger(__name__)

FunderResolver = Callable[[SolanaRpcClient, str], Awaitable[WalletFundingRecord]]


async def classify(
    wallets: Iterable[str],
    rpc: SolanaRpcClient,
    *,
    resolve: FunderResolver = resolve_funder,
    fresh_threshold: int = FRESH_WALLET_THRESHOLD,
    concurrency: int = MAX_CONCURRENT_RPC,
) -> TeamClassification:
    """Classify *wallets* into team / non-team."""
    unique = sorted(set(wallets))
    result = TeamClassification()
    if not unique:
        return result

    sem = asyncio.Semaphore(concurrency)

    async def _throttled_fresh(w: str) -> bool:
        async with sem:
            return await _is_fresh(rpc, w, fresh_threshold)

    async def _throttled_funding(w: str) -> WalletFundingRecord:
        async with sem:
            return await _lookup_funding(rpc, w, resolve)

    fresh_flags, records = await asyncio.gather(
        asyncio.gather(*[_throttled_fresh(w) for w in unique]),
        asyncio.gather(*[_throttled_funding(w) for w in unique]),
    )

    result.funding_by_wallet = {r.wallet: r for r in records}
    result.fresh_wallets = {w for w, fresh in zip(unique, fresh_flags) if fresh}

    # Transient funder → funded adjacency, discarded with the call
    funded_by: dict[str, set[str]] = defaultdict(set)
    for record in records:
        if record.funder_address:
            funded_by[record.funder_address].add(record.wallet)

    result.common_funders = {
        funder: sorted(funded)
        for funder, funded in funded_by.items()
        if len(funded) > 1
    }

    team = set(result.fresh_wallets)
    for funded in result.common_funders.values():
        team.update(funded)
    result.team_wallets = team

    logger.info(
        "Classified %d wallets: %d fresh, %d common funders, %d team",
        len(unique),
        len(result.fresh_wallets),
        len(result.common_funders),
        len(team),
    )
    return result


async def _is_fresh(rpc: SolanaRpcClient, wallet: str, threshold: int) -> bool:
    # Ask for one more than the threshold so the boundary is observable
    try:
        count = await rpc.get_signature_count(wallet, threshold + 1)
    except CircuitOpen:
        raise
    except Exception as exc:
        logger.warning("Freshness lookup failed for %s: %s", wallet[:8], exc)
        return False
    return count <= threshold


async def _lookup_funding(
    rpc: SolanaRpcClient,
    wallet: str,
    resolve: FunderResolver,
) -> WalletFundingRecord:
    try:
        record: Optional[WalletFundingRecord] = await resolve(rpc, wallet)
    except CircuitOpen:
        raise
    except Exception as exc:
        logger.warning("Funding lookup failed for %s: %s", wallet[:8], exc)
        return WalletFundingRecord(wallet=wallet)
    if record is None:
        return WalletFundingRecord(wallet=wallet)
    return record
