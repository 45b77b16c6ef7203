"""
Bundle analysis orchestrator.

Turns a token's raw trade stream into :class:`BundleMetrics`:

  1. Read token metadata once (every percentage divides by its supply)
  2. Detect the launch venue and pick the pipeline
  3. Paginate trades and group them into bundles
  4. (team mode, pump.fun only) classify participants and reduce bundles
     to their team wallets
  5. Read current holdings of the remaining wallets
  6. Order bundles by holdings and assemble the totals

Supply is read at call time while trades are historical. If the token
was minted or burned since, ``percentage_bundled`` is approximate; it is
reported against the current supply as-is.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .bundle_grouper import group_into_bundles, reduce_to_team, sort_by_holdings
from .data_sources._clients import get_gmgn_client, get_pumpfun_client, get_rpc_client
from .data_sources.gmgn import GmgnClient
from .data_sources.pumpfun import PumpFunClient
from .data_sources.solana_rpc import SolanaRpcClient
from .holdings import apply_bundle_holdings, current_holdings
from .logging_config import start_analysis
from .models import Bundle, BundleMetrics, HoldingsResult, TokenInfo, Venue
from .trade_paginator import fetch_all_trades, fetch_timestamp_trades
from .wallet_classifier import classify
from config import SOL_DECIMALS, TRADE_RECORD_CAP

logger = logging.getLogger(__name__)


async def analyze_bundle(
    mint: str,
    record_cap: int = TRADE_RECORD_CAP,
    team_mode: bool = False,
    *,
    pumpfun: Optional[PumpFunClient] = None,
    gmgn: Optional[GmgnClient] = None,
    rpc: Optional[SolanaRpcClient] = None,
) -> BundleMetrics:
    """Bundle analysis for *mint*.

    Raises ``UpstreamUnavailable`` when a provider or the chain reader
    fails outright and ``MalformedToken`` when the token has no usable
    supply. No bundles is not an error: the metrics come back empty.
    """
    start_analysis()
    pumpfun = pumpfun or get_pumpfun_client()
    gmgn = gmgn or get_gmgn_client()
    rpc = rpc or get_rpc_client()

    token_info = await rpc.get_token_metadata(mint)
    venue = await detect_venue(pumpfun, mint)
    logger.info(
        "Analysing %s (%s) venue=%s team_mode=%s", mint[:8], token_info.symbol, venue.value, team_mode
    )

    if venue is Venue.PUMPFUN:
        return await _analyze_pumpfun(mint, record_cap, team_mode, token_info, pumpfun, rpc)

    if team_mode:
        logger.info("Team analysis is not available for non-pump.fun tokens; running regular analysis")
    return await _analyze_secondary(mint, record_cap, token_info, gmgn, rpc)


async def detect_venue(pumpfun: PumpFunClient, mint: str) -> Venue:
    """Return the launch venue: pump.fun if it lists trades for *mint*.

    An open pump.fun circuit propagates as ``CircuitOpen`` rather than
    sending a pump.fun token down the secondary pipeline.
    """
    if await pumpfun.has_token(mint):
        return Venue.PUMPFUN
    return Venue.SECONDARY


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------

async def _analyze_pumpfun(
    mint: str,
    record_cap: int,
    team_mode: bool,
    token_info: TokenInfo,
    pumpfun: PumpFunClient,
    rpc: SolanaRpcClient,
) -> BundleMetrics:
    trades = await fetch_all_trades(pumpfun, mint, record_cap)
    bundles = group_into_bundles(trades, token_info.decimals)
    logger.info("Found %d bundles in %d trades for %s", len(bundles), len(trades), mint[:8])

    if not team_mode:
        holdings = await _participant_holdings(rpc, bundles, token_info)
        return _assemble(mint, Venue.PUMPFUN, token_info, bundles, holdings)

    participants = bundle_wallets(bundles)
    classification = await classify(participants, rpc)
    team_wallets = classification.team_wallets
    team_bundles = reduce_to_team(bundles, team_wallets, token_info.decimals)

    holdings = HoldingsResult()
    if team_wallets:
        holdings = await current_holdings(rpc, team_wallets, mint, token_info.decimals)
    return _assemble(
        mint,
        Venue.PUMPFUN,
        token_info,
        team_bundles,
        holdings,
        team_wallet_count=len(team_wallets),
    )


async def _analyze_secondary(
    mint: str,
    record_cap: int,
    token_info: TokenInfo,
    gmgn: GmgnClient,
    rpc: SolanaRpcClient,
) -> BundleMetrics:
    trades = await fetch_timestamp_trades(gmgn, mint, token_info.decimals, record_cap)
    bundles = group_into_bundles(trades, token_info.decimals)
    logger.info("Found %d timestamp bundles in %d trades for %s", len(bundles), len(trades), mint[:8])
    holdings = await _participant_holdings(rpc, bundles, token_info)
    return _assemble(mint, Venue.SECONDARY, token_info, bundles, holdings)


async def _participant_holdings(
    rpc: SolanaRpcClient,
    bundles: list[Bundle],
    token_info: TokenInfo,
) -> HoldingsResult:
    participants = bundle_wallets(bundles)
    if not participants:
        return HoldingsResult()
    return await current_holdings(rpc, participants, token_info.address, token_info.decimals)


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def _assemble(
    mint: str,
    venue: Venue,
    token_info: TokenInfo,
    bundles: list[Bundle],
    holdings: HoldingsResult,
    *,
    team_wallet_count: Optional[int] = None,
) -> BundleMetrics:
    """Build the final metrics; per-bundle holdings are applied here."""
    is_team = team_wallet_count is not None
    apply_bundle_holdings(bundles, holdings, token_info)
    ordered = sort_by_holdings(bundles)

    token_raw = sum(b.token_amount_raw for b in ordered)
    quote_raw = sum(b.quote_amount_raw for b in ordered)
    total_tokens = token_raw / 10 ** token_info.decimals

    if is_team:
        # Team wallets are unique; each is counted once
        holding_raw = holdings.total_raw
    else:
        # A wallet in several bundles counts in each of them
        holding_raw = sum(b.holding_amount_raw or 0 for b in ordered)
    total_holding = holding_raw / 10 ** token_info.decimals

    metrics = BundleMetrics(
        mint=mint,
        venue=venue,
        is_team_analysis=is_team,
        total_bundles=len(ordered),
        total_team_wallets=team_wallet_count or 0,
        total_tokens_bundled=total_tokens,
        percentage_bundled=_percent_of_supply(token_raw, token_info),
        total_sol_spent=quote_raw / 10 ** SOL_DECIMALS,
        total_holding_amount=total_holding,
        total_holding_amount_percentage=_percent_of_supply(holding_raw, token_info),
        bundles=ordered,
        token_info=token_info,
    )
    if not ordered:
        logger.info("No bundles found for %s", mint[:8])
    else:
        logger.info(
            "Bundle summary for %s: %d bundles, %.2f%% bundled, %.2f%% still held",
            mint[:8],
            metrics.total_bundles,
            metrics.percentage_bundled,
            metrics.total_holding_amount_percentage,
        )
    return metrics


def _percent_of_supply(raw: int, token_info: TokenInfo) -> float:
    return raw / token_info.total_supply_raw * 100


def bundle_wallets(bundles: Iterable[Bundle]) -> set[str]:
    """Return every wallet that appears in at least one bundle."""
    return {w for b in bundles for w in b.wallets}
