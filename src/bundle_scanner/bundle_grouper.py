"""
Bundle grouping.

A *bundle* is the set of buy trades that two or more distinct wallets
landed in the same settlement unit: the same block slot on pump.fun, or
the same timestamp on a secondary venue. One wallet buying several times
in one slot is not a bundle; coordination needs at least two actors.

Raw amounts are summed as ``int`` and scaled to human units exactly once,
when the :class:`Bundle` is built.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from .models import Bundle, Trade
from config import SOL_DECIMALS

logger = logging.getLogger(__name__)

MIN_BUNDLE_WALLETS = 2


def group_into_bundles(
    trades: Iterable[Trade],
    token_decimals: int,
    *,
    quote_decimals: int = SOL_DECIMALS,
) -> list[Bundle]:
    """Partition buy trades by settlement key and keep multi-wallet groups.

    Returned bundles are ordered by ``tokens_bought`` descending, ties
    broken by ascending settlement key.
    """
    by_key: dict[int, list[Trade]] = defaultdict(list)
    for trade in trades:
        if trade.is_buy:
            by_key[trade.settlement_key].append(trade)

    bundles: list[Bundle] = []
    for key, key_trades in by_key.items():
        wallets = {t.wallet for t in key_trades}
        if len(wallets) < MIN_BUNDLE_WALLETS:
            continue
        bundles.append(_build_bundle(key, key_trades, token_decimals, quote_decimals))

    bundles.sort(key=_bought_order)
    logger.debug(
        "Grouped %d buy keys into %d bundles", len(by_key), len(bundles)
    )
    return bundles


def reduce_to_team(
    bundles: Iterable[Bundle],
    team_wallets: set[str],
    token_decimals: int,
    *,
    quote_decimals: int = SOL_DECIMALS,
) -> list[Bundle]:
    """Restrict each bundle to its team-flagged participants.

    Aggregates are recomputed from the team subset of the bundle's trades,
    never inherited. Bundles left without any team wallet are dropped; a
    reduced bundle may keep a single wallet.
    """
    reduced: list[Bundle] = []
    for bundle in bundles:
        team_trades = [t for t in bundle.trades if t.wallet in team_wallets]
        if not team_trades:
            continue
        reduced.append(
            _build_bundle(bundle.settlement_key, team_trades, token_decimals, quote_decimals)
        )
    reduced.sort(key=_bought_order)
    return reduced


def sort_by_holdings(bundles: list[Bundle]) -> list[Bundle]:
    """Order bundles by current holding, then tokens bought, then key.

    What a bundle still holds says more than what it bought: most
    buy/sell activity nets out near zero.
    """
    return sorted(
        bundles,
        key=lambda b: (-(b.holding_amount_raw or 0), -b.token_amount_raw, b.settlement_key),
    )


def _build_bundle(
    key: int,
    trades: list[Trade],
    token_decimals: int,
    quote_decimals: int,
) -> Bundle:
    token_raw = sum(t.token_amount_raw for t in trades)
    quote_raw = sum(t.quote_amount_raw for t in trades)
    wallets = sorted({t.wallet for t in trades})
    return Bundle(
        settlement_key=key,
        wallets=wallets,
        unique_wallets_count=len(wallets),
        token_amount_raw=token_raw,
        quote_amount_raw=quote_raw,
        tokens_bought=token_raw / 10 ** token_decimals,
        sol_spent=quote_raw / 10 ** quote_decimals,
        trades=list(trades),
    )


def _bought_order(bundle: Bundle) -> tuple[int, int]:
    return (-bundle.token_amount_raw, bundle.settlement_key)
