"""
Trade history pagination.

Pulls the complete trade history of a token from a trade provider and
normalises every record into a :class:`Trade`. Pagination is strictly
sequential: each page offset depends on the size of the previous page.

Any failed page aborts the whole fetch. A truncated history would make
every downstream percentage silently wrong, so nothing here is
best-effort.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .data_sources.gmgn import GmgnClient
from .data_sources.pumpfun import PumpFunClient
from .errors import UpstreamUnavailable
from .models import Trade
from config import GMGN_PAGE_SIZE, SOL_DECIMALS, TRADE_PAGE_SIZE, TRADE_RECORD_CAP

logger = logging.getLogger(__name__)


async def fetch_all_trades(
    client: PumpFunClient,
    mint: str,
    record_cap: int = TRADE_RECORD_CAP,
    *,
    page_size: int = TRADE_PAGE_SIZE,
) -> list[Trade]:
    """Return every pump.fun trade of *mint*, up to *record_cap* records.

    Pages of *page_size* are requested at offsets 0, page_size, ... until a
    page comes back short or the cap is reached.
    """
    trades: list[Trade] = []
    offset = 0
    while len(trades) < record_cap:
        logger.debug("Fetching pump.fun trades for %s offset=%d limit=%d", mint[:8], offset, page_size)
        page = await client.get_trades(mint, page_size, offset)
        trades.extend(normalize_pumpfun_trade(record) for record in page)
        if len(page) < page_size:
            break
        offset += page_size

    if len(trades) > record_cap:
        del trades[record_cap:]
    logger.debug("Fetched %d pump.fun trades for %s", len(trades), mint[:8])
    return trades


async def fetch_timestamp_trades(
    client: GmgnClient,
    mint: str,
    token_decimals: int,
    record_cap: int = TRADE_RECORD_CAP,
    *,
    page_size: int = GMGN_PAGE_SIZE,
) -> list[Trade]:
    """Return GMGN trades of *mint* keyed by timestamp, up to *record_cap*.

    Follows the ``next`` cursor until it disappears, a page is empty, or
    the cap is reached.
    """
    trades: list[Trade] = []
    cursor: Optional[str] = None
    while len(trades) < record_cap:
        page, cursor = await client.get_trades(mint, page_size, cursor)
        trades.extend(normalize_gmgn_trade(record, token_decimals) for record in page)
        if not page or not cursor:
            break

    if len(trades) > record_cap:
        del trades[record_cap:]
    logger.debug("Fetched %d GMGN trades for %s", len(trades), mint[:8])
    return trades


# ---------------------------------------------------------------------------
# Record normalisation
# ---------------------------------------------------------------------------

def normalize_pumpfun_trade(record: dict[str, Any]) -> Trade:
    """Map a pump.fun trade record onto :class:`Trade`.

    pump.fun amounts are already raw integers (token units and lamports).
    """
    wallet = record.get("user")
    slot = record.get("slot")
    if not wallet or slot is None:
        raise UpstreamUnavailable("pump.fun", f"malformed trade record: {record!r}")
    try:
        return Trade(
            wallet=wallet,
            settlement_key=int(slot),
            side="buy" if record.get("is_buy") else "sell",
            token_amount_raw=_to_int(record.get("token_amount")),
            quote_amount_raw=_to_int(record.get("sol_amount")),
            tx_hash=record.get("signature") or "",
        )
    except (TypeError, ValueError) as exc:
        raise UpstreamUnavailable("pump.fun", f"malformed trade record: {exc}") from exc


def normalize_gmgn_trade(record: dict[str, Any], token_decimals: int) -> Trade:
    """Map a GMGN trade record onto :class:`Trade`.

    GMGN amounts are human-scaled decimals; they are scaled back to raw
    integers through ``Decimal`` so no float rounding leaks in.
    """
    wallet = record.get("maker")
    timestamp = record.get("timestamp")
    if not wallet or timestamp is None:
        raise UpstreamUnavailable("GMGN", f"malformed trade record: {record!r}")
    try:
        return Trade(
            wallet=wallet,
            settlement_key=int(timestamp),
            side="buy" if record.get("event") == "buy" else "sell",
            token_amount_raw=_scale_to_raw(record.get("base_amount"), token_decimals),
            quote_amount_raw=_scale_to_raw(record.get("quote_amount"), SOL_DECIMALS),
            tx_hash=record.get("tx_hash") or "",
        )
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise UpstreamUnavailable("GMGN", f"malformed trade record: {exc}") from exc


def _to_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, float):
        # Some pages serialise large amounts as floats; go through str
        return int(Decimal(repr(value)))
    return int(value)


def _scale_to_raw(value: Any, decimals: int) -> int:
    if value is None or value == "":
        return 0
    return int(Decimal(str(value)).scaleb(decimals))
