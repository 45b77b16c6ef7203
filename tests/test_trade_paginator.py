"""Unit tests for bundle_scanner.trade_paginator."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from bundle_scanner.errors import UpstreamUnavailable
from bundle_scanner.trade_paginator import (
    fetch_all_trades,
    fetch_timestamp_trades,
    normalize_gmgn_trade,
    normalize_pumpfun_trade,
)
from conftest import pumpfun_record


def _pumpfun_client(pages):
    client = MagicMock()
    client.get_trades = AsyncMock(side_effect=pages)
    return client


def _page(n, start=0):
    return [pumpfun_record(f"W{start + i}", start + i, 100, 1) for i in range(n)]


# ===================================================================
# fetch_all_trades
# ===================================================================

class TestFetchAllTrades:

    @pytest.mark.asyncio
    async def test_stops_on_short_page(self):
        client = _pumpfun_client([_page(3), _page(3, 3), _page(1, 6)])
        trades = await fetch_all_trades(client, "MINT", 100, page_size=3)
        assert len(trades) == 7
        offsets = [call.args[2] for call in client.get_trades.call_args_list]
        assert offsets == [0, 3, 6]

    @pytest.mark.asyncio
    async def test_empty_page_ends_fetch(self):
        client = _pumpfun_client([_page(2), []])
        trades = await fetch_all_trades(client, "MINT", 100, page_size=2)
        assert len(trades) == 2
        assert client.get_trades.await_count == 2

    @pytest.mark.asyncio
    async def test_record_cap_truncates(self):
        client = _pumpfun_client([_page(4), _page(4, 4), _page(4, 8)])
        trades = await fetch_all_trades(client, "MINT", 6, page_size=4)
        assert len(trades) == 6
        assert client.get_trades.await_count == 2

    @pytest.mark.asyncio
    async def test_no_trades(self):
        client = _pumpfun_client([[]])
        assert await fetch_all_trades(client, "MINT", 100) == []

    @pytest.mark.asyncio
    async def test_page_failure_aborts(self):
        client = _pumpfun_client([_page(2), UpstreamUnavailable("pump.fun", "HTTP 500")])
        with pytest.raises(UpstreamUnavailable):
            await fetch_all_trades(client, "MINT", 100, page_size=2)

    @pytest.mark.asyncio
    async def test_trades_are_normalised(self):
        client = _pumpfun_client([[pumpfun_record("A", 42, 1234, 99, is_buy=False)]])
        [trade] = await fetch_all_trades(client, "MINT", 100)
        assert trade.wallet == "A"
        assert trade.settlement_key == 42
        assert trade.side == "sell"
        assert trade.token_amount_raw == 1234
        assert trade.quote_amount_raw == 99


# ===================================================================
# fetch_timestamp_trades
# ===================================================================

def _gmgn_record(maker, ts, base, quote, event="buy"):
    return {
        "maker": maker,
        "timestamp": ts,
        "event": event,
        "base_amount": base,
        "quote_amount": quote,
        "tx_hash": f"h-{maker}-{ts}",
    }


class TestFetchTimestampTrades:

    @pytest.mark.asyncio
    async def test_follows_cursor(self):
        client = MagicMock()
        client.get_trades = AsyncMock(side_effect=[
            ([_gmgn_record("A", 1, "1", "0.5")], "c1"),
            ([_gmgn_record("B", 1, "2", "0.25")], None),
        ])
        trades = await fetch_timestamp_trades(client, "MINT", 6, 100)
        assert [t.wallet for t in trades] == ["A", "B"]
        cursors = [call.args[2] for call in client.get_trades.call_args_list]
        assert cursors == [None, "c1"]

    @pytest.mark.asyncio
    async def test_empty_page_ends_fetch(self):
        client = MagicMock()
        client.get_trades = AsyncMock(return_value=([], "still-a-cursor"))
        assert await fetch_timestamp_trades(client, "MINT", 6, 100) == []
        assert client.get_trades.await_count == 1

    @pytest.mark.asyncio
    async def test_cap(self):
        page = [_gmgn_record(f"W{i}", i, "1", "1") for i in range(5)]
        client = MagicMock()
        client.get_trades = AsyncMock(return_value=(page, "next"))
        trades = await fetch_timestamp_trades(client, "MINT", 0, 12)
        assert len(trades) == 12
        assert client.get_trades.await_count == 3


# ===================================================================
# Normalisation
# ===================================================================

class TestNormalize:

    def test_pumpfun_missing_user(self):
        with pytest.raises(UpstreamUnavailable):
            normalize_pumpfun_trade({"slot": 1, "is_buy": True})

    def test_pumpfun_bad_amount(self):
        record = pumpfun_record("A", 1, 0, 0)
        record["token_amount"] = "not-a-number"
        with pytest.raises(UpstreamUnavailable):
            normalize_pumpfun_trade(record)

    def test_pumpfun_float_amount(self):
        record = pumpfun_record("A", 1, 0, 0)
        record["token_amount"] = 1.5e15
        assert normalize_pumpfun_trade(record).token_amount_raw == 1_500_000_000_000_000

    def test_pumpfun_missing_amount_is_zero(self):
        record = pumpfun_record("A", 1, 0, 0)
        del record["sol_amount"]
        assert normalize_pumpfun_trade(record).quote_amount_raw == 0

    def test_gmgn_scales_without_float_drift(self):
        trade = normalize_gmgn_trade(_gmgn_record("A", 10, "0.1", "0.3"), 6)
        assert trade.token_amount_raw == 100_000
        assert trade.quote_amount_raw == 300_000_000
        assert trade.side == "buy"

    def test_gmgn_numeric_amounts(self):
        trade = normalize_gmgn_trade(_gmgn_record("A", 10, 0.1, 2, event="sell"), 6)
        assert trade.token_amount_raw == 100_000
        assert trade.quote_amount_raw == 2_000_000_000
        assert trade.side == "sell"

    def test_gmgn_missing_timestamp(self):
        record = _gmgn_record("A", 0, "1", "1")
        record["timestamp"] = None
        with pytest.raises(UpstreamUnavailable):
            normalize_gmgn_trade(record, 6)

    def test_gmgn_bad_amount(self):
        with pytest.raises(UpstreamUnavailable):
            normalize_gmgn_trade(_gmgn_record("A", 1, "abc", "1"), 6)
