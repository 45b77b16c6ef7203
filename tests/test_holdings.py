"""Unit tests for bundle_scanner.holdings."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from bundle_scanner.bundle_grouper import group_into_bundles
from bundle_scanner.circuit_breaker import CircuitBreaker, CircuitState
from bundle_scanner.data_sources.solana_rpc import SolanaRpcClient
from bundle_scanner.errors import CircuitOpen, RpcRequestError
from bundle_scanner.holdings import apply_bundle_holdings, current_holdings
from bundle_scanner.models import HoldingsResult, TokenInfo
from conftest import make_trade


@pytest.mark.asyncio
async def test_sums_token_accounts(rpc):
    rpc.get_token_account_balances.return_value = [500, 300]
    result = await current_holdings(rpc, ["W"], "MINT", 2)
    assert result.per_wallet == {"W": 800}
    assert result.total_raw == 800
    assert result.total == pytest.approx(8.0)
    assert result.failed_wallets == []


@pytest.mark.asyncio
async def test_failed_lookup_counts_as_zero(rpc):
    async def _balances(wallet, mint):
        if wallet == "BAD":
            raise RuntimeError("timeout")
        return [1_000]

    rpc.get_token_account_balances = AsyncMock(side_effect=_balances)
    result = await current_holdings(rpc, ["OK", "BAD"], "MINT", 3)

    assert result.per_wallet == {"BAD": 0, "OK": 1_000}
    assert result.failed_wallets == ["BAD"]
    assert result.total == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_each_wallet_read_once(rpc):
    rpc.get_token_account_balances.return_value = [1]
    result = await current_holdings(rpc, ["A", "B", "A"], "MINT", 0)
    assert result.total_raw == 2
    assert rpc.get_token_account_balances.await_count == 2


@pytest.mark.asyncio
async def test_no_accounts(rpc):
    result = await current_holdings(rpc, ["A"], "MINT", 6)
    assert result.per_wallet == {"A": 0}
    assert result.total == 0


@pytest.mark.asyncio
async def test_open_circuit_propagates(rpc):
    rpc.get_token_account_balances = AsyncMock(side_effect=CircuitOpen("Solana RPC"))
    with pytest.raises(CircuitOpen):
        await current_holdings(rpc, ["A", "B"], "MINT", 0)


def _rpc_response(body):
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = body
    resp.raise_for_status = MagicMock()
    return resp


@pytest.mark.asyncio
async def test_rejected_requests_do_not_trip_reader_breaker():
    breaker = CircuitBreaker(
        "rpc", failure_threshold=8, recovery_timeout=60,
        ignored_exceptions=(RpcRequestError,),
    )
    rpc = SolanaRpcClient("https://rpc.example.com", circuit_breaker=breaker)
    bad = [f"BAD{i}" for i in range(8)]
    good = [f"GOOD{i}" for i in range(5)]

    async def _post(url, json=None):
        wallet = json["params"][0]
        if wallet.startswith("BAD"):
            error = {"code": -32602, "message": "Invalid param"}
            return _rpc_response({"jsonrpc": "2.0", "id": 1, "error": error})
        account = {"account": {"data": {"parsed": {"info": {"tokenAmount": {"amount": "1000"}}}}}}
        return _rpc_response({"jsonrpc": "2.0", "id": 1, "result": {"value": [account]}})

    http = AsyncMock()
    http.is_closed = False
    http.post = AsyncMock(side_effect=_post)
    rpc._client = http

    # Sorted order puts every rejected wallet before the good ones
    result = await current_holdings(rpc, bad + good, "MINT", 0, concurrency=1)

    assert result.total_raw == 5_000
    assert sorted(result.failed_wallets) == bad
    assert breaker.state is CircuitState.CLOSED


def test_apply_bundle_holdings():
    trades = [
        make_trade("A", 1, 10, 1), make_trade("B", 1, 10, 1),
        make_trade("B", 2, 10, 1), make_trade("C", 2, 10, 1),
    ]
    bundles = group_into_bundles(trades, 2)
    holdings = HoldingsResult(per_wallet={"A": 100, "B": 200, "C": 0}, total_raw=300, total=3.0)
    info = TokenInfo(address="MINT", decimals=2, total_supply_raw=10_000, total_supply=100.0)

    apply_bundle_holdings(bundles, holdings, info)

    by_key = {b.settlement_key: b for b in bundles}
    assert by_key[1].holding_amount_raw == 300
    assert by_key[1].holding_amount == pytest.approx(3.0)
    assert by_key[1].holding_percentage == pytest.approx(3.0)
    # B appears in both bundles and counts in each
    assert by_key[2].holding_amount_raw == 200
    assert by_key[2].holding_percentage == pytest.approx(2.0)
