"""Shared test fixtures for the Bundle Scanner test suite."""

from __future__ import annotations

import sys
import os

# Ensure src/ is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from unittest.mock import AsyncMock, MagicMock

import pytest

from bundle_scanner.models import Trade


def make_trade(
    wallet: str,
    key: int,
    token: int,
    quote: int,
    *,
    side: str = "buy",
    tx_hash: str = "",
) -> Trade:
    return Trade(
        wallet=wallet,
        settlement_key=key,
        side=side,
        token_amount_raw=token,
        quote_amount_raw=quote,
        tx_hash=tx_hash or f"tx-{wallet}-{key}-{token}",
    )


def pumpfun_record(
    user: str,
    slot: int,
    token_amount: int,
    sol_amount: int,
    *,
    is_buy: bool = True,
    signature: str = "",
) -> dict:
    """Minimal pump.fun trade record."""
    return {
        "signature": signature or f"sig-{user}-{slot}",
        "mint": "MINT_PUMP",
        "user": user,
        "slot": slot,
        "is_buy": is_buy,
        "token_amount": token_amount,
        "sol_amount": sol_amount,
        "timestamp": 1_700_000_000 + slot,
    }


def mock_rpc() -> MagicMock:
    """A SolanaRpcClient stand-in with every public coroutine mocked."""
    rpc = MagicMock()
    rpc.get_token_metadata = AsyncMock()
    rpc.get_token_account_balances = AsyncMock(return_value=[])
    rpc.get_signature_count = AsyncMock(return_value=500)
    rpc.get_signatures = AsyncMock(return_value=[])
    rpc.get_transaction = AsyncMock(return_value=None)
    return rpc


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def scenario_trades():
    """Two wallets in slot 100, a lone wallet in slot 200."""
    return [
        make_trade("A", 100, 1000, 10),
        make_trade("B", 100, 2000, 20),
        make_trade("C", 200, 500, 5),
    ]


@pytest.fixture
def rpc():
    return mock_rpc()
