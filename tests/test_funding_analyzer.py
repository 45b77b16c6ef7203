"""Unit tests for bundle_scanner.funding_analyzer."""

from __future__ import annotations

import pytest

from bundle_scanner.funding_analyzer import find_funder_in_tx, resolve_funder
from bundle_scanner.errors import UpstreamUnavailable

WALLET = "WaLLet1111111111111111111111111111111111111"
FUNDER = "FuNDer1111111111111111111111111111111111111"
SYSTEM = "11111111111111111111111111111111"


def _transfer_tx(source, destination, lamports, block_time=1_700_000_000):
    return {
        "blockTime": block_time,
        "meta": {"preBalances": [0, 0], "postBalances": [0, 0]},
        "transaction": {
            "message": {
                "accountKeys": [{"pubkey": source}, {"pubkey": destination}],
                "instructions": [
                    {
                        "program": "system",
                        "parsed": {
                            "type": "transfer",
                            "info": {
                                "source": source,
                                "destination": destination,
                                "lamports": lamports,
                            },
                        },
                    }
                ],
            }
        },
    }


def _balance_tx(keys, pre, post):
    return {
        "meta": {"preBalances": pre, "postBalances": post},
        "transaction": {"message": {"accountKeys": keys, "instructions": []}},
    }


# ===================================================================
# find_funder_in_tx
# ===================================================================

class TestFindFunderInTx:

    def test_system_transfer(self):
        tx = _transfer_tx(FUNDER, WALLET, 2_000_000_000)
        assert find_funder_in_tx(tx, WALLET) == (FUNDER, 2_000_000_000, "system_transfer")

    def test_transfer_to_someone_else(self):
        tx = _transfer_tx(FUNDER, "Other", 5)
        assert find_funder_in_tx(tx, WALLET) is None

    def test_balance_change_picks_largest_loser(self):
        tx = _balance_tx(
            [SYSTEM, "Small", FUNDER, WALLET],
            [10, 1_000, 9_000, 0],
            [0, 900, 4_000, 5_000],
        )
        assert find_funder_in_tx(tx, WALLET) == (FUNDER, 5_000, "balance_change")

    def test_balance_change_requires_increase(self):
        tx = _balance_tx([FUNDER, WALLET], [9_000, 100], [8_000, 100])
        assert find_funder_in_tx(tx, WALLET) is None

    def test_recipient_not_in_tx(self):
        tx = _balance_tx([FUNDER], [9_000], [8_000])
        assert find_funder_in_tx(tx, WALLET) is None

    def test_non_dict_instruction_skipped(self):
        tx = _transfer_tx(FUNDER, WALLET, 7)
        tx["transaction"]["message"]["instructions"].insert(0, "garbage")
        assert find_funder_in_tx(tx, WALLET)[0] == FUNDER


# ===================================================================
# resolve_funder
# ===================================================================

class TestResolveFunder:

    @pytest.mark.asyncio
    async def test_finds_system_transfer(self, rpc):
        rpc.get_signatures.return_value = [
            {"signature": "newest", "err": None, "blockTime": 1_700_000_500},
            {"signature": "oldest", "err": None, "blockTime": 1_700_000_000},
        ]
        rpc.get_transaction.return_value = _transfer_tx(FUNDER, WALLET, 1_500_000_000)

        record = await resolve_funder(rpc, WALLET)

        assert record.wallet == WALLET
        assert record.funder_address == FUNDER
        assert record.funding_details.amount == pytest.approx(1.5)
        assert record.funding_details.tx_hash == "oldest"
        assert record.funding_details.source_label == "system_transfer"
        assert record.funding_details.timestamp.year == 2023
        # Oldest first
        rpc.get_transaction.assert_awaited_once_with("oldest")

    @pytest.mark.asyncio
    async def test_skips_failed_signatures(self, rpc):
        rpc.get_signatures.return_value = [
            {"signature": "good", "err": None},
            {"signature": "bad", "err": {"InstructionError": [0, "x"]}},
        ]
        rpc.get_transaction.return_value = _transfer_tx(FUNDER, WALLET, 1)
        record = await resolve_funder(rpc, WALLET)
        assert record.funding_details.tx_hash == "good"
        rpc.get_transaction.assert_awaited_once_with("good")

    @pytest.mark.asyncio
    async def test_wallet_at_signature_cap_skipped(self, rpc):
        rpc.get_signatures.return_value = [{"signature": f"s{i}"} for i in range(5)]
        record = await resolve_funder(rpc, WALLET, max_signatures=5)
        assert record.funder_address is None
        rpc.get_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_only_oldest_transactions_checked(self, rpc):
        rpc.get_signatures.return_value = [{"signature": f"s{i}"} for i in range(20)]
        record = await resolve_funder(rpc, WALLET, max_tx_checked=3)
        assert record.funder_address is None
        checked = [call.args[0] for call in rpc.get_transaction.await_args_list]
        assert checked == ["s19", "s18", "s17"]

    @pytest.mark.asyncio
    async def test_no_history(self, rpc):
        record = await resolve_funder(rpc, WALLET)
        assert record.funder_address is None
        assert record.funding_details is None

    @pytest.mark.asyncio
    async def test_rpc_error_propagates(self, rpc):
        rpc.get_signatures.side_effect = UpstreamUnavailable("Solana RPC", "timeout")
        with pytest.raises(UpstreamUnavailable):
            await resolve_funder(rpc, WALLET)
