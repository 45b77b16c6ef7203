"""
Funding source resolution.

Finds the nearest identifiable wallet that sent SOL into a given wallet.
This is a bounded scan, not a provenance trace:

1. Read up to ``FUNDING_MAX_SIGNATURES`` signatures. A wallet at the cap
   has too much history for its first funder to be meaningful; skip it.
2. Walk the oldest ``FUNDING_MAX_TX_CHECKED`` transactions, oldest first.
3. In each, look for a System Program ``transfer`` into the wallet; if
   none, and the wallet's lamport balance rose, take the account that
   lost the most lamports.

At most one funder is returned. Errors propagate; the classifier decides
how a failed lookup is treated.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .data_sources.solana_rpc import SolanaRpcClient
from .models import FundingDetails, WalletFundingRecord
from config import FUNDING_MAX_SIGNATURES, FUNDING_MAX_TX_CHECKED, SOL_DECIMALS

logger = logging.getLogger(__name__)

_LAMPORTS_PER_SOL = 10 ** SOL_DECIMALS

# Accounts that move lamports in a transaction without being a funder
_SKIP_ACCOUNTS: frozenset[str] = frozenset({
    "11111111111111111111111111111111",                    # System Program
    "ComputeBudget111111111111111111111111111111",          # Compute Budget
    "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",      # SPL Token Program
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJe8bXV",     # Associated Token Program
})


async def resolve_funder(
    rpc: SolanaRpcClient,
    wallet: str,
    *,
    max_signatures: int = FUNDING_MAX_SIGNATURES,
    max_tx_checked: int = FUNDING_MAX_TX_CHECKED,
) -> WalletFundingRecord:
    """Return the funding record of *wallet* (funder ``None`` when not found)."""
    record = WalletFundingRecord(wallet=wallet)

    sigs = await rpc.get_signatures(wallet, max_signatures)
    if len(sigs) >= max_signatures:
        logger.debug(
            "Wallet %s has %d+ signatures – skipping funding scan", wallet[:8], max_signatures
        )
        return record

    # Signatures come newest first; the funding tx is among the oldest
    for sig_info in reversed(sigs[-max_tx_checked:]):
        signature = sig_info.get("signature")
        if not signature or sig_info.get("err"):
            continue
        tx = await rpc.get_transaction(signature)
        if not tx:
            continue
        found = find_funder_in_tx(tx, wallet)
        if found is None:
            continue
        funder, lamports, label = found
        block_time = sig_info.get("blockTime") or tx.get("blockTime")
        record.funder_address = funder
        record.funding_details = FundingDetails(
            amount=lamports / _LAMPORTS_PER_SOL,
            timestamp=(
                datetime.fromtimestamp(block_time, tz=timezone.utc) if block_time else None
            ),
            tx_hash=signature,
            source_label=label,
        )
        logger.debug("Funder of %s is %s (%s)", wallet[:8], funder[:8], label)
        return record

    return record


def find_funder_in_tx(
    tx: dict[str, Any], recipient: str
) -> Optional[tuple[str, int, str]]:
    """Return ``(funder, lamports, source_label)`` if *tx* funds *recipient*."""
    message = (tx.get("transaction") or {}).get("message") or {}
    for ix in message.get("instructions") or []:
        if not isinstance(ix, dict):
            continue
        parsed = ix.get("parsed")
        if (
            ix.get("program") == "system"
            and isinstance(parsed, dict)
            and parsed.get("type") == "transfer"
        ):
            info = parsed.get("info") or {}
            if info.get("destination") == recipient and info.get("source"):
                return info["source"], int(info.get("lamports") or 0), "system_transfer"

    return _funder_from_balance_change(tx, recipient)


def _funder_from_balance_change(
    tx: dict[str, Any], recipient: str
) -> Optional[tuple[str, int, str]]:
    meta = tx.get("meta") or {}
    pre = meta.get("preBalances") or []
    post = meta.get("postBalances") or []
    raw_keys = ((tx.get("transaction") or {}).get("message") or {}).get("accountKeys") or []
    keys = [(k.get("pubkey", "") if isinstance(k, dict) else str(k)) for k in raw_keys]

    if recipient not in keys:
        return None
    rec_idx = keys.index(recipient)
    if rec_idx >= len(post) or rec_idx >= len(pre):
        return None
    received = post[rec_idx] - pre[rec_idx]
    if received <= 0:
        return None

    best: Optional[str] = None
    best_loss = 0
    for i, key in enumerate(keys):
        if key == recipient or key in _SKIP_ACCOUNTS or i >= len(post) or i >= len(pre):
            continue
        loss = pre[i] - post[i]
        if loss > best_loss:
            best, best_loss = key, loss
    if best is None:
        return None
    return best, received, "balance_change"
