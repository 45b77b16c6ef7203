"""
Pydantic models used throughout the Bundle Scanner.

Raw on-chain amounts are kept as Python ``int`` (arbitrary precision);
the human-scaled ``float`` twins are filled in once, where a value crosses
into display or percentage math.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Venue(str, Enum):
    """Launch venue of a token; selects the analysis pipeline."""

    PUMPFUN = "pumpfun"
    SECONDARY = "secondary"


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------
class Trade(BaseModel):
    """One executed swap, normalised from an upstream trade provider."""

    model_config = ConfigDict(frozen=True)

    wallet: str = Field(..., description="Wallet that executed the swap")
    settlement_key: int = Field(
        ..., description="Block slot (primary venue) or unix timestamp (secondary)"
    )
    side: Literal["buy", "sell"]
    token_amount_raw: int = Field(..., ge=0, description="Token amount in raw units")
    quote_amount_raw: int = Field(..., ge=0, description="SOL amount in lamports")
    tx_hash: str = ""

    @property
    def is_buy(self) -> bool:
        return self.side == "buy"


# ---------------------------------------------------------------------------
# Bundles
# ---------------------------------------------------------------------------
class Bundle(BaseModel):
    """Buy trades from distinct wallets sharing one settlement key."""

    settlement_key: int
    wallets: list[str] = Field(
        default_factory=list, description="Unique participant wallets, sorted"
    )
    unique_wallets_count: int = 0
    token_amount_raw: int = 0
    quote_amount_raw: int = 0
    tokens_bought: float = Field(0.0, description="Token amount, human-scaled")
    sol_spent: float = Field(0.0, description="SOL spent, human-scaled")
    trades: list[Trade] = Field(default_factory=list)
    # Filled in by holdings enrichment
    holding_amount_raw: Optional[int] = None
    holding_amount: Optional[float] = None
    holding_percentage: Optional[float] = None


# ---------------------------------------------------------------------------
# Funding / classification
# ---------------------------------------------------------------------------
class FundingDetails(BaseModel):
    """The inbound transfer identified as a wallet's funding."""

    amount: float = Field(0.0, description="SOL received in the funding tx")
    timestamp: Optional[datetime] = None
    tx_hash: str = ""
    source_label: Literal["system_transfer", "balance_change"] = "system_transfer"


class WalletFundingRecord(BaseModel):
    """Nearest identifiable funder of a wallet (not a provenance chain)."""

    wallet: str
    funder_address: Optional[str] = None
    funding_details: Optional[FundingDetails] = None


class TeamClassification(BaseModel):
    """Result of the freshness + common-funder classification."""

    funding_by_wallet: dict[str, WalletFundingRecord] = Field(default_factory=dict)
    team_wallets: set[str] = Field(default_factory=set)
    fresh_wallets: set[str] = Field(default_factory=set)
    common_funders: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Funder → funded wallets, only funders feeding more than one",
    )


# ---------------------------------------------------------------------------
# Token / holdings
# ---------------------------------------------------------------------------
class TokenInfo(BaseModel):
    """Token metadata read once at the start of an analysis."""

    address: str
    symbol: str = "Unknown"
    decimals: int = Field(..., ge=0)
    total_supply_raw: int = Field(..., ge=0)
    total_supply: float = Field(0.0, description="Supply, human-scaled")
    price_usd: float = 0.0
    price_in_sol: float = 0.0


class HoldingsResult(BaseModel):
    """Current balances of a wallet set for one mint."""

    per_wallet: dict[str, int] = Field(default_factory=dict)
    total_raw: int = 0
    total: float = 0.0
    failed_wallets: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Final result
# ---------------------------------------------------------------------------
class BundleMetrics(BaseModel):
    """Full result returned by ``analyze_bundle``."""

    mint: str
    venue: Venue
    is_team_analysis: bool = False
    total_bundles: int = 0
    total_team_wallets: int = 0
    total_tokens_bundled: float = 0.0
    percentage_bundled: float = 0.0
    total_sol_spent: float = 0.0
    total_holding_amount: float = 0.0
    total_holding_amount_percentage: float = 0.0
    bundles: list[Bundle] = Field(default_factory=list)
    token_info: TokenInfo
