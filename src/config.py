"""
Project configuration file for the Bundle Scanner.

This module centralises all user-modifiable settings such as upstream
endpoints, pagination sizes, classification thresholds and other options.
You can edit these values directly or set environment variables to
override them.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _parse_float(name: str, default: str, *, low: float = 0.0, high: float = 1.0) -> float:
    """Parse an env var as a float and validate it within [low, high]."""
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.error("Invalid value for %s: %r – using default %s", name, raw, default)
        value = float(default)
    if not (low <= value <= high):
        logger.warning("%s=%.4f is outside [%.1f, %.1f] – clamped", name, value, low, high)
        value = max(low, min(value, high))
    return value


def _parse_int(name: str, default: str, *, minimum: int = 1) -> int:
    """Parse an env var as an int and enforce a minimum."""
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.error("Invalid value for %s: %r – using default %s", name, raw, default)
        value = int(default)
    if value < minimum:
        logger.warning("%s=%d is below minimum %d – clamped", name, value, minimum)
        value = minimum
    return value


# ---------------------------------------------------------------------------
# Solana RPC (Helius-compatible: DAS getAsset is required for metadata)
# ---------------------------------------------------------------------------
SOLANA_RPC_ENDPOINT: str = os.getenv(
    "SOLANA_RPC_ENDPOINT",
    "https://api.mainnet-beta.solana.com",
)

# ---------------------------------------------------------------------------
# Trade providers
# ---------------------------------------------------------------------------
PUMPFUN_BASE_URL: str = os.getenv(
    "PUMPFUN_BASE_URL",
    "https://frontend-api.pump.fun",
)
GMGN_BASE_URL: str = os.getenv(
    "GMGN_BASE_URL",
    "https://gmgn.ai/defi/quotation/v1",
)

# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------
TRADE_PAGE_SIZE: int = _parse_int("TRADE_PAGE_SIZE", "200", minimum=1)
TRADE_RECORD_CAP: int = _parse_int("TRADE_RECORD_CAP", "50000", minimum=1)
GMGN_PAGE_SIZE: int = _parse_int("GMGN_PAGE_SIZE", "100", minimum=1)

# ---------------------------------------------------------------------------
# Wallet classification
# ---------------------------------------------------------------------------
# A wallet with this many signatures or fewer is "fresh"
FRESH_WALLET_THRESHOLD: int = _parse_int("FRESH_WALLET_THRESHOLD", "10", minimum=0)
FUNDING_MAX_SIGNATURES: int = _parse_int("FUNDING_MAX_SIGNATURES", "1000", minimum=1)
FUNDING_MAX_TX_CHECKED: int = _parse_int("FUNDING_MAX_TX_CHECKED", "10", minimum=1)

# ---------------------------------------------------------------------------
# Token units
# ---------------------------------------------------------------------------
SOL_DECIMALS: int = 9

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------
MAX_CONCURRENT_RPC: int = _parse_int("MAX_CONCURRENT_RPC", "8", minimum=1)
REQUEST_TIMEOUT: int = _parse_int("REQUEST_TIMEOUT", "15", minimum=1)

# ---------------------------------------------------------------------------
# Sentry (error tracking)
# ---------------------------------------------------------------------------
SENTRY_DSN: str = os.getenv("SENTRY_DSN", "")
SENTRY_ENVIRONMENT: str = os.getenv("SENTRY_ENVIRONMENT", "production")
SENTRY_TRACES_SAMPLE_RATE: float = _parse_float(
    "SENTRY_TRACES_SAMPLE_RATE", "0.1", low=0.0, high=1.0
)

# ---------------------------------------------------------------------------
# Circuit breaker
# ---------------------------------------------------------------------------
CB_FAILURE_THRESHOLD: int = _parse_int("CB_FAILURE_THRESHOLD", "8", minimum=1)
CB_RECOVERY_TIMEOUT: float = float(os.getenv("CB_RECOVERY_TIMEOUT", "60"))

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT: str = os.getenv("LOG_FORMAT", "text")  # "text" or "json"
