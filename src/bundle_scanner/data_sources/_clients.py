"""
Singleton HTTP client management for the Bundle Scanner.

Provides lazy-initialised clients for pump.fun, GMGN and Solana RPC, each
guarded by its own circuit breaker. ``close_clients`` should be called
when the process shuts down.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..circuit_breaker import CircuitBreaker
from ..errors import RpcRequestError
from .gmgn import GmgnClient
from .pumpfun import PumpFunClient
from .solana_rpc import SolanaRpcClient
from config import (
    CB_FAILURE_THRESHOLD,
    CB_RECOVERY_TIMEOUT,
    GMGN_BASE_URL,
    PUMPFUN_BASE_URL,
    REQUEST_TIMEOUT,
    SOLANA_RPC_ENDPOINT,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singletons (created once, reused)
# ---------------------------------------------------------------------------
_pumpfun_client: Optional[PumpFunClient] = None
_gmgn_client: Optional[GmgnClient] = None
_rpc_client: Optional[SolanaRpcClient] = None

# Circuit breakers – one per upstream
cb_pumpfun = CircuitBreaker(
    "pumpfun",
    failure_threshold=CB_FAILURE_THRESHOLD,
    recovery_timeout=CB_RECOVERY_TIMEOUT,
)
cb_gmgn = CircuitBreaker(
    "gmgn",
    failure_threshold=CB_FAILURE_THRESHOLD,
    recovery_timeout=CB_RECOVERY_TIMEOUT,
)
cb_solana_rpc = CircuitBreaker(
    "solana_rpc",
    failure_threshold=CB_FAILURE_THRESHOLD,
    recovery_timeout=CB_RECOVERY_TIMEOUT,
    # A JSON-RPC error body is a rejected request, not an unreachable host
    ignored_exceptions=(RpcRequestError,),
)


def get_pumpfun_client() -> PumpFunClient:
    global _pumpfun_client
    if _pumpfun_client is None:
        _pumpfun_client = PumpFunClient(
            base_url=PUMPFUN_BASE_URL,
            timeout=REQUEST_TIMEOUT,
            circuit_breaker=cb_pumpfun,
        )
    return _pumpfun_client


def get_gmgn_client() -> GmgnClient:
    global _gmgn_client
    if _gmgn_client is None:
        _gmgn_client = GmgnClient(
            base_url=GMGN_BASE_URL,
            timeout=REQUEST_TIMEOUT,
            circuit_breaker=cb_gmgn,
        )
    return _gmgn_client


def get_rpc_client() -> SolanaRpcClient:
    global _rpc_client
    if _rpc_client is None:
        _rpc_client = SolanaRpcClient(
            endpoint=SOLANA_RPC_ENDPOINT,
            timeout=REQUEST_TIMEOUT,
            circuit_breaker=cb_solana_rpc,
        )
    return _rpc_client


async def close_clients() -> None:
    """Close singleton HTTP clients gracefully."""
    global _pumpfun_client, _gmgn_client, _rpc_client
    if _pumpfun_client is not None:
        await _pumpfun_client.close()
        _pumpfun_client = None
    if _gmgn_client is not None:
        await _gmgn_client.close()
        _gmgn_client = None
    if _rpc_client is not None:
        await _rpc_client.close()
        _rpc_client = None
