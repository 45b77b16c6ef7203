"""
Exception types surfaced by the Bundle Scanner.

Only failures that make the whole analysis untrustworthy are raised.
Per-wallet lookup failures (holdings, freshness, funding) are absorbed
where they happen; only an open circuit (``CircuitOpen``) escapes them.
"""

from __future__ import annotations


class BundleScannerError(Exception):
    """Base class for errors that abort an analysis."""


class UpstreamUnavailable(BundleScannerError):
    """A trade provider or chain-state reader call failed entirely."""

    def __init__(self, source: str, detail: str = "") -> None:
        message = f"{source} unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.source = source
        self.detail = detail


class RpcRequestError(UpstreamUnavailable):
    """The reader answered, but rejected this one request (JSON-RPC ``error``).

    The host is reachable, so this never counts against its circuit breaker.
    """


class CircuitOpen(UpstreamUnavailable):
    """The upstream's circuit breaker is open; no request was sent.

    Never absorbed as a per-wallet lookup failure.
    """

    def __init__(self, source: str) -> None:
        super().__init__(source, "circuit open")


class MalformedToken(BundleScannerError):
    """Token metadata lacks a field every percentage depends on."""

    def __init__(self, mint: str, reason: str) -> None:
        super().__init__(f"Malformed token {mint}: {reason}")
        self.mint = mint
        self.reason = reason
