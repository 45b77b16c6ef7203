"""
Command line interface for the Bundle Scanner.

Usage::

    python src/main.py --mint <TOKEN_MINT> [--limit 50000] [--team] [--json]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import os

# Ensure ``src/`` is on the import path
sys.path.insert(0, os.path.dirname(__file__))

import sentry_sdk

from bundle_scanner.bundle_analyzer import analyze_bundle
from bundle_scanner.data_sources._clients import close_clients
from bundle_scanner.errors import BundleScannerError
from bundle_scanner.logging_config import setup_logging
from bundle_scanner.models import BundleMetrics
from config import (
    SENTRY_DSN,
    SENTRY_ENVIRONMENT,
    SENTRY_TRACES_SAMPLE_RATE,
    TRADE_RECORD_CAP,
)

logger = logging.getLogger(__name__)


def _init_sentry() -> None:
    if SENTRY_DSN:
        sentry_sdk.init(
            dsn=SENTRY_DSN,
            environment=SENTRY_ENVIRONMENT,
            traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
            send_default_pii=False,
        )
        logger.info("Sentry initialised (env=%s)", SENTRY_ENVIRONMENT)
    else:
        logger.debug("SENTRY_DSN not set – error tracking disabled")


def _print_report(result: BundleMetrics) -> None:
    info = result.token_info
    kind = "Team" if result.is_team_analysis else "Total"
    key_label = "Slot" if result.venue.value == "pumpfun" else "Timestamp"

    print("=" * 60)
    print(f"  {kind} Bundles – {info.symbol} ({result.mint})")
    print("=" * 60)
    if result.is_team_analysis:
        print(f"  Team wallets   : {result.total_team_wallets}")
    print(f"  Bundles        : {result.total_bundles}")
    print(f"  Tokens bundled : {result.total_tokens_bundled:,.2f} ({result.percentage_bundled:.2f}%)")
    print(f"  SOL spent      : {result.total_sol_spent:,.4f}")
    print(
        f"  Still held     : {result.total_holding_amount:,.2f} "
        f"({result.total_holding_amount_percentage:.2f}%)"
    )
    print("-" * 60)

    if not result.bundles:
        print("  No bundles found.")
    for i, b in enumerate(result.bundles[:5], 1):
        print(f"  {i}. {key_label} {b.settlement_key}: {b.unique_wallets_count} wallets")
        print(f"     bought {b.tokens_bought:,.2f}  spent {b.sol_spent:,.4f} SOL")
        if b.holding_amount is not None:
            print(f"     holding {b.holding_amount:,.2f} ({b.holding_percentage or 0.0:.2f}%)")
    print("=" * 60)


async def _run(mint: str, limit: int, team: bool, as_json: bool) -> int:
    """Async entry point. Returns the process exit code."""
    try:
        result = await analyze_bundle(mint, limit, team)
    except BundleScannerError as exc:
        logger.error("Bundle analysis failed for %s: %s", mint, exc)
        print("Analysis failed, please try again later.", file=sys.stderr)
        return 1
    finally:
        await close_clients()

    if as_json:
        print(result.model_dump_json(indent=2))
    else:
        _print_report(result)
    return 0


def main() -> None:
    """Entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Detect bundled buys and team wallets for a Solana token"
    )
    parser.add_argument(
        "--mint",
        required=True,
        help="Mint address of the token to analyse",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=TRADE_RECORD_CAP,
        help="Maximum number of trades to fetch (default: %(default)s)",
    )
    parser.add_argument(
        "--team",
        action="store_true",
        help="Restrict bundles to wallets classified as team",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Output result as raw JSON",
    )
    args = parser.parse_args()

    setup_logging()
    _init_sentry()
    sys.exit(asyncio.run(_run(args.mint, args.limit, args.team, args.as_json)))


if __name__ == "__main__":
    main()
