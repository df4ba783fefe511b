"""
Command line interface for AssetQuote.

Usage:
    assetquote resolve "apple" --user-id 42
    assetquote quote BTC ETH --asset-class crypto
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .api.config import settings
from .data.models import AssetClass, AssetQuoteError
from .service import QuoteService, build_quote_service

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assetquote", description="Resolve asset queries and fetch current prices"
    )
    parser.add_argument("--log-level", default=settings.log_level,
                        help="Logging level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve a free-form query to symbols")
    resolve.add_argument("query", help="Query such as 'btc', '$aapl' or 'google'")
    resolve.add_argument("--user-id", default=None, help="Apply this user's history")

    quote = subparsers.add_parser("quote", help="Fetch current prices")
    quote.add_argument("symbols", nargs="+", help="Symbols of a single asset class")
    quote.add_argument("--asset-class", choices=[c.value for c in AssetClass], default=None,
                       help="Asset class of the symbols (inferred when omitted)")

    return parser


async def _resolve(service: QuoteService, query: str, user_id: Optional[str]) -> int:
    candidates = await service.resolve(query, user_id)
    if not candidates:
        print(f"No match for '{query}'")
        return 1

    for candidate in candidates:
        print(f"{candidate.symbol:<12} {candidate.score:>3}  {candidate.asset_class.value:<7} {candidate.display_name}")
    if service.resolver.is_ambiguous(candidates):
        print("Several symbols match equally well; pick one explicitly.")
    return 0


async def _quote(service: QuoteService, symbols: List[str], asset_class: Optional[str]) -> int:
    quotes = await service.get_quotes(symbols, AssetClass(asset_class) if asset_class else None)
    if not quotes:
        print("No prices found")
        return 1

    for quote in quotes:
        print(service.format_quote(quote))
    return 0


async def _run(args: argparse.Namespace) -> int:
    # One-shot commands never wait for the live stream to fill
    service = build_quote_service(settings.model_copy(update={"binance_stream_enabled": False}))
    await service.start()
    try:
        if args.command == "resolve":
            return await _resolve(service, args.query, args.user_id)
        return await _quote(service, args.symbols, args.asset_class)
    finally:
        await service.stop()


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format=settings.log_format,
    )

    try:
        return asyncio.run(_run(args))
    except AssetQuoteError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
