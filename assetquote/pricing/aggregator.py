"""
Price aggregation across provider adapters.
"""

import logging
from typing import Dict, List, Optional

from ..data.models import AssetClass, Quote
from ..providers.base import QuoteAdapter

logger = logging.getLogger(__name__)

PREFIX_MARKERS = ("$", "#", "@")

# Widely held US equities, used when callers do not say what they are asking for
COMMON_STOCKS = frozenset([
    # Technology
    "AAPL", "MSFT", "AMZN", "GOOG", "GOOGL", "META", "TSLA", "NVDA", "AMD", "INTC",
    "NFLX", "ADBE", "CSCO", "CRM", "ORCL", "IBM", "PYPL", "UBER", "SHOP", "SQ",
    # Financials
    "V", "JPM", "BAC", "WFC", "C", "MA", "GS", "AXP", "MS", "BLK",
    # Consumer
    "WMT", "COST", "HD", "MCD", "SBUX", "NKE", "DIS", "BKNG", "ABNB", "PG",
    # Healthcare
    "JNJ", "PFE", "MRK", "ABBV", "LLY", "AMGN", "VRTX", "GILD", "BIIB", "BMY",
    "REGN", "MRNA", "MDT", "UNH", "CVS",
    # Automotive
    "F", "GM", "TM",
    # Other
    "BABA", "KO", "PEP", "GE",
])


def normalize_symbols(symbols: List[str]) -> List[str]:
    """Upper-case, strip class markers and drop blanks and duplicates, keeping order."""
    normalized: List[str] = []
    for raw in symbols:
        symbol = (raw or "").strip()
        while symbol and symbol[0] in PREFIX_MARKERS:
            symbol = symbol[1:]
        symbol = symbol.strip().upper()
        if symbol and symbol not in normalized:
            normalized.append(symbol)
    return normalized


def infer_asset_class(symbols: List[str]) -> AssetClass:
    """Guess the asset class of a symbol batch from well-known tickers and markers."""
    upper = [(s or "").strip().upper() for s in symbols]
    if any(s in COMMON_STOCKS for s in upper):
        return AssetClass.EQUITY
    if any("." in s or s.startswith("$") for s in upper):
        return AssetClass.EQUITY
    return AssetClass.CRYPTO


class PriceAggregator:
    """
    Routes quote requests to the adapters for an asset class.

    Crypto is served from the live stream cache first and the REST adapter
    fills the gaps; equities go to the market-data adapter.
    """

    def __init__(
        self,
        stream_adapter: Optional[QuoteAdapter] = None,
        rest_adapter: Optional[QuoteAdapter] = None,
        equity_adapter: Optional[QuoteAdapter] = None,
    ):
        """
        Initialize price aggregator.

        Args:
            stream_adapter: Cache-only crypto adapter
            rest_adapter: Crypto adapter used for stream misses
            equity_adapter: Equity adapter
        """
        self.stream_adapter = stream_adapter
        self.rest_adapter = rest_adapter
        self.equity_adapter = equity_adapter

    async def get_quotes(
        self, symbols: List[str], asset_class: Optional[AssetClass] = None
    ) -> List[Quote]:
        """
        Get quotes for symbols of a single asset class.

        Args:
            symbols: Symbols to price
            asset_class: Asset class of every symbol; inferred when None

        Returns:
            Quotes in input order; symbols nobody could price are omitted

        Raises:
            PoolExhausted: The REST adapter has no usable API keys left
        """
        normalized = normalize_symbols(symbols)
        if not normalized:
            return []

        if asset_class is None:
            asset_class = infer_asset_class(symbols)
            logger.info(f"Detected asset type {asset_class.value} for symbols: {', '.join(normalized)}")
        asset_class = AssetClass(asset_class)

        if asset_class == AssetClass.CRYPTO:
            quotes = await self._crypto_quotes(normalized)
        else:
            quotes = await self._equity_quotes(normalized)

        if len(quotes) < len(normalized):
            priced = {q.symbol for q in quotes}
            missing = [s for s in normalized if s not in priced and not any(p.startswith(f"{s}.") for p in priced)]
            if missing:
                logger.warning(f"No {asset_class.value} price for: {', '.join(missing)}")
        return quotes

    async def _crypto_quotes(self, symbols: List[str]) -> List[Quote]:
        found: Dict[str, Quote] = {}
        if self.stream_adapter is not None:
            for quote in await self.stream_adapter.get_quotes(symbols):
                found[quote.symbol] = quote

        misses = [s for s in symbols if s not in found]
        if misses and self.rest_adapter is not None:
            logger.info(f"Fetching {len(misses)} crypto symbols from {self.rest_adapter.name}: {', '.join(misses)}")
            for quote in await self.rest_adapter.get_quotes(misses):
                found[quote.symbol] = quote

        return [found[s] for s in symbols if s in found]

    async def _equity_quotes(self, symbols: List[str]) -> List[Quote]:
        if self.equity_adapter is None:
            logger.warning("No equity adapter configured")
            return []
        return await self.equity_adapter.get_quotes(symbols)
