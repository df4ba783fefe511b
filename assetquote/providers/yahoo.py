"""
Yahoo Finance quote adapter.
"""

import asyncio
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional, Set

import yfinance as yf

from ..data.cache import QuoteCache
from ..data.models import AssetClass, ProviderUnavailable, Quote
from .base import QuoteAdapter, SymbolLookup

logger = logging.getLogger(__name__)

_LETTERS_3_TO_6 = re.compile(r"^[A-Z]{3,6}$")


class YahooFinanceAdapter(QuoteAdapter):
    """Generic market-data adapter backed by yfinance."""

    # Borsa Istanbul index aliases
    INDEX_ALIASES = {
        "BIST": "XU100.IS",
        "BIST100": "XU100.IS",
        "XU100": "XU100.IS",
        "XU030": "XU030.IS",
        "XU050": "XU050.IS",
    }

    def __init__(
        self,
        cache_ttl_seconds: float = 60.0,
        market_suffix: str = ".IS",
        timeout: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize Yahoo Finance adapter.

        Args:
            cache_ttl_seconds: Quote cache TTL in seconds
            market_suffix: National market suffix tried for short alphabetic symbols
            timeout: Per-request timeout in seconds
            clock: Monotonic clock for the quote cache
        """
        super().__init__("yahoo", AssetClass.EQUITY)
        self.market_suffix = market_suffix.upper()
        self.timeout = timeout
        self.cache = QuoteCache(ttl_seconds=cache_ttl_seconds, clock=clock)
        # Bare symbols that only priced with the market suffix
        self._suffixed: Set[str] = set()

    async def _fetch_info(self, symbol: str) -> Dict[str, Any]:
        """Fetch the yfinance info dict without blocking the event loop."""
        try:
            ticker = yf.Ticker(symbol)
            info = await asyncio.wait_for(
                asyncio.get_event_loop().run_in_executor(None, lambda: ticker.info),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProviderUnavailable(f"Yahoo Finance timed out for {symbol}", provider=self.name) from e
        except Exception as e:
            raise ProviderUnavailable(f"Yahoo Finance request failed for {symbol}: {e}", provider=self.name) from e
        return info or {}

    def format_symbol(self, symbol: str) -> str:
        """Normalize a symbol and apply index aliases and remembered suffixes."""
        formatted = self.validate_symbol(symbol).replace("$", "")
        if formatted in self.INDEX_ALIASES:
            return self.INDEX_ALIASES[formatted]
        if formatted in self._suffixed and not formatted.endswith(self.market_suffix):
            return f"{formatted}{self.market_suffix}"
        return formatted

    def _lookup_forms(self, symbol: str) -> List[str]:
        forms = [symbol]
        if (
            not symbol.endswith(self.market_suffix)
            and not symbol.startswith("^")
            and (_LETTERS_3_TO_6.match(symbol) or symbol in self._suffixed)
        ):
            forms.append(f"{symbol}{self.market_suffix}")
        return forms

    def _remember_suffix(self, requested: str, resolved: str) -> None:
        if resolved.endswith(self.market_suffix) and not requested.endswith(self.market_suffix):
            if requested not in self._suffixed:
                logger.debug(f"Remembering {requested} as {resolved}")
            self._suffixed.add(requested)

    async def fetch_quote(self, symbol: str) -> Optional[Quote]:
        """Get one quote, trying the market suffix form when the bare symbol has no price."""
        formatted = self.format_symbol(symbol)

        cached = self.cache.get(formatted)
        if cached is not None:
            return cached

        forms = self._lookup_forms(formatted)
        for form in forms:
            try:
                info = await self._fetch_info(form)
            except ProviderUnavailable as e:
                logger.debug(f"Failed to fetch {form}: {e}")
                continue

            price = info.get("regularMarketPrice")
            if not price:
                logger.debug(f"No price in Yahoo Finance data for {form}")
                continue

            self._remember_suffix(formatted, form)
            quote = Quote(
                symbol=form,
                price=float(price),
                percent_change=float(info.get("regularMarketChangePercent") or 0.0),
                asset_class=AssetClass.EQUITY,
                source_adapter=self.name,
                name=info.get("shortName") or info.get("longName"),
            )
            self.cache.set(formatted, quote)
            if form != formatted:
                self.cache.set(form, quote)
            return quote

        logger.warning(f"No data found for stock symbol after trying: {', '.join(forms)}")
        return None

    async def get_quotes(self, symbols: List[str]) -> List[Quote]:
        """Get current quotes for equities."""
        if not symbols:
            return []

        results = await asyncio.gather(
            *(self.fetch_quote(symbol) for symbol in symbols),
            return_exceptions=True,
        )

        quotes = []
        for symbol, result in zip(symbols, results):
            if isinstance(result, Exception):
                logger.warning(f"Yahoo Finance could not price {symbol}: {result}")
            elif result is not None:
                quotes.append(result)
        return quotes

    async def lookup_symbol(self, symbol: str) -> Optional[SymbolLookup]:
        """
        Check whether Yahoo Finance knows exactly this symbol.

        Returns:
            Symbol details, or None when Yahoo Finance has no data for it

        Raises:
            ProviderUnavailable: The request itself failed
        """
        symbol = self.validate_symbol(symbol)
        info = await self._fetch_info(symbol)
        if not info.get("regularMarketPrice") and not info.get("quoteType"):
            return None

        if symbol.endswith(self.market_suffix):
            self._remember_suffix(symbol[: -len(self.market_suffix)], symbol)

        return SymbolLookup(
            symbol=str(info.get("symbol") or symbol).upper(),
            name=info.get("longName") or info.get("shortName"),
            quote_type=info.get("quoteType"),
        )
