"""
Binance live-stream quote adapter.
"""

import logging
from typing import List, Optional

from ..data.models import AssetClass, Quote
from ..streaming.binance_stream import BinanceTickerStream
from .base import QuoteAdapter

logger = logging.getLogger(__name__)


class BinanceStreamAdapter(QuoteAdapter):
    """
    Serves crypto quotes from the Binance ticker stream's cache.

    Never touches the network on the read path: symbols the stream has not
    seen yet are simply omitted.
    """

    def __init__(self, stream: Optional[BinanceTickerStream] = None):
        super().__init__("binance", AssetClass.CRYPTO)
        self.stream = stream or BinanceTickerStream()

    async def start(self):
        await self.stream.start()

    async def stop(self):
        await self.stream.stop()

    def get_cached(self, symbol: str) -> Optional[Quote]:
        return self.stream.get_cached(self.validate_symbol(symbol))

    async def get_quotes(self, symbols: List[str]) -> List[Quote]:
        quotes = []
        for symbol in symbols:
            quote = self.get_cached(symbol)
            if quote is not None:
                quotes.append(quote)
        return quotes
