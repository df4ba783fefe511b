"""
Quote provider adapters.
"""

from .base import QuoteAdapter, SymbolLookup
from .retry import retry_async
from .key_pool import ProviderKeyPool, parse_keys
from .binance import BinanceStreamAdapter
from .coinmarketcap import CoinMarketCapAdapter
from .yahoo import YahooFinanceAdapter

__all__ = [
    "QuoteAdapter",
    "SymbolLookup",
    "retry_async",
    "ProviderKeyPool",
    "parse_keys",
    "BinanceStreamAdapter",
    "CoinMarketCapAdapter",
    "YahooFinanceAdapter",
]
