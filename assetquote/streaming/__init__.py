"""
Live price streaming for AssetQuote.
"""

from .binance_stream import BinanceTickerStream, StreamState

__all__ = [
    "BinanceTickerStream",
    "StreamState",
]
