"""
Price aggregation and formatting.
"""

from .aggregator import PriceAggregator, infer_asset_class, normalize_symbols
from .formatting import format_change, format_price, format_quote

__all__ = [
    "PriceAggregator",
    "infer_asset_class",
    "normalize_symbols",
    "format_change",
    "format_price",
    "format_quote",
]
