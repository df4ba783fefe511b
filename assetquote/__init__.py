"""
AssetQuote - Symbol Resolution and Multi-Provider Pricing

Resolves free-form queries such as "btc", "$aapl" or "google" to canonical
asset symbols and prices them through live-stream, quota-limited REST and
generic market-data providers.
"""

__version__ = "0.1.0"
__author__ = "AssetQuote Team"

from typing import List

__all__: List[str] = []
