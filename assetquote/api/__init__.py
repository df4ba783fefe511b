"""
AssetQuote API module.

FastAPI application providing REST endpoints for symbol resolution
and asset pricing.
"""

from typing import List

__all__: List[str] = []
