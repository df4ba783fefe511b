"""
Abstract base classes for quote providers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional
import logging

from ..data.models import AssetClass, Quote

logger = logging.getLogger(__name__)


@dataclass
class SymbolLookup:
    """Result of asking a market-data provider whether a symbol exists."""

    symbol: str
    name: Optional[str] = None
    quote_type: Optional[str] = None

    @property
    def is_crypto(self) -> bool:
        return (self.quote_type or "").upper() == "CRYPTOCURRENCY"


class QuoteAdapter(ABC):
    """Abstract base class for quote provider adapters."""

    def __init__(self, name: str, asset_class: AssetClass):
        """
        Initialize quote adapter.

        Args:
            name: Adapter name, used to tag quotes
            asset_class: Asset class this adapter prices
        """
        self.name = name
        self.asset_class = asset_class

    async def start(self) -> None:
        """Acquire long-lived resources."""
        pass

    async def stop(self) -> None:
        """Release long-lived resources."""
        pass

    @abstractmethod
    async def get_quotes(self, symbols: List[str]) -> List[Quote]:
        """
        Get current quotes.

        Symbols the adapter cannot price are omitted from the result.
        """
        pass

    def validate_symbol(self, symbol: str) -> str:
        """Validate and normalize symbol."""
        if not symbol or not isinstance(symbol, str):
            raise ValueError("Symbol must be a non-empty string")

        return symbol.upper().strip()

    async def health_check(self) -> bool:
        """Check if the adapter can price a well-known symbol."""
        sample = "BTC" if self.asset_class == AssetClass.CRYPTO else "AAPL"
        try:
            quotes = await self.get_quotes([sample])
            return len(quotes) > 0
        except Exception as e:
            logger.error(f"Health check failed for {self.name}: {e}")
            return False
