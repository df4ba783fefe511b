"""
In-process quote cache.

Every adapter owns its own ``QuoteCache``; caches are never shared between
adapters.
"""

import logging
import time
from typing import Callable, Dict, Optional

from .models import CacheEntry, Quote

logger = logging.getLogger(__name__)


class QuoteCache:
    """Quote cache with optional time-to-live."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize quote cache.

        Args:
            ttl_seconds: Time-to-live in seconds; None keeps entries until replaced
            clock: Monotonic clock, injectable for tests
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def _make_key(self, symbol: str) -> str:
        return symbol.upper().strip()

    def set(self, symbol: str, quote: Quote) -> None:
        """Store a quote, replacing any previous entry."""
        expires_at = None
        if self.ttl_seconds is not None:
            expires_at = self._clock() + self.ttl_seconds
        key = self._make_key(symbol)
        self._entries[key] = CacheEntry(symbol=key, quote=quote, expires_at=expires_at)

    def get(self, symbol: str) -> Optional[Quote]:
        """Get a cached quote if present and not expired."""
        key = self._make_key(symbol)
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            # Expired, remove it
            del self._entries[key]
            return None

        return entry.quote

    def delete(self, symbol: str) -> bool:
        return self._entries.pop(self._make_key(symbol), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
        return {
            "total_items": len(self._entries),
            "expired_items": expired,
            "active_items": len(self._entries) - expired,
        }
