"""
In-memory symbol catalog with write-through persistence.
"""

import logging
from typing import Dict, Iterator, List, Optional

from ..data.models import (
    AssetClass,
    CatalogLoadError,
    CatalogWriteFailure,
    SymbolEntry,
)
from ..data.storage import SymbolStore

logger = logging.getLogger(__name__)


def merge_aliases(existing: List[str], extra: List[str]) -> List[str]:
    """Union of alias lists, order preserved, case-insensitive de-duplication."""
    merged: List[str] = []
    seen = set()
    for alias in list(existing) + list(extra):
        if not alias:
            continue
        folded = alias.casefold()
        if folded in seen:
            continue
        seen.add(folded)
        merged.append(alias)
    return merged


class SymbolCatalog:
    """
    Table of known assets.

    Hydrated once from the symbol store; every mutation goes to memory first
    and is then written through to the store.
    """

    def __init__(self, store: SymbolStore, seed: Optional[List[SymbolEntry]] = None):
        """
        Initialize symbol catalog.

        Args:
            store: Persistence collaborator
            seed: Entries written to the store when it is empty
        """
        self.store = store
        self.seed = seed or []
        self._entries: Dict[str, SymbolEntry] = {}
        self.loaded = False

    async def load(self) -> None:
        """Load all entries from the store, seeding an empty store first."""
        try:
            entries = await self.store.load_all()
            if not entries and self.seed:
                logger.info(f"Initializing symbol catalog with {len(self.seed)} seed symbols")
                for entry in self.seed:
                    await self.store.upsert(entry)
                entries = list(self.seed)
        except Exception as e:
            logger.error(f"Failed to load symbol catalog: {e}")
            raise CatalogLoadError(f"Failed to load symbol catalog: {e}") from e

        self._entries = {entry.symbol: entry for entry in entries}
        self.loaded = True
        logger.info(f"Loaded {len(self._entries)} symbols into catalog")

    def get(self, symbol: str) -> Optional[SymbolEntry]:
        return self._entries.get(symbol.upper().strip())

    def entries(self, asset_class: Optional[AssetClass] = None) -> List[SymbolEntry]:
        if asset_class is None:
            return list(self._entries.values())
        return [e for e in self._entries.values() if e.asset_class == asset_class]

    def __contains__(self, symbol: str) -> bool:
        return self.get(symbol) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SymbolEntry]:
        return iter(list(self._entries.values()))

    async def upsert(self, entry: SymbolEntry) -> SymbolEntry:
        """
        Insert a new entry or enrich an existing one.

        Returns:
            The entry now held in memory

        Raises:
            CatalogWriteFailure: The store rejected the write. The in-memory
                table is already updated.
        """
        existing = self._entries.get(entry.symbol)
        if existing is not None:
            logger.debug(f"Updating catalog entry {entry.symbol}")
            existing.aliases = merge_aliases(existing.aliases, entry.aliases)
            if entry.display_name and entry.display_name != entry.symbol:
                if len(entry.display_name) >= len(existing.display_name) or existing.display_name == existing.symbol:
                    existing.display_name = entry.display_name
            existing.popularity = max(existing.popularity, entry.popularity)
            stored = existing
        else:
            logger.info(f"Adding {entry.asset_class.value} symbol {entry.symbol} to catalog")
            stored = entry
            self._entries[entry.symbol] = entry

        try:
            await self.store.upsert(stored)
        except Exception as e:
            logger.error(f"Failed to persist symbol {stored.symbol}: {e}")
            raise CatalogWriteFailure(stored.symbol, e) from e

        return stored
