"""
Symbol resolution.

Turns free-form user text ("btc", "$aapl", "google") into ranked catalog
candidates. Matching strategies are tried in priority order and the first
one that yields a candidate wins.
"""

import logging
import re
from typing import List, Optional, Tuple

from ..catalog.catalog import SymbolCatalog
from ..data.models import (
    AssetClass,
    CatalogWriteFailure,
    MatchCandidate,
    SymbolEntry,
)
from ..providers.base import SymbolLookup
from .preferences import PreferenceTracker
from .scorer import (
    alias_score,
    best_fuzzy_score,
    exact_symbol_score,
    has_market_suffix,
    parse_prefix,
)

logger = logging.getLogger(__name__)

NON_TICKER_WORDS = {"HISSE", "KRIPTO", "CRYPTO", "STOCK", "ENDEKS", "INDEX", "LISTE"}

# Scores for symbols discovered through the external lookup
SCORE_LOOKUP_SUFFIX = 95
SCORE_LOOKUP_BARE = 90
SCORE_LOOKUP_CRYPTO = 85
SCORE_LOOKUP_BARE_CRYPTO = 80

DISCOVERED_POPULARITY = 50

_LETTERS_3_TO_6 = re.compile(r"^[A-Z]{3,6}$")
_TICKER_TOKEN = re.compile(r"^[A-Z0-9]{2,5}$")
_NUMBER = re.compile(r"^[+-]?\d+([.,]\d+)?$")


class SymbolResolver:
    """Resolve user queries to ranked symbol candidates."""

    def __init__(
        self,
        catalog: SymbolCatalog,
        preferences: Optional[PreferenceTracker] = None,
        lookup=None,
        market_suffix: str = ".IS",
        crypto_suffix: str = "-USD",
    ):
        """
        Initialize symbol resolver.

        Args:
            catalog: Loaded symbol catalog
            preferences: Per-user choice history
            lookup: Market-data provider exposing ``lookup_symbol``; None
                disables the external lookup tier
            market_suffix: National market suffix tried for short alphabetic queries
            crypto_suffix: Suffix that turns a coin symbol into a quote pair
        """
        self.catalog = catalog
        self.preferences = preferences
        self.lookup = lookup
        self.market_suffix = market_suffix.upper()
        self.crypto_suffix = crypto_suffix.upper()

    async def resolve(self, query: str, user_id: Optional[str] = None) -> List[MatchCandidate]:
        """
        Resolve a query to ranked candidates.

        Returns:
            Candidates sorted best first; empty when nothing matches
        """
        if not query or not query.strip():
            return []

        text, forced = parse_prefix(query)
        if not text:
            return []

        candidates = await self._preferred_candidate(text, forced, user_id)
        if not candidates:
            candidates = self._exact_candidates(text, forced)
        if not candidates:
            candidates = self._alias_candidates(text, forced)
        if not candidates:
            candidates = self._fuzzy_candidates(text, forced)
        if not candidates:
            logger.debug(f"No catalog match for '{query}', trying external lookup")
            candidates = await self._external_candidates(text, forced)

        ranked = self._rank(candidates)
        if forced is None and len(ranked) > 1:
            ranked = await self._apply_class_preference(ranked, user_id)

        logger.debug(f"Resolved '{query}' to {[c.symbol for c in ranked]}")
        return ranked

    async def record_choice(self, user_id: str, query: str, symbol: str) -> None:
        if self.preferences is None:
            raise RuntimeError("Preference tracking is not configured")
        await self.preferences.record_choice(user_id, query, symbol)

    async def record_lookup(self, user_id: str, asset_class: AssetClass) -> None:
        if self.preferences is not None:
            await self.preferences.record_lookup(user_id, asset_class)

    # Tiers

    async def _preferred_candidate(
        self, text: str, forced: Optional[AssetClass], user_id: Optional[str]
    ) -> List[MatchCandidate]:
        if user_id is None or self.preferences is None:
            return []

        symbol = await self.preferences.preferred_symbol(user_id, text)
        if not symbol:
            return []

        entry = self.catalog.get(symbol)
        if entry is None or not self._allowed(entry.asset_class, forced):
            return []

        logger.debug(f"Using remembered choice {entry.symbol} for user {user_id}")
        return [MatchCandidate.from_entry(entry, 100)]

    def _exact_candidates(self, text: str, forced: Optional[AssetClass]) -> List[MatchCandidate]:
        direct = self.catalog.get(text)
        if direct is not None and direct.symbol == text and self._allowed(direct.asset_class, forced):
            return [MatchCandidate.from_entry(direct, 100)]

        results = []
        for entry in self._entries(forced):
            score = exact_symbol_score(text, entry)
            if score is not None:
                results.append(MatchCandidate.from_entry(entry, score))
        return results

    def _alias_candidates(self, text: str, forced: Optional[AssetClass]) -> List[MatchCandidate]:
        results = []
        for entry in self._entries(forced):
            score = alias_score(text, entry)
            if score is not None:
                results.append(MatchCandidate.from_entry(entry, score))
        return results

    def _fuzzy_candidates(self, text: str, forced: Optional[AssetClass]) -> List[MatchCandidate]:
        results = []
        for entry in self._entries(forced):
            score = best_fuzzy_score(text, entry)
            if score is not None:
                results.append(MatchCandidate.from_entry(entry, score))
        return results

    async def _external_candidates(
        self, text: str, forced: Optional[AssetClass]
    ) -> List[MatchCandidate]:
        if self.lookup is None:
            return []

        cleaned = re.sub(r"[^A-Z0-9.\-]", "", text.upper())
        if not cleaned:
            return []

        for form, kind in self._lookup_forms(cleaned, forced):
            try:
                found: Optional[SymbolLookup] = await self.lookup.lookup_symbol(form)
            except Exception as e:
                logger.warning(f"External lookup failed for {form}: {e}")
                continue
            if found is None:
                continue

            resolved = self._entry_from_lookup(cleaned, kind, found)
            if resolved is None:
                continue
            entry, score = resolved
            if not self._allowed(entry.asset_class, forced):
                continue

            stored = await self._remember(entry)
            logger.info(f"Resolved '{text}' to {stored.symbol} via external lookup ({form})")
            return [MatchCandidate.from_entry(stored, score)]

        return []

    def _lookup_forms(self, cleaned: str, forced: Optional[AssetClass]) -> List[Tuple[str, str]]:
        if forced == AssetClass.CRYPTO:
            return [(f"{self._bare(cleaned)}{self.crypto_suffix}", "crypto")]

        forms = []
        if _LETTERS_3_TO_6.match(cleaned):
            forms.append((f"{cleaned}{self.market_suffix}", "suffix"))
        forms.append((cleaned, "bare"))
        if forced is None and not cleaned.endswith(self.crypto_suffix):
            forms.append((f"{cleaned}{self.crypto_suffix}", "crypto"))
        return forms

    def _entry_from_lookup(
        self, cleaned: str, kind: str, found: SymbolLookup
    ) -> Optional[Tuple[SymbolEntry, int]]:
        name = found.name or None
        if kind == "suffix":
            symbol, asset_class, score = f"{cleaned}{self.market_suffix}", AssetClass.EQUITY, SCORE_LOOKUP_SUFFIX
        elif kind == "crypto":
            symbol, asset_class, score = self._bare(cleaned), AssetClass.CRYPTO, SCORE_LOOKUP_CRYPTO
        elif found.is_crypto:
            symbol, asset_class, score = self._bare(cleaned), AssetClass.CRYPTO, SCORE_LOOKUP_BARE_CRYPTO
        else:
            symbol, asset_class, score = cleaned, AssetClass.EQUITY, SCORE_LOOKUP_BARE

        if not symbol:
            return None

        entry = SymbolEntry(
            symbol=symbol,
            asset_class=asset_class,
            display_name=name or symbol,
            aliases=[name] if name and name.upper() != symbol else [],
            popularity=DISCOVERED_POPULARITY,
        )
        return entry, score

    async def _remember(self, entry: SymbolEntry) -> SymbolEntry:
        try:
            return await self.catalog.upsert(entry)
        except CatalogWriteFailure as e:
            logger.warning(f"Could not persist discovered symbol {entry.symbol}: {e}")
            return self.catalog.get(entry.symbol) or entry

    # Ranking

    def _rank(self, candidates: List[MatchCandidate]) -> List[MatchCandidate]:
        def sort_key(candidate: MatchCandidate):
            entry = self.catalog.get(candidate.symbol)
            popularity = entry.popularity if entry is not None else 0
            return (-candidate.score, -popularity, candidate.symbol)

        return sorted(candidates, key=sort_key)

    async def _apply_class_preference(
        self, ranked: List[MatchCandidate], user_id: Optional[str]
    ) -> List[MatchCandidate]:
        preferred = None
        if user_id is not None and self.preferences is not None:
            preferred = await self.preferences.class_preference(user_id)

        if preferred is None:
            classes = {c.asset_class for c in ranked}
            if len(classes) < 2:
                return ranked
            preferred = ranked[0].asset_class

        first = [c for c in ranked if c.asset_class == preferred]
        rest = [c for c in ranked if c.asset_class != preferred]
        return first + rest

    # Helpers

    def _entries(self, forced: Optional[AssetClass]) -> List[SymbolEntry]:
        return self.catalog.entries(forced)

    @staticmethod
    def _allowed(asset_class: AssetClass, forced: Optional[AssetClass]) -> bool:
        return forced is None or asset_class == forced

    def _bare(self, symbol: str) -> str:
        if symbol.endswith(self.crypto_suffix):
            return symbol[: -len(self.crypto_suffix)]
        return symbol

    # Heuristics

    def guess_asset_class(self, symbol: str) -> AssetClass:
        """Guess the asset class of a bare symbol without any network access."""
        text = symbol.strip().upper()
        if text.startswith("$"):
            return AssetClass.EQUITY
        if text.startswith("#") or text.startswith("@"):
            return AssetClass.CRYPTO
        if has_market_suffix(text):
            return AssetClass.EQUITY
        if len(text) <= 2 or len(text) >= 5:
            return AssetClass.EQUITY

        entry = self.catalog.get(text)
        if entry is not None:
            return entry.asset_class
        return AssetClass.CRYPTO

    def is_ticker_symbol(self, text: str) -> bool:
        """Whether free text looks like a ticker rather than a command word or number."""
        if not text or not text.strip():
            return False

        upper = text.strip().upper()
        if upper in NON_TICKER_WORDS:
            return False
        if _NUMBER.match(upper):
            return False
        if upper in self.catalog or f"{upper}{self.market_suffix}" in self.catalog:
            return True
        if upper.endswith(self.market_suffix) or _LETTERS_3_TO_6.match(upper):
            return True
        if _TICKER_TOKEN.match(upper):
            return True
        return any(
            alias.upper() == upper
            for entry in self.catalog
            for alias in entry.aliases
        )

    @staticmethod
    def is_ambiguous(candidates: List[MatchCandidate]) -> bool:
        """True when at least two candidates share the top score."""
        if len(candidates) < 2:
            return False
        top = max(c.score for c in candidates)
        return sum(1 for c in candidates if c.score == top) >= 2
