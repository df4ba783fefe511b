"""
Per-user disambiguation history.
"""

import logging
from typing import Dict, Optional

from ..data.models import AssetClass, UserPreference
from ..data.storage import PreferenceStore

logger = logging.getLogger(__name__)

STRONG_PREFERENCE_RATIO = 0.6
MIN_LOOKUPS_FOR_PREFERENCE = 3


def normalize_query(query: str) -> str:
    """Normalized form used as the key for remembered choices."""
    text = query.strip()
    if text[:1] in ("$", "#", "@"):
        text = text[1:]
    return text.strip().lower()


class PreferenceTracker:
    """Remembers which symbol a user picked for a query and which asset class they look up most."""

    def __init__(self, store: PreferenceStore):
        self.store = store
        self._preferences: Dict[str, UserPreference] = {}

    async def get(self, user_id: str) -> UserPreference:
        """Get a user's preferences, hydrating from the store on first access."""
        user_id = str(user_id)
        preference = self._preferences.get(user_id)
        if preference is None:
            preference = await self.store.get(user_id)
            if preference is None:
                preference = UserPreference(user_id=user_id)
            self._preferences[user_id] = preference
        return preference

    async def preferred_symbol(self, user_id: str, query: str) -> Optional[str]:
        try:
            preference = await self.get(user_id)
        except Exception as e:
            logger.warning(f"Failed to load preferences for user {user_id}: {e}")
            return None
        return preference.query_choices.get(normalize_query(query))

    async def record_choice(self, user_id: str, query: str, symbol: str) -> None:
        """Remember the symbol a user picked for a query."""
        key = normalize_query(query)
        if not key:
            raise ValueError("Query cannot be empty")

        preference = await self.get(user_id)
        preference.query_choices[key] = symbol.upper().strip()
        await self.store.put(preference.user_id, preference)
        logger.debug(f"Recorded choice {symbol} for query '{key}' (user {user_id})")

    async def record_lookup(self, user_id: str, asset_class: AssetClass) -> None:
        """Count a lookup towards the user's asset class preference."""
        try:
            preference = await self.get(user_id)
            if AssetClass(asset_class) == AssetClass.EQUITY:
                preference.equity_lookups += 1
            else:
                preference.crypto_lookups += 1
            await self.store.put(preference.user_id, preference)
        except Exception as e:
            logger.warning(f"Failed to record lookup for user {user_id}: {e}")

    async def class_preference(self, user_id: str) -> Optional[AssetClass]:
        """
        Asset class the user clearly favours.

        A class is favoured when it accounts for at least 60% of at least
        three recorded lookups.
        """
        try:
            preference = await self.get(user_id)
        except Exception as e:
            logger.warning(f"Failed to load preferences for user {user_id}: {e}")
            return None

        total = preference.total_lookups
        if total < MIN_LOOKUPS_FOR_PREFERENCE:
            return None
        if preference.equity_lookups / total >= STRONG_PREFERENCE_RATIO:
            return AssetClass.EQUITY
        if preference.crypto_lookups / total >= STRONG_PREFERENCE_RATIO:
            return AssetClass.CRYPTO
        return None
