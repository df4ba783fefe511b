"""
API key rotation for quota-limited providers.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..data.models import PoolExhausted, ProviderCredential
from ..data.storage import CredentialStore

logger = logging.getLogger(__name__)

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def parse_keys(raw: str) -> List[str]:
    """Split a comma separated key list, dropping blanks and duplicates."""
    keys: List[str] = []
    for part in (raw or "").split(","):
        key = part.strip()
        if key and key not in keys:
            keys.append(key)
    return keys


class ProviderKeyPool:
    """
    Pool of API credentials for one provider.

    One credential is "current" and is handed out until it is exhausted or
    invalidated. Exhausted credentials stay out of rotation until reset.
    The in-memory credential is authoritative; every change is written
    through to the credential store.
    """

    def __init__(self, store: CredentialStore, configured_keys: List[str], name: str = "coinmarketcap"):
        """
        Initialize key pool.

        Args:
            store: Credential persistence
            configured_keys: Keys from configuration
            name: Provider name used in errors and logs
        """
        self.store = store
        self.configured_keys = [k for k in configured_keys if k]
        self.name = name
        self._credentials: Dict[str, ProviderCredential] = {}
        self._current: Optional[str] = None
        self._skip: Optional[str] = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Reconcile stored credentials with the configured key list."""
        async with self._lock:
            stored = {c.key: c for c in await self.store.load_all()}
            credentials: Dict[str, ProviderCredential] = {}

            for key in self.configured_keys:
                credential = stored.get(key)
                if credential is None:
                    credential = ProviderCredential(key=key)
                    await self._persist(credential)
                    logger.info(f"Added {self.name} API key {credential.masked_key}")
                credentials[key] = credential

            for key, credential in stored.items():
                if key not in credentials:
                    logger.info(f"Removing unconfigured {self.name} API key {credential.masked_key}")
                    await self.store.delete(key)

            self._credentials = credentials
            self._current = None
            logger.info(
                f"{self.name} key pool ready: {self.active_count} active, "
                f"{len(self._credentials) - self.active_count} exhausted"
            )

    @property
    def active_count(self) -> int:
        return sum(1 for c in self._credentials.values() if not c.is_exhausted)

    def credentials(self) -> List[ProviderCredential]:
        return list(self._credentials.values())

    @property
    def current(self) -> Optional[ProviderCredential]:
        if self._current is None:
            return None
        return self._credentials.get(self._current)

    async def acquire(self) -> ProviderCredential:
        """
        Get the credential to use for the next request.

        Raises:
            PoolExhausted: No active credentials remain
        """
        async with self._lock:
            current = self.current
            if current is not None and not current.is_exhausted:
                return current

            await self._sync_exhausted()
            active = [c for c in self._credentials.values() if not c.is_exhausted]
            if not active:
                self._current = None
                raise PoolExhausted(f"All {self.name} API keys are exhausted", provider=self.name)

            skip = self._skip
            chosen = min(
                active,
                key=lambda c: (
                    c.key == skip,
                    c.last_used_at is not None,
                    c.last_used_at or _NEVER,
                    c.usage_count,
                ),
            )
            self._skip = None

            chosen.usage_count += 1
            chosen.last_used_at = datetime.now(timezone.utc)
            self._current = chosen.key
            try:
                await self.store.record_usage(chosen)
            except Exception as e:
                logger.error(f"Failed to persist {self.name} API key {chosen.masked_key}: {e}")

            logger.debug(f"Selected {self.name} API key {chosen.masked_key}")
            return chosen

    async def mark_exhausted(self, credential: ProviderCredential) -> None:
        """Take a credential out of rotation. Repeated calls are no-ops."""
        async with self._lock:
            stored = self._credentials.get(credential.key)
            if stored is None:
                logger.warning(f"Unknown {self.name} API key {credential.masked_key}")
                return
            if stored.is_exhausted:
                return

            stored.is_exhausted = True
            if self._current == stored.key:
                self._current = None
            await self._persist(stored)
            logger.warning(
                f"{self.name} API key {stored.masked_key} exhausted, {self.active_count} active keys left"
            )

    async def invalidate_current(self) -> None:
        """Forget the current credential so the next acquire rotates."""
        async with self._lock:
            if self._current is not None:
                self._skip = self._current
            self._current = None

    async def reset_exhausted(self, key: Optional[str] = None) -> int:
        """
        Return exhausted credentials to rotation.

        Args:
            key: Reset only this key; None resets all

        Returns:
            Number of credentials reset
        """
        async with self._lock:
            reset = 0
            for credential in self._credentials.values():
                if key is not None and credential.key != key:
                    continue
                if credential.is_exhausted:
                    credential.is_exhausted = False
                    await self._persist(credential)
                    reset += 1
            if reset:
                logger.info(f"Reset {reset} exhausted {self.name} API keys")
            return reset

    async def _sync_exhausted(self) -> None:
        """Pick up keys another process marked exhausted. Never clears a local flag."""
        try:
            stored = await self.store.load_all()
        except Exception as e:
            logger.warning(f"Failed to refresh {self.name} API keys from store: {e}")
            return

        for credential in stored:
            local = self._credentials.get(credential.key)
            if local is not None and credential.is_exhausted and not local.is_exhausted:
                local.is_exhausted = True
                logger.info(f"{self.name} API key {local.masked_key} was exhausted elsewhere")

    async def _persist(self, credential: ProviderCredential) -> None:
        try:
            await self.store.upsert(credential)
        except Exception as e:
            logger.error(f"Failed to persist {self.name} API key {credential.masked_key}: {e}")
