"""
Persistence backends for the symbol catalog, provider credentials and user
preferences.

Each store has an in-memory implementation (tests, CLI) and a Redis
implementation keeping one JSON document per record in a hash.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from .models import ProviderCredential, SymbolEntry, UserPreference

logger = logging.getLogger(__name__)


class SymbolStore(ABC):
    """Storage for catalog entries."""

    @abstractmethod
    async def load_all(self) -> List[SymbolEntry]:
        pass

    @abstractmethod
    async def upsert(self, entry: SymbolEntry) -> None:
        pass


class CredentialStore(ABC):
    """Storage for provider credentials."""

    @abstractmethod
    async def load_all(self) -> List[ProviderCredential]:
        pass

    @abstractmethod
    async def upsert(self, credential: ProviderCredential) -> None:
        pass

    @abstractmethod
    async def record_usage(self, credential: ProviderCredential) -> None:
        """Persist usage counters without ever clearing a stored exhaustion flag."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass


class PreferenceStore(ABC):
    """Storage for user preferences."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[UserPreference]:
        pass

    @abstractmethod
    async def put(self, user_id: str, preference: UserPreference) -> None:
        pass


class InMemorySymbolStore(SymbolStore):
    def __init__(self, entries: Optional[List[SymbolEntry]] = None):
        self._entries: Dict[str, Dict[str, Any]] = {}
        for entry in entries or []:
            self._entries[entry.symbol] = entry.to_dict()

    async def load_all(self) -> List[SymbolEntry]:
        return [SymbolEntry.from_dict(data) for data in self._entries.values()]

    async def upsert(self, entry: SymbolEntry) -> None:
        self._entries[entry.symbol] = entry.to_dict()


class InMemoryCredentialStore(CredentialStore):
    def __init__(self):
        self._credentials: Dict[str, Dict[str, Any]] = {}

    async def load_all(self) -> List[ProviderCredential]:
        return [ProviderCredential.from_dict(data) for data in self._credentials.values()]

    async def upsert(self, credential: ProviderCredential) -> None:
        self._credentials[credential.key] = credential.to_dict()

    async def record_usage(self, credential: ProviderCredential) -> None:
        data = credential.to_dict()
        stored = self._credentials.get(credential.key)
        if stored is not None and stored.get("is_exhausted"):
            data["is_exhausted"] = True
        self._credentials[credential.key] = data

    async def delete(self, key: str) -> None:
        self._credentials.pop(key, None)


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self):
        self._preferences: Dict[str, Dict[str, Any]] = {}

    async def get(self, user_id: str) -> Optional[UserPreference]:
        data = self._preferences.get(user_id)
        return UserPreference.from_dict(data) if data else None

    async def put(self, user_id: str, preference: UserPreference) -> None:
        self._preferences[user_id] = preference.to_dict()


class RedisHashStore:
    """Shared helpers for stores backed by a single Redis hash."""

    def __init__(self, client: redis.Redis, key_prefix: str, name: str):
        """
        Initialize Redis-backed store.

        Args:
            client: asyncio Redis client
            key_prefix: Prefix for all keys written by this application
            name: Collection name appended to the prefix
        """
        self.client = client
        self.hash_key = f"{key_prefix}{name}"

    @staticmethod
    def _decode(value: Any) -> Dict[str, Any]:
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return json.loads(value)

    async def _all_values(self) -> List[Dict[str, Any]]:
        raw = await self.client.hgetall(self.hash_key)
        records = []
        for field_name, value in raw.items():
            try:
                records.append(self._decode(value))
            except (ValueError, TypeError) as e:
                logger.error(f"Skipping corrupt record {field_name!r} in {self.hash_key}: {e}")
        return records

    async def _get_value(self, field_name: str) -> Optional[Dict[str, Any]]:
        value = await self.client.hget(self.hash_key, field_name)
        if value is None:
            return None
        return self._decode(value)

    async def _set_value(self, field_name: str, data: Dict[str, Any]) -> None:
        await self.client.hset(self.hash_key, field_name, json.dumps(data))


class RedisSymbolStore(RedisHashStore, SymbolStore):
    def __init__(self, client: redis.Redis, key_prefix: str = "assetquote:"):
        super().__init__(client, key_prefix, "symbols")

    async def load_all(self) -> List[SymbolEntry]:
        return [SymbolEntry.from_dict(data) for data in await self._all_values()]

    async def upsert(self, entry: SymbolEntry) -> None:
        await self._set_value(entry.symbol, entry.to_dict())


class RedisCredentialStore(RedisHashStore, CredentialStore):
    def __init__(self, client: redis.Redis, key_prefix: str = "assetquote:"):
        super().__init__(client, key_prefix, "credentials")

    async def load_all(self) -> List[ProviderCredential]:
        return [ProviderCredential.from_dict(data) for data in await self._all_values()]

    async def upsert(self, credential: ProviderCredential) -> None:
        await self._set_value(credential.key, credential.to_dict())

    async def record_usage(self, credential: ProviderCredential) -> None:
        async def merge(pipe) -> None:
            data = credential.to_dict()
            current = await pipe.hget(self.hash_key, credential.key)
            if current is not None and self._decode(current).get("is_exhausted"):
                data["is_exhausted"] = True
            pipe.multi()
            pipe.hset(self.hash_key, credential.key, json.dumps(data))

        # WATCH on the hash retries the merge if another writer got in first
        await self.client.transaction(merge, self.hash_key)

    async def delete(self, key: str) -> None:
        await self.client.hdel(self.hash_key, key)


class RedisPreferenceStore(RedisHashStore, PreferenceStore):
    def __init__(self, client: redis.Redis, key_prefix: str = "assetquote:"):
        super().__init__(client, key_prefix, "preferences")

    async def get(self, user_id: str) -> Optional[UserPreference]:
        data = await self._get_value(user_id)
        return UserPreference.from_dict(data) if data else None

    async def put(self, user_id: str, preference: UserPreference) -> None:
        await self._set_value(user_id, preference.to_dict())
