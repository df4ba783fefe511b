"""
Data models, caching and persistence for AssetQuote.
"""

from typing import List

# Data models
from .models import (
    AssetClass, SymbolEntry, MatchCandidate, UserPreference, ProviderCredential,
    Quote, CacheEntry,
    AssetQuoteError, ProviderError, ProviderQuotaExceeded, ProviderUnavailable,
    PoolExhausted, RetryExhaustedError, CatalogError, CatalogLoadError,
    CatalogWriteFailure,
)

# Caching
from .cache import QuoteCache

# Persistence
from .storage import (
    SymbolStore, CredentialStore, PreferenceStore,
    InMemorySymbolStore, InMemoryCredentialStore, InMemoryPreferenceStore,
    RedisSymbolStore, RedisCredentialStore, RedisPreferenceStore,
)
from .seed import default_seed

__all__: List[str] = [
    # Models
    "AssetClass", "SymbolEntry", "MatchCandidate", "UserPreference",
    "ProviderCredential", "Quote", "CacheEntry",
    "AssetQuoteError", "ProviderError", "ProviderQuotaExceeded",
    "ProviderUnavailable", "PoolExhausted", "RetryExhaustedError",
    "CatalogError", "CatalogLoadError", "CatalogWriteFailure",

    # Cache
    "QuoteCache",

    # Storage
    "SymbolStore", "CredentialStore", "PreferenceStore",
    "InMemorySymbolStore", "InMemoryCredentialStore", "InMemoryPreferenceStore",
    "RedisSymbolStore", "RedisCredentialStore", "RedisPreferenceStore",
    "default_seed",
]
