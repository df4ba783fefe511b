"""
Data models for symbols, quotes and provider credentials.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class AssetClass(str, Enum):
    """Asset class determines which provider adapters apply."""

    CRYPTO = "crypto"
    EQUITY = "equity"


@dataclass
class SymbolEntry:
    """Catalog entry for a known asset."""

    symbol: str
    asset_class: AssetClass
    display_name: str
    aliases: List[str] = field(default_factory=list)
    popularity: int = 50

    def __post_init__(self):
        """Validate entry data."""
        self.symbol = self.symbol.upper().strip()
        if not self.symbol:
            raise ValueError("Symbol cannot be empty")
        if not 1 <= self.popularity <= 100:
            raise ValueError("Popularity must be between 1 and 100")
        self.asset_class = AssetClass(self.asset_class)
        self.aliases = [a for a in self.aliases if a]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "asset_class": self.asset_class.value,
            "display_name": self.display_name,
            "aliases": list(self.aliases),
            "popularity": self.popularity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SymbolEntry":
        return cls(
            symbol=data["symbol"],
            asset_class=AssetClass(data["asset_class"]),
            display_name=data.get("display_name") or data["symbol"],
            aliases=list(data.get("aliases", [])),
            popularity=int(data.get("popularity", 50)),
        )


@dataclass
class MatchCandidate:
    """Ranked resolution result."""

    symbol: str
    display_name: str
    asset_class: AssetClass
    score: int

    @classmethod
    def from_entry(cls, entry: SymbolEntry, score: int) -> "MatchCandidate":
        return cls(
            symbol=entry.symbol,
            display_name=entry.display_name,
            asset_class=entry.asset_class,
            score=score,
        )


@dataclass
class UserPreference:
    """Per-user disambiguation choices and asset class counters."""

    user_id: str
    query_choices: Dict[str, str] = field(default_factory=dict)
    equity_lookups: int = 0
    crypto_lookups: int = 0

    @property
    def total_lookups(self) -> int:
        return self.equity_lookups + self.crypto_lookups

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "query_choices": dict(self.query_choices),
            "equity_lookups": self.equity_lookups,
            "crypto_lookups": self.crypto_lookups,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreference":
        return cls(
            user_id=str(data["user_id"]),
            query_choices=dict(data.get("query_choices") or {}),
            equity_lookups=int(data.get("equity_lookups") or 0),
            crypto_lookups=int(data.get("crypto_lookups") or 0),
        )


@dataclass
class ProviderCredential:
    """API key for a quota-limited provider."""

    key: str
    usage_count: int = 0
    is_exhausted: bool = False
    last_used_at: Optional[datetime] = None

    @property
    def masked_key(self) -> str:
        """Key prefix safe for logging."""
        return f"{self.key[:5]}..."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "usage_count": self.usage_count,
            "is_exhausted": self.is_exhausted,
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderCredential":
        last_used = data.get("last_used_at")
        return cls(
            key=data["key"],
            usage_count=int(data.get("usage_count") or 0),
            is_exhausted=bool(data.get("is_exhausted", False)),
            last_used_at=datetime.fromisoformat(last_used) if last_used else None,
        )

    def __repr__(self) -> str:
        return (
            f"ProviderCredential(key={self.masked_key!r}, usage_count={self.usage_count}, "
            f"is_exhausted={self.is_exhausted})"
        )


@dataclass
class Quote:
    """Current price observation for one symbol."""

    symbol: str
    price: float
    percent_change: float
    asset_class: AssetClass
    source_adapter: str
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "percent_change": self.percent_change,
            "asset_class": self.asset_class.value,
            "source_adapter": self.source_adapter,
            "observed_at": self.observed_at.isoformat(),
            "name": self.name,
        }


@dataclass
class CacheEntry:
    """Cached quote owned by a single adapter."""

    symbol: str
    quote: Quote
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


# Exceptions


class AssetQuoteError(Exception):
    """Base exception for asset resolution and pricing."""

    pass


class ProviderError(AssetQuoteError):
    """Failure reported by or while talking to an external provider."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ProviderQuotaExceeded(ProviderError):
    """Provider rejected the request because a credential hit its quota."""

    pass


class ProviderUnavailable(ProviderError):
    """Network or parse failure talking to a provider."""

    pass


class PoolExhausted(ProviderError):
    """Every credential in a key pool is exhausted."""

    pass


class RetryExhaustedError(AssetQuoteError):
    """A bounded retry ran out of attempts."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(f"Operation failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class CatalogError(AssetQuoteError):
    """Symbol catalog persistence error."""

    pass


class CatalogLoadError(CatalogError):
    """Catalog could not be hydrated from storage."""

    pass


class CatalogWriteFailure(CatalogError):
    """A catalog mutation could not be persisted."""

    def __init__(self, symbol: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to persist symbol {symbol}: {cause}")
        self.symbol = symbol
        self.cause = cause
