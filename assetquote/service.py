"""
Quote service facade.

Wires the catalog, resolver, key pool and provider adapters together and
exposes the operations callers use: resolve a query, record choices, fetch
and format quotes.
"""

import logging
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from .catalog import SymbolCatalog
from .data.models import AssetClass, MatchCandidate, Quote
from .data.seed import default_seed
from .data.storage import (
    InMemoryCredentialStore,
    InMemoryPreferenceStore,
    InMemorySymbolStore,
    RedisCredentialStore,
    RedisPreferenceStore,
    RedisSymbolStore,
)
from .matching import PreferenceTracker, SymbolResolver
from .pricing import PriceAggregator, format_quote
from .providers import (
    BinanceStreamAdapter,
    CoinMarketCapAdapter,
    ProviderKeyPool,
    QuoteAdapter,
    YahooFinanceAdapter,
)
from .streaming import BinanceTickerStream

logger = logging.getLogger(__name__)


class QuoteService:
    """Entry point for symbol resolution and pricing."""

    def __init__(
        self,
        catalog: SymbolCatalog,
        resolver: SymbolResolver,
        preferences: PreferenceTracker,
        aggregator: PriceAggregator,
        key_pool: Optional[ProviderKeyPool] = None,
        adapters: Optional[List[QuoteAdapter]] = None,
        redis_client: Optional[redis.Redis] = None,
    ):
        self.catalog = catalog
        self.resolver = resolver
        self.preferences = preferences
        self.aggregator = aggregator
        self.key_pool = key_pool
        self.adapters = adapters or []
        # Closed on stop; only set when the service created the client itself
        self.redis_client = redis_client
        self.started = False

    async def start(self):
        """Load the catalog and key pool, then start the adapters."""
        if self.started:
            return

        logger.info("Starting quote service...")
        await self.catalog.load()
        if self.key_pool is not None:
            await self.key_pool.initialize()
        for adapter in self.adapters:
            await adapter.start()
        self.started = True
        logger.info("Quote service started")

    async def stop(self):
        """Stop adapters in reverse start order and close an owned Redis client."""
        for adapter in reversed(self.adapters):
            try:
                await adapter.stop()
            except Exception as e:
                logger.error(f"Failed to stop {adapter.name} adapter: {e}")
        if self.redis_client is not None:
            try:
                await self.redis_client.aclose()
            except Exception as e:
                logger.error(f"Failed to close Redis client: {e}")
            self.redis_client = None
        self.started = False
        logger.info("Quote service stopped")

    async def resolve(self, query: str, user_id: Optional[str] = None) -> List[MatchCandidate]:
        return await self.resolver.resolve(query, user_id)

    async def record_choice(self, user_id: str, query: str, chosen_symbol: str) -> None:
        await self.resolver.record_choice(user_id, query, chosen_symbol)

    async def record_lookup(self, user_id: str, asset_class: AssetClass) -> None:
        await self.resolver.record_lookup(user_id, asset_class)

    async def get_quotes(
        self, symbols: List[str], asset_class: Optional[AssetClass] = None
    ) -> List[Quote]:
        return await self.aggregator.get_quotes(symbols, asset_class)

    def format_quote(self, quote: Quote, html: bool = False) -> str:
        return format_quote(quote, html=html)

    def get_stats(self) -> Dict[str, Any]:
        """Service statistics for health reporting."""
        stats: Dict[str, Any] = {
            "started": self.started,
            "catalog_symbols": len(self.catalog),
            "adapters": [adapter.name for adapter in self.adapters],
        }
        if self.key_pool is not None:
            stats["active_keys"] = self.key_pool.active_count
            stats["total_keys"] = len(self.key_pool.credentials())
        stream = self.aggregator.stream_adapter
        if isinstance(stream, BinanceStreamAdapter):
            stats["stream"] = stream.stream.get_stats()
        return stats


def build_quote_service(settings, redis_client: Optional[redis.Redis] = None) -> QuoteService:
    """
    Build a quote service from settings.

    Args:
        settings: Application settings
        redis_client: Client to use for the redis storage backend; created
            from ``settings.redis_url`` and owned by the service when omitted

    Returns:
        An unstarted QuoteService
    """
    backend = settings.storage_backend.lower()
    owned_client = None
    if backend == "redis":
        client = redis_client
        if client is None:
            client = owned_client = redis.from_url(settings.redis_url)
        prefix = settings.redis_key_prefix
        symbol_store = RedisSymbolStore(client, prefix)
        credential_store = RedisCredentialStore(client, prefix)
        preference_store = RedisPreferenceStore(client, prefix)
    elif backend == "memory":
        symbol_store = InMemorySymbolStore()
        credential_store = InMemoryCredentialStore()
        preference_store = InMemoryPreferenceStore()
    else:
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")

    catalog = SymbolCatalog(symbol_store, seed=default_seed() if settings.seed_catalog else None)
    preferences = PreferenceTracker(preference_store)

    yahoo = YahooFinanceAdapter(
        cache_ttl_seconds=settings.yahoo_cache_ttl,
        market_suffix=settings.market_suffix,
        timeout=settings.yahoo_timeout,
    )

    key_pool = ProviderKeyPool(credential_store, settings.cmc_api_key_list)
    coinmarketcap = CoinMarketCapAdapter(
        key_pool,
        base_url=settings.cmc_base_url,
        timeout=settings.cmc_timeout,
        max_attempts=settings.cmc_max_attempts,
        retry_delay=settings.cmc_retry_delay,
        quota_error_codes=settings.cmc_quota_error_codes,
    )

    stream_adapter = None
    if settings.binance_stream_enabled:
        stream_adapter = BinanceStreamAdapter(
            BinanceTickerStream(
                url=settings.binance_stream_url,
                symbols=settings.binance_symbols,
                reconnect_delay=settings.binance_reconnect_delay,
                heartbeat_interval=settings.binance_heartbeat_interval,
            )
        )

    aggregator = PriceAggregator(
        stream_adapter=stream_adapter,
        rest_adapter=coinmarketcap,
        equity_adapter=yahoo,
    )
    resolver = SymbolResolver(
        catalog,
        preferences=preferences,
        lookup=yahoo,
        market_suffix=settings.market_suffix,
        crypto_suffix=settings.crypto_suffix,
    )

    adapters: List[QuoteAdapter] = [yahoo, coinmarketcap]
    if stream_adapter is not None:
        adapters.append(stream_adapter)

    logger.info(
        f"Built quote service: storage={backend}, cmc_keys={len(settings.cmc_api_key_list)}, "
        f"stream={'on' if stream_adapter else 'off'}"
    )
    return QuoteService(
        catalog=catalog,
        resolver=resolver,
        preferences=preferences,
        aggregator=aggregator,
        key_pool=key_pool,
        adapters=adapters,
        redis_client=owned_client,
    )
