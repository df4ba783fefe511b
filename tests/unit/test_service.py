"""Tests for the quote service facade."""

import pytest
from unittest.mock import AsyncMock, patch

from assetquote.api.config import Settings
from assetquote.data.models import AssetClass
from assetquote.data.storage import RedisSymbolStore
from assetquote.providers import BinanceStreamAdapter, CoinMarketCapAdapter, YahooFinanceAdapter
from assetquote.service import build_quote_service


def make_settings(**overrides):
    values = {
        "storage_backend": "memory",
        "cmc_api_keys": "k1,k2",
        "cmc_retry_delay": 0,
        "binance_stream_enabled": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestBuildQuoteService:
    """Test build_quote_service wiring."""

    def test_memory_backend(self):
        service = build_quote_service(make_settings())

        assert [type(a) for a in service.adapters] == [YahooFinanceAdapter, CoinMarketCapAdapter]
        assert service.aggregator.stream_adapter is None
        assert service.resolver.lookup is service.aggregator.equity_adapter
        assert service.key_pool.configured_keys == ["k1", "k2"]

    def test_stream_enabled(self):
        service = build_quote_service(make_settings(binance_stream_enabled=True, binance_symbols=["BTC"]))

        assert isinstance(service.aggregator.stream_adapter, BinanceStreamAdapter)
        assert service.aggregator.stream_adapter.stream.symbols == ["BTC"]
        assert service.adapters[-1] is service.aggregator.stream_adapter

    def test_redis_backend(self):
        client = AsyncMock()
        service = build_quote_service(make_settings(storage_backend="redis"), redis_client=client)

        assert isinstance(service.catalog.store, RedisSymbolStore)
        assert service.catalog.store.client is client
        assert service.redis_client is None

    @pytest.mark.asyncio
    @patch("redis.asyncio.from_url")
    async def test_owned_redis_client_closed_on_stop(self, mock_from_url):
        client = AsyncMock()
        mock_from_url.return_value = client
        service = build_quote_service(make_settings(storage_backend="redis"))

        assert service.catalog.store.client is client
        await service.stop()

        client.aclose.assert_awaited_once()
        assert service.redis_client is None

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_quote_service(make_settings(storage_backend="sqlite"))


class TestQuoteService:
    """Test QuoteService operations against the in-memory backend."""

    @pytest.fixture
    def service(self):
        return build_quote_service(make_settings())

    @pytest.mark.asyncio
    async def test_start_loads_catalog_and_keys(self, service):
        await service.start()
        try:
            assert service.started
            assert "AAPL" in service.catalog
            assert service.key_pool.active_count == 2

            stats = service.get_stats()
            assert stats["catalog_symbols"] == len(service.catalog)
            assert stats["active_keys"] == 2
            assert stats["adapters"] == ["yahoo", "coinmarketcap"]
        finally:
            await service.stop()

        assert not service.started

    @pytest.mark.asyncio
    async def test_resolve_and_remember_choice(self, service):
        await service.start()
        try:
            candidates = await service.resolve("apple")
            assert candidates[0].symbol == "AAPL"

            await service.record_choice("42", "fruit company", "AAPL")
            remembered = await service.resolve("Fruit Company", user_id="42")
            assert [(c.symbol, c.score) for c in remembered] == [("AAPL", 100)]
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_get_quotes_and_format(self, service):
        payload = {
            "status": {"error_code": 0},
            "data": {"BTC": {"name": "Bitcoin", "quote": {"USD": {"price": 43250.5, "percent_change_24h": 2.31}}}},
        }
        rest = service.aggregator.rest_adapter
        await service.start()
        try:
            with patch.object(rest, "_request", AsyncMock(return_value=(200, payload))):
                quotes = await service.get_quotes(["btc"], AssetClass.CRYPTO)
        finally:
            await service.stop()

        assert len(quotes) == 1
        assert service.format_quote(quotes[0]) == "BTC (Bitcoin): $43,250.50  (+2.31%)"

    @pytest.mark.asyncio
    async def test_record_lookup(self, service):
        await service.start()
        try:
            for _ in range(3):
                await service.record_lookup("42", AssetClass.CRYPTO)
            assert await service.preferences.class_preference("42") == AssetClass.CRYPTO
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_stop_tolerates_adapter_errors(self, service):
        await service.start()
        with patch.object(service.adapters[0], "stop", AsyncMock(side_effect=RuntimeError("boom"))):
            await service.stop()

        assert not service.started
