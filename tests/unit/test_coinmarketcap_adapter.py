"""Tests for the CoinMarketCap adapter."""

import pytest
from unittest.mock import AsyncMock, patch

from assetquote.data.models import AssetClass, PoolExhausted
from assetquote.data.storage import InMemoryCredentialStore
from assetquote.providers.coinmarketcap import CoinMarketCapAdapter
from assetquote.providers.key_pool import ProviderKeyPool


def quote_payload(symbol, price, change, name=None):
    return {
        "status": {"error_code": 0, "error_message": None},
        "data": {
            symbol: {
                "symbol": symbol,
                "name": name or symbol,
                "quote": {"USD": {"price": price, "percent_change_24h": change}},
            }
        },
    }


QUOTA_PAYLOAD = {"status": {"error_code": 1008, "error_message": "You've exceeded your API Key's minute rate limit."}}


class TestCoinMarketCapAdapter:
    """Test CoinMarketCapAdapter."""

    @pytest.fixture
    def make_adapter(self):
        async def factory(keys=("k1", "k2", "k3"), max_attempts=5):
            pool = ProviderKeyPool(InMemoryCredentialStore(), list(keys))
            await pool.initialize()
            return CoinMarketCapAdapter(pool, max_attempts=max_attempts, retry_delay=0)

        return factory

    @pytest.mark.asyncio
    async def test_parses_quote(self, make_adapter):
        adapter = await make_adapter()
        request = AsyncMock(return_value=(200, quote_payload("BTC", 43250.5, 2.31, "Bitcoin")))

        with patch.object(adapter, "_request", request):
            quotes = await adapter.get_quotes(["btc"])

        assert len(quotes) == 1
        quote = quotes[0]
        assert quote.symbol == "BTC"
        assert quote.price == 43250.5
        assert quote.percent_change == 2.31
        assert quote.name == "Bitcoin"
        assert quote.asset_class == AssetClass.CRYPTO
        assert quote.source_adapter == "coinmarketcap"

    @pytest.mark.asyncio
    async def test_list_shaped_data(self, make_adapter):
        adapter = await make_adapter()
        payload = quote_payload("ETH", 2250.0, -1.2)
        payload["data"]["ETH"] = [payload["data"]["ETH"]]

        with patch.object(adapter, "_request", AsyncMock(return_value=(200, payload))):
            quotes = await adapter.get_quotes(["ETH"])

        assert quotes[0].price == 2250.0

    @pytest.mark.asyncio
    async def test_key_sticks_between_requests(self, make_adapter):
        adapter = await make_adapter()
        request = AsyncMock(return_value=(200, quote_payload("BTC", 1.0, 0.0)))

        with patch.object(adapter, "_request", request):
            await adapter.fetch_quote("BTC")
            await adapter.fetch_quote("BTC")

        keys = [call.args[0].key for call in request.await_args_list]
        assert keys == ["k1", "k1"]

    @pytest.mark.asyncio
    async def test_rotates_on_quota_error(self, make_adapter):
        adapter = await make_adapter()
        request = AsyncMock(side_effect=[(429, {}), (200, quote_payload("BTC", 1.0, 0.0))])

        with patch.object(adapter, "_request", request):
            quote = await adapter.fetch_quote("BTC")

        assert quote.price == 1.0
        assert [call.args[0].key for call in request.await_args_list] == ["k1", "k2"]
        assert adapter.key_pool.active_count == 2

    @pytest.mark.asyncio
    async def test_quota_error_code_in_body(self, make_adapter):
        adapter = await make_adapter()
        request = AsyncMock(side_effect=[(401, QUOTA_PAYLOAD), (200, quote_payload("BTC", 1.0, 0.0))])

        with patch.object(adapter, "_request", request):
            quote = await adapter.fetch_quote("BTC")

        assert quote is not None
        exhausted = [c.key for c in adapter.key_pool.credentials() if c.is_exhausted]
        assert exhausted == ["k1"]

    @pytest.mark.asyncio
    async def test_all_keys_exhausted(self, make_adapter):
        """Three keys and persistent quota errors end in PoolExhausted."""
        adapter = await make_adapter()
        request = AsyncMock(return_value=(429, QUOTA_PAYLOAD))

        with patch.object(adapter, "_request", request):
            with pytest.raises(PoolExhausted):
                await adapter.get_quotes(["BTC"])

        assert request.await_count == 3
        assert all(c.is_exhausted for c in adapter.key_pool.credentials())

    @pytest.mark.asyncio
    async def test_attempt_ceiling_is_a_miss(self, make_adapter):
        adapter = await make_adapter(keys=[f"k{i}" for i in range(8)], max_attempts=5)
        request = AsyncMock(return_value=(429, {}))

        with patch.object(adapter, "_request", request):
            quotes = await adapter.get_quotes(["BTC"])

        assert quotes == []
        assert request.await_count == 5
        assert adapter.key_pool.active_count == 3

    @pytest.mark.asyncio
    async def test_unknown_symbol_is_a_miss(self, make_adapter):
        adapter = await make_adapter()
        request = AsyncMock(return_value=(400, {"status": {"error_code": 400, "error_message": "Invalid value for \"symbol\""}}))

        with patch.object(adapter, "_request", request):
            quotes = await adapter.get_quotes(["NOTACOIN"])

        assert quotes == []
        request.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_server_error_retried_once_with_another_key(self, make_adapter):
        adapter = await make_adapter()
        request = AsyncMock(return_value=(500, {}))

        with patch.object(adapter, "_request", request):
            quotes = await adapter.get_quotes(["BTC"])

        assert quotes == []
        assert [call.args[0].key for call in request.await_args_list] == ["k1", "k2"]
        assert adapter.key_pool.active_count == 3

    @pytest.mark.asyncio
    async def test_server_error_single_key_not_retried(self, make_adapter):
        adapter = await make_adapter(keys=["k1"])
        request = AsyncMock(return_value=(503, {}))

        with patch.object(adapter, "_request", request):
            assert await adapter.get_quotes(["BTC"]) == []

        request.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_partial_batch(self, make_adapter):
        adapter = await make_adapter()

        async def respond(credential, symbol):
            if symbol == "BTC":
                return 200, quote_payload("BTC", 43000.0, 1.0)
            return 400, {}

        with patch.object(adapter, "_request", AsyncMock(side_effect=respond)):
            quotes = await adapter.get_quotes(["BTC", "NOPE"])

        assert [q.symbol for q in quotes] == ["BTC"]

    @pytest.mark.asyncio
    async def test_empty_input(self, make_adapter):
        adapter = await make_adapter()
        assert await adapter.get_quotes([]) == []

    @pytest.mark.asyncio
    async def test_start_stop_session(self, make_adapter):
        adapter = await make_adapter()

        await adapter.start()
        assert adapter._session is not None
        await adapter.stop()
        assert adapter._session is None
