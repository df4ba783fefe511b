"""Tests for price aggregation."""

import json
import pytest
from unittest.mock import AsyncMock, patch

from assetquote.data.models import AssetClass, PoolExhausted, Quote
from assetquote.data.storage import InMemoryCredentialStore
from assetquote.pricing import PriceAggregator, infer_asset_class, normalize_symbols
from assetquote.providers.binance import BinanceStreamAdapter
from assetquote.providers.coinmarketcap import CoinMarketCapAdapter
from assetquote.providers.key_pool import ProviderKeyPool
from assetquote.streaming import BinanceTickerStream


def cmc_payload(symbol, price):
    return {
        "status": {"error_code": 0},
        "data": {symbol: {"name": symbol.title(), "quote": {"USD": {"price": price, "percent_change_24h": 1.5}}}},
    }


def test_normalize_symbols():
    assert normalize_symbols(["$aapl", " msft ", "AAPL", "", "#btc", None]) == ["AAPL", "MSFT", "BTC"]


@pytest.mark.parametrize(
    "symbols,expected",
    [
        (["BTC", "ETH"], AssetClass.CRYPTO),
        (["aapl", "BTC"], AssetClass.EQUITY),
        (["THYAO.IS"], AssetClass.EQUITY),
        (["$XYZ"], AssetClass.EQUITY),
        (["PEPE"], AssetClass.CRYPTO),
    ],
)
def test_infer_asset_class(symbols, expected):
    assert infer_asset_class(symbols) == expected


class TestPriceAggregator:
    """Test PriceAggregator."""

    @pytest.mark.asyncio
    async def test_stream_first_then_rest(self):
        """Cached symbols skip the REST adapter entirely."""
        stream = BinanceTickerStream(symbols=["BTC", "ETH", "SOL"])
        stream.handle_message(json.dumps({"e": "24hrTicker", "s": "BTCUSDT", "c": "43250.50", "P": "2.31"}))
        pool = ProviderKeyPool(InMemoryCredentialStore(), ["k1"])
        await pool.initialize()
        rest = CoinMarketCapAdapter(pool, retry_delay=0)
        aggregator = PriceAggregator(stream_adapter=BinanceStreamAdapter(stream), rest_adapter=rest)

        async def respond(credential, symbol):
            return 200, cmc_payload(symbol, {"ETH": 2250.0, "SOL": 98.5}[symbol])

        request = AsyncMock(side_effect=respond)
        with patch.object(rest, "_request", request):
            quotes = await aggregator.get_quotes(["BTC", "ETH", "SOL"], AssetClass.CRYPTO)

        assert request.await_count == 2
        assert sorted(call.args[1] for call in request.await_args_list) == ["ETH", "SOL"]
        assert [(q.symbol, q.source_adapter) for q in quotes] == [
            ("BTC", "binance"),
            ("ETH", "coinmarketcap"),
            ("SOL", "coinmarketcap"),
        ]

    @pytest.mark.asyncio
    async def test_missing_symbols_omitted(self):
        stream_adapter = AsyncMock()
        stream_adapter.get_quotes.return_value = []
        rest_adapter = AsyncMock()
        rest_adapter.name = "coinmarketcap"
        rest_adapter.get_quotes.return_value = [Quote("ETH", 2250.0, 0.1, AssetClass.CRYPTO, "coinmarketcap")]
        aggregator = PriceAggregator(stream_adapter=stream_adapter, rest_adapter=rest_adapter)

        quotes = await aggregator.get_quotes(["#eth", "NOPE"], AssetClass.CRYPTO)

        assert [q.symbol for q in quotes] == ["ETH"]
        rest_adapter.get_quotes.assert_awaited_once_with(["ETH", "NOPE"])

    @pytest.mark.asyncio
    async def test_pool_exhausted_propagates(self):
        rest_adapter = AsyncMock()
        rest_adapter.name = "coinmarketcap"
        rest_adapter.get_quotes.side_effect = PoolExhausted("All keys exhausted", provider="coinmarketcap")
        aggregator = PriceAggregator(rest_adapter=rest_adapter)

        with pytest.raises(PoolExhausted):
            await aggregator.get_quotes(["BTC"], AssetClass.CRYPTO)

    @pytest.mark.asyncio
    async def test_equities_routed_to_equity_adapter(self):
        equity_adapter = AsyncMock()
        equity_adapter.get_quotes.return_value = [
            Quote("AAPL", 190.12, 0.85, AssetClass.EQUITY, "yahoo"),
            Quote("THYAO.IS", 312.75, -1.42, AssetClass.EQUITY, "yahoo"),
        ]
        rest_adapter = AsyncMock()
        aggregator = PriceAggregator(rest_adapter=rest_adapter, equity_adapter=equity_adapter)

        quotes = await aggregator.get_quotes(["aapl", "thyao"])

        equity_adapter.get_quotes.assert_awaited_once_with(["AAPL", "THYAO"])
        rest_adapter.get_quotes.assert_not_awaited()
        assert len(quotes) == 2

    @pytest.mark.asyncio
    async def test_no_equity_adapter(self):
        aggregator = PriceAggregator()
        assert await aggregator.get_quotes(["AAPL"], AssetClass.EQUITY) == []

    @pytest.mark.asyncio
    async def test_empty_input(self):
        aggregator = PriceAggregator()
        assert await aggregator.get_quotes(["", "  "]) == []
