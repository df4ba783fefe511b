"""Tests for API endpoints."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from assetquote.api.deps import get_optional_quote_service, get_quote_service, get_redis_client
from assetquote.api.main import app
from assetquote.data.models import AssetClass, MatchCandidate, PoolExhausted, Quote
from assetquote.matching import SymbolResolver
from assetquote.pricing import format_quote


@pytest.fixture
def mock_service():
    service = MagicMock()
    service.started = True
    service.resolve = AsyncMock(return_value=[])
    service.get_quotes = AsyncMock(return_value=[])
    service.record_choice = AsyncMock()
    service.record_lookup = AsyncMock()
    service.format_quote.side_effect = format_quote
    service.resolver.is_ambiguous = SymbolResolver.is_ambiguous
    service.catalog.__contains__.side_effect = lambda symbol: symbol in {"AAPL", "BTC"}
    service.get_stats.return_value = {"started": True, "active_keys": 2, "stream": {"state": "connected"}}
    return service


@pytest.fixture
def client(mock_service):
    app.dependency_overrides[get_quote_service] = lambda: mock_service
    app.dependency_overrides[get_optional_quote_service] = lambda: mock_service
    app.dependency_overrides[get_redis_client] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert data["services"] == {
            "redis": "unavailable",
            "quote_service": "healthy",
            "coinmarketcap": "healthy",
            "binance_stream": "connected",
        }
        assert data["stats"]["active_keys"] == 2

    def test_health_exhausted_keys(self, client, mock_service):
        mock_service.get_stats.return_value = {"active_keys": 0}

        data = client.get("/health").json()

        assert data["services"]["coinmarketcap"] == "exhausted"

    def test_health_redis_ping(self, client):
        redis_client = AsyncMock()
        app.dependency_overrides[get_redis_client] = lambda: redis_client

        data = client.get("/health").json()

        assert data["services"]["redis"] == "healthy"
        redis_client.ping.assert_awaited_once()

    def test_root(self, client):
        data = client.get("/").json()
        assert data["name"] == "AssetQuote"
        assert data["health"] == "/health"


class TestLifespan:
    """Test application startup and shutdown."""

    def test_one_redis_client_shared_and_closed(self, mock_service):
        redis_client = AsyncMock()
        mock_service.start = AsyncMock()
        mock_service.stop = AsyncMock()

        with patch("assetquote.api.main.create_redis_client", return_value=redis_client), patch(
            "assetquote.api.main.build_quote_service", return_value=mock_service
        ) as build:
            with TestClient(app) as client:
                for _ in range(2):
                    assert client.get("/health").json()["services"]["redis"] == "healthy"

        assert build.call_args.kwargs["redis_client"] is redis_client
        assert redis_client.ping.await_count == 2
        redis_client.aclose.assert_awaited_once()
        mock_service.stop.assert_awaited_once()
        assert get_redis_client() is None


class TestResolveEndpoint:
    """Test symbol resolution endpoint."""

    def test_resolve(self, client, mock_service):
        mock_service.resolve.return_value = [
            MatchCandidate("PAXG", "PAX Gold", AssetClass.CRYPTO, 95),
            MatchCandidate("GLD", "SPDR Gold Shares", AssetClass.EQUITY, 95),
        ]

        response = client.get("/api/v1/resolve", params={"q": "gold", "user_id": "42"})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "gold"
        assert [c["symbol"] for c in data["candidates"]] == ["PAXG", "GLD"]
        assert data["candidates"][0]["asset_class"] == "crypto"
        assert data["ambiguous"] is True
        mock_service.resolve.assert_awaited_once_with("gold", "42")

    def test_resolve_requires_query(self, client):
        response = client.get("/api/v1/resolve")
        assert response.status_code == 422

    def test_service_not_running(self):
        app.dependency_overrides.clear()
        client = TestClient(app)

        response = client.get("/api/v1/resolve", params={"q": "btc"})

        assert response.status_code == 503


class TestQuotesEndpoint:
    """Test quote endpoint."""

    def test_get_quotes(self, client, mock_service):
        mock_service.get_quotes.return_value = [
            Quote("BTC", 43250.5, 2.31, AssetClass.CRYPTO, "binance", name="Bitcoin")
        ]

        response = client.post("/api/v1/quotes", json={"symbols": ["btc", "nope"], "asset_class": "crypto"})

        assert response.status_code == 200
        data = response.json()
        assert data["quotes"][0]["symbol"] == "BTC"
        assert data["quotes"][0]["source_adapter"] == "binance"
        assert data["quotes"][0]["formatted"] == "BTC (Bitcoin): $43,250.50  (+2.31%)"
        assert data["missing"] == ["NOPE"]
        mock_service.get_quotes.assert_awaited_once_with(["btc", "nope"], AssetClass.CRYPTO)

    def test_market_suffix_not_reported_missing(self, client, mock_service):
        mock_service.get_quotes.return_value = [
            Quote("THYAO.IS", 312.75, -1.42, AssetClass.EQUITY, "yahoo")
        ]

        data = client.post("/api/v1/quotes", json={"symbols": ["THYAO"], "html": True}).json()

        assert data["missing"] == []
        assert data["quotes"][0]["formatted"] == "THYAO: <b>₺312.75</b>  (-1.42%)"

    def test_blank_symbols_rejected(self, client):
        response = client.post("/api/v1/quotes", json={"symbols": ["  "]})
        assert response.status_code == 422

    def test_empty_symbols_rejected(self, client):
        response = client.post("/api/v1/quotes", json={"symbols": []})
        assert response.status_code == 422

    def test_pool_exhausted(self, client, mock_service):
        mock_service.get_quotes.side_effect = PoolExhausted("All coinmarketcap API keys are exhausted")

        response = client.post("/api/v1/quotes", json={"symbols": ["BTC"]})

        assert response.status_code == 503
        assert response.json()["error"] == "Price provider unavailable"

    def test_unexpected_error(self, mock_service):
        mock_service.get_quotes.side_effect = RuntimeError("boom")
        app.dependency_overrides[get_quote_service] = lambda: mock_service
        try:
            client = TestClient(app, raise_server_exceptions=False)
            response = client.post("/api/v1/quotes", json={"symbols": ["BTC"]})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"


class TestPreferenceEndpoints:
    """Test preference endpoints."""

    def test_record_choice(self, client, mock_service):
        response = client.post(
            "/api/v1/preferences/choice", json={"user_id": "42", "query": "apple", "symbol": "aapl"}
        )

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        mock_service.record_choice.assert_awaited_once_with("42", "apple", "aapl")

    def test_record_choice_unknown_symbol(self, client, mock_service):
        response = client.post(
            "/api/v1/preferences/choice", json={"user_id": "42", "query": "apple", "symbol": "ZZZ"}
        )

        assert response.status_code == 404
        mock_service.record_choice.assert_not_awaited()

    def test_record_choice_invalid_query(self, client, mock_service):
        mock_service.record_choice.side_effect = ValueError("Query cannot be empty")

        response = client.post(
            "/api/v1/preferences/choice", json={"user_id": "42", "query": "$", "symbol": "AAPL"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Query cannot be empty"

    def test_record_lookup(self, client, mock_service):
        response = client.post("/api/v1/preferences/lookup", json={"user_id": "42", "asset_class": "equity"})

        assert response.status_code == 200
        mock_service.record_lookup.assert_awaited_once_with("42", AssetClass.EQUITY)

    def test_record_lookup_invalid_class(self, client):
        response = client.post("/api/v1/preferences/lookup", json={"user_id": "42", "asset_class": "bonds"})
        assert response.status_code == 422
