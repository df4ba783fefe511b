"""
Configuration management for AssetQuote.
"""

from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..providers.key_pool import parse_keys


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # App metadata
    app_name: str = "AssetQuote"
    app_version: str = "0.1.0"
    app_description: str = "Symbol resolution and multi-provider asset pricing"

    # Environment
    environment: str = Field(default="production")
    debug: bool = Field(default=False)

    # API settings
    api_prefix: str = "/api/v1"
    docs_url: Optional[str] = "/docs"
    redoc_url: Optional[str] = "/redoc"

    # CORS settings
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"]
    )
    allowed_methods: List[str] = ["GET", "POST"]
    allowed_headers: List[str] = ["*"]

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Storage
    storage_backend: str = Field(default="memory", description="memory or redis")
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_key_prefix: str = Field(default="assetquote:")
    seed_catalog: bool = Field(default=True, description="Seed an empty symbol catalog")

    # CoinMarketCap
    cmc_base_url: str = Field(default="https://pro-api.coinmarketcap.com/v1")
    cmc_api_keys: str = Field(default="", description="Comma separated API keys")
    cmc_timeout: float = Field(default=8.0, description="Request timeout in seconds")
    cmc_max_attempts: int = Field(default=5, ge=1)
    cmc_retry_delay: float = Field(default=0.5, ge=0)
    cmc_quota_error_codes: List[int] = Field(default=[1006, 1008])

    # Binance stream
    binance_stream_enabled: bool = Field(default=True)
    binance_stream_url: str = Field(default="wss://stream.binance.com:9443/ws")
    binance_symbols: List[str] = Field(
        default=[
            "BTC", "ETH", "BNB", "XRP", "ADA", "DOGE", "SOL",
            "MATIC", "AVAX", "DOT", "LTC", "TRX", "SHIB",
        ]
    )
    binance_reconnect_delay: float = Field(default=5.0, ge=0)
    binance_heartbeat_interval: float = Field(default=30.0, gt=0)

    # Yahoo Finance
    yahoo_cache_ttl: float = Field(default=60.0, description="Quote cache TTL in seconds")
    yahoo_timeout: float = Field(default=10.0)
    market_suffix: str = Field(default=".IS", description="National market suffix")
    crypto_suffix: str = Field(default="-USD", description="Crypto quote pair suffix")

    @property
    def cmc_api_key_list(self) -> List[str]:
        """Configured CoinMarketCap keys, blanks and duplicates removed."""
        return parse_keys(self.cmc_api_keys)


# Global settings instance
settings = Settings()
