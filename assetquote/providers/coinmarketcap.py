"""
CoinMarketCap quote adapter.

Prices crypto assets through the CoinMarketCap REST API, rotating API keys
through a ProviderKeyPool when a key runs out of quota.
"""

import asyncio
import aiohttp
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..data.models import (
    AssetClass,
    PoolExhausted,
    ProviderCredential,
    ProviderError,
    ProviderQuotaExceeded,
    ProviderUnavailable,
    Quote,
)
from .base import QuoteAdapter
from .key_pool import ProviderKeyPool
from .retry import retry_async

logger = logging.getLogger(__name__)


class _CredentialRepeated(ProviderError):
    """The pool handed out a key already tried for this symbol."""

    pass


class CoinMarketCapAdapter(QuoteAdapter):
    """Quota-limited REST adapter with API key rotation."""

    BASE_URL = "https://pro-api.coinmarketcap.com/v1"
    QUOTES_PATH = "/cryptocurrency/quotes/latest"
    QUOTA_STATUS_CODES = (429, 403)

    def __init__(
        self,
        key_pool: ProviderKeyPool,
        base_url: str = BASE_URL,
        timeout: float = 8.0,
        max_attempts: int = 5,
        retry_delay: float = 0.5,
        quota_error_codes: Iterable[int] = (1006, 1008),
        convert: str = "USD",
    ):
        """
        Initialize CoinMarketCap adapter.

        Args:
            key_pool: Pool of CoinMarketCap API keys
            base_url: API base URL
            timeout: Per-request timeout in seconds
            max_attempts: Attempt ceiling per symbol
            retry_delay: Seconds to wait between attempts
            quota_error_codes: CoinMarketCap error codes meaning the key is out of quota
            convert: Quote currency
        """
        super().__init__("coinmarketcap", AssetClass.CRYPTO)
        self.key_pool = key_pool
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.quota_error_codes = set(quota_error_codes)
        self.convert = convert
        self._session: Optional[aiohttp.ClientSession] = None

        # Health monitoring
        self.total_requests = 0
        self.successful_requests = 0

    async def start(self):
        """Open the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            logger.info(f"Started CoinMarketCap adapter ({self.key_pool.active_count} active keys)")

    async def stop(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def get_quotes(self, symbols: List[str]) -> List[Quote]:
        """
        Get quotes, one request per symbol, issued concurrently.

        Raises:
            PoolExhausted: Every API key is out of quota
        """
        normalized = [self.validate_symbol(s) for s in symbols]
        if not normalized:
            return []

        results = await asyncio.gather(
            *(self.fetch_quote(symbol) for symbol in normalized),
            return_exceptions=True,
        )

        quotes = []
        exhausted: Optional[PoolExhausted] = None
        for symbol, result in zip(normalized, results):
            if isinstance(result, PoolExhausted):
                exhausted = result
            elif isinstance(result, Exception):
                logger.warning(f"CoinMarketCap could not price {symbol}: {result}")
            elif result is None:
                logger.debug(f"CoinMarketCap has no quote for {symbol}")
            else:
                quotes.append(result)

        if exhausted is not None:
            logger.error("All CoinMarketCap API keys are exhausted")
            raise exhausted
        return quotes

    async def fetch_quote(self, symbol: str) -> Optional[Quote]:
        """
        Fetch one quote, rotating keys on quota errors.

        Quota errors exhaust the key and retry on the next one, up to
        ``max_attempts``. A non-quota failure (network error, unexpected
        status) is retried once on a different key whenever an untried
        active key remains, including on the first attempt. A second such
        failure ends the lookup.

        Returns:
            The quote, or None when CoinMarketCap does not know the symbol
        """
        tried: Set[str] = set()
        unavailable_failures = 0

        async def attempt(number: int) -> Optional[Quote]:
            credential = await self.key_pool.acquire()
            if credential.key in tried:
                await self.key_pool.invalidate_current()
                raise _CredentialRepeated(
                    f"API key {credential.masked_key} already tried for {symbol}", provider=self.name
                )
            tried.add(credential.key)

            logger.debug(
                f"Fetching {symbol} with API key {credential.masked_key} "
                f"(attempt {number}/{self.max_attempts})"
            )
            status, payload = await self._request(credential, symbol)

            if self._is_quota_error(status, payload):
                await self.key_pool.mark_exhausted(credential)
                raise ProviderQuotaExceeded(
                    f"API key {credential.masked_key} hit its quota ({self._describe_error(status, payload)})",
                    provider=self.name,
                )
            if status == 400:
                # CoinMarketCap answers 400 for unknown symbols
                logger.debug(f"CoinMarketCap rejected symbol {symbol}: {self._describe_error(status, payload)}")
                return None
            if status != 200:
                raise ProviderUnavailable(
                    f"CoinMarketCap returned {self._describe_error(status, payload)}", provider=self.name
                )

            self.successful_requests += 1
            return self._parse_quote(symbol, payload)

        def is_retryable(error: Exception) -> bool:
            nonlocal unavailable_failures
            if isinstance(error, (ProviderQuotaExceeded, _CredentialRepeated)):
                return True
            if isinstance(error, ProviderUnavailable):
                unavailable_failures += 1
                return unavailable_failures <= 1 and self._has_untried_key(tried)
            return False

        async def on_retry(number: int, error: Exception) -> None:
            if isinstance(error, ProviderUnavailable):
                logger.info(f"CoinMarketCap request for {symbol} failed, trying another API key: {error}")
                await self.key_pool.invalidate_current()

        return await retry_async(
            attempt,
            max_attempts=self.max_attempts,
            is_retryable=is_retryable,
            delay=self.retry_delay,
            on_retry=on_retry,
        )

    async def _request(self, credential: ProviderCredential, symbol: str) -> Tuple[int, Dict[str, Any]]:
        """Issue one quotes request and return (HTTP status, decoded body)."""
        if not self._session:
            await self.start()

        self.total_requests += 1
        headers = {
            "X-CMC_PRO_API_KEY": credential.key,
            "Accept": "application/json",
        }
        params = {"symbol": symbol, "convert": self.convert}

        try:
            async with self._session.get(
                f"{self.base_url}{self.QUOTES_PATH}", headers=headers, params=params
            ) as response:
                try:
                    payload = await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError):
                    payload = {}
                return response.status, payload if isinstance(payload, dict) else {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderUnavailable(f"CoinMarketCap request failed: {e}", provider=self.name) from e

    def _has_untried_key(self, tried: Set[str]) -> bool:
        return any(not c.is_exhausted and c.key not in tried for c in self.key_pool.credentials())

    @staticmethod
    def _error_code(payload: Dict[str, Any]) -> Optional[int]:
        status = payload.get("status") if isinstance(payload, dict) else None
        if isinstance(status, dict):
            return status.get("error_code")
        return None

    def _is_quota_error(self, status: int, payload: Dict[str, Any]) -> bool:
        return status in self.QUOTA_STATUS_CODES or self._error_code(payload) in self.quota_error_codes

    def _describe_error(self, status: int, payload: Dict[str, Any]) -> str:
        message = None
        if isinstance(payload.get("status"), dict):
            message = payload["status"].get("error_message")
        code = self._error_code(payload)
        return f"HTTP {status}, code {code}: {message}"

    def _parse_quote(self, symbol: str, payload: Dict[str, Any]) -> Optional[Quote]:
        data = payload.get("data")
        if not isinstance(data, dict):
            raise ProviderUnavailable("Invalid response from CoinMarketCap API", provider=self.name)

        item = data.get(symbol)
        if isinstance(item, list):
            item = item[0] if item else None
        if not item:
            return None

        try:
            usd = item["quote"][self.convert]
            price = usd.get("price")
            if price is None:
                return None
            return Quote(
                symbol=symbol,
                price=float(price),
                percent_change=float(usd.get("percent_change_24h") or 0.0),
                asset_class=AssetClass.CRYPTO,
                source_adapter=self.name,
                name=item.get("name"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailable(f"Malformed CoinMarketCap quote for {symbol}: {e}", provider=self.name) from e
