"""
Binance 24h ticker stream.

Keeps an in-memory, non-expiring table of the latest ticker for a fixed set
of popular USDT pairs. A single supervisor task owns the connection and
reconnects after a fixed delay; a keep-alive task pings the socket while it
is connected.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import websockets

from ..data.cache import QuoteCache
from ..data.models import AssetClass, Quote

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    """Connection state of the ticker stream."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


_TRANSITIONS = {
    StreamState.DISCONNECTED: {StreamState.CONNECTING},
    StreamState.CONNECTING: {StreamState.CONNECTED, StreamState.RECONNECTING, StreamState.DISCONNECTED},
    StreamState.CONNECTED: {StreamState.RECONNECTING, StreamState.DISCONNECTED},
    StreamState.RECONNECTING: {StreamState.CONNECTING, StreamState.DISCONNECTED},
}


class BinanceTickerStream:
    """Live ticker cache fed by the Binance websocket API."""

    DEFAULT_URL = "wss://stream.binance.com:9443/ws"
    POPULAR_SYMBOLS = [
        "BTC", "ETH", "BNB", "XRP", "ADA", "DOGE", "SOL",
        "MATIC", "AVAX", "DOT", "LTC", "TRX", "SHIB",
    ]

    def __init__(
        self,
        url: str = DEFAULT_URL,
        symbols: Optional[List[str]] = None,
        reconnect_delay: float = 5.0,
        heartbeat_interval: float = 30.0,
        quote_asset: str = "USDT",
        connect: Callable[..., Any] = websockets.connect,
    ):
        """
        Initialize ticker stream.

        Args:
            url: Websocket endpoint
            symbols: Base assets to subscribe to
            reconnect_delay: Seconds to wait before reconnecting
            heartbeat_interval: Seconds between keep-alive pings
            quote_asset: Quote asset of the subscribed pairs
            connect: Websocket connect function
        """
        self.url = url
        self.symbols = [s.upper() for s in (symbols or self.POPULAR_SYMBOLS)]
        self.reconnect_delay = reconnect_delay
        self.heartbeat_interval = heartbeat_interval
        self.quote_asset = quote_asset.upper()
        self._connect = connect

        self.cache = QuoteCache(ttl_seconds=None)
        self.state = StreamState.DISCONNECTED
        self.reconnects = 0
        self.messages_received = 0

        self._running = False
        self._ws = None
        self._supervisor: Optional[asyncio.Task] = None
        self._keepalive_task: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self.state == StreamState.CONNECTED

    def _transition(self, new_state: StreamState) -> None:
        if new_state == self.state:
            return
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid stream transition {self.state.value} -> {new_state.value}")
        logger.debug(f"Binance stream {self.state.value} -> {new_state.value}")
        self.state = new_state

    async def start(self):
        """Start the supervisor task."""
        if self._supervisor is not None and not self._supervisor.done():
            return

        self._running = True
        logger.info(f"Starting Binance ticker stream for {len(self.symbols)} symbols")
        self._supervisor = asyncio.create_task(self._run())

    async def stop(self):
        """Stop streaming and release the connection."""
        self._running = False

        supervisor = self._supervisor
        self._supervisor = None
        if supervisor is not None:
            supervisor.cancel()
            try:
                await supervisor
            except asyncio.CancelledError:
                pass

        await self._teardown()
        self._transition(StreamState.DISCONNECTED)
        logger.info("Binance ticker stream stopped")

    async def _run(self):
        """Connect, read until the socket drops, wait, repeat."""
        while self._running:
            self._transition(StreamState.CONNECTING)
            try:
                self._ws = await self._connect(self.url, ping_interval=None)
                await self._subscribe()
                self._transition(StreamState.CONNECTED)
                logger.info(f"Connected to Binance stream at {self.url}")

                self._keepalive_task = asyncio.create_task(self._keepalive_loop())
                async for message in self._ws:
                    self.handle_message(message)

                logger.warning("Binance stream closed by server")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Binance stream error: {e}")
            finally:
                await self._teardown()

            if not self._running:
                break

            self._transition(StreamState.RECONNECTING)
            self.reconnects += 1
            logger.info(f"Reconnecting to Binance stream in {self.reconnect_delay}s")
            await asyncio.sleep(self.reconnect_delay)

        self._transition(StreamState.DISCONNECTED)

    async def _subscribe(self):
        params = [f"{symbol.lower()}{self.quote_asset.lower()}@ticker" for symbol in self.symbols]
        await self._ws.send(json.dumps({"method": "SUBSCRIBE", "params": params, "id": 1}))
        logger.debug(f"Subscribed to {len(params)} Binance ticker streams")

    async def _teardown(self):
        """Cancel the keep-alive task and close the socket. Safe to call repeatedly."""
        task = self._keepalive_task
        self._keepalive_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        ws = self._ws
        self._ws = None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.debug(f"Error closing Binance socket: {e}")

    async def _keepalive_loop(self):
        """Ping the socket; close it when a pong does not arrive in time."""
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            ws = self._ws
            if ws is None:
                return
            try:
                pong_waiter = await ws.ping()
                await asyncio.wait_for(pong_waiter, timeout=self.heartbeat_interval)
            except asyncio.TimeoutError:
                logger.warning("Binance stream heartbeat timed out, closing connection")
                await ws.close()
                return
            except Exception as e:
                logger.warning(f"Binance stream heartbeat failed: {e}")
                return

    def handle_message(self, raw: Any) -> Optional[Quote]:
        """
        Apply one stream message to the cache.

        Returns:
            The cached quote for ticker messages, None for anything else
        """
        self.messages_received += 1
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-JSON Binance message")
            return None

        if not isinstance(data, dict) or data.get("e") != "24hrTicker":
            return None

        pair = str(data.get("s", "")).upper()
        if not pair.endswith(self.quote_asset) or len(pair) == len(self.quote_asset):
            return None
        symbol = pair[: -len(self.quote_asset)]

        try:
            quote = Quote(
                symbol=symbol,
                price=float(data["c"]),
                percent_change=float(data.get("P") or 0.0),
                asset_class=AssetClass.CRYPTO,
                source_adapter="binance",
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Malformed Binance ticker for {pair}: {e}")
            return None

        self.cache.set(symbol, quote)
        return quote

    def get_cached(self, symbol: str) -> Optional[Quote]:
        return self.cache.get(symbol)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "symbols": len(self.symbols),
            "cached": len(self.cache),
            "reconnects": self.reconnects,
            "messages_received": self.messages_received,
        }
