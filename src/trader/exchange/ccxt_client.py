"""Venue client implementation via ccxt async.

One class serves both venues: the ccxt exchange id (``binanceusdm``,
``bybit``, ...) is chosen by configuration. Only public endpoints are used,
so no API keys are required.
"""

import ccxt.async_support as ccxt_async

from trader.exchange.client import VenueClient
from trader.logging import get_logger

logger = get_logger(__name__)


class CcxtVenueClient(VenueClient):
    """Concrete venue client wrapping a ccxt async exchange instance.

    Args:
        exchange_id: ccxt exchange id, e.g. "binanceusdm" or "bybit".
        timeout_seconds: Per-request network timeout.
    """

    def __init__(self, exchange_id: str, timeout_seconds: float = 10.0) -> None:
        exchange_cls = getattr(ccxt_async, exchange_id, None)
        if exchange_cls is None:
            raise ValueError(f"Unknown ccxt exchange id: {exchange_id}")

        self._exchange_id = exchange_id
        self._exchange = exchange_cls(
            {
                "enableRateLimit": True,
                "timeout": int(timeout_seconds * 1000),
                "options": {
                    "defaultType": "swap",
                },
            }
        )
        self._markets: dict = {}

    @property
    def name(self) -> str:
        return self._exchange_id

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Initialize connection by loading markets."""
        logger.info("connecting_to_venue", venue=self._exchange_id)
        self._markets = await self._exchange.load_markets()
        logger.info(
            "venue_connected",
            venue=self._exchange_id,
            market_count=len(self._markets),
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()
        logger.info("venue_connection_closed", venue=self._exchange_id)

    async def fetch_ticker(self, symbol: str) -> dict:
        return await self._exchange.fetch_ticker(symbol)

    async def fetch_funding_rate(self, symbol: str) -> dict:
        return await self._exchange.fetch_funding_rate(symbol)

    async def fetch_open_interest(self, symbol: str) -> dict:
        return await self._exchange.fetch_open_interest(symbol)

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        limit: int = 1000,
        end_time_ms: int | None = None,
    ) -> list[list]:
        """Fetch one page of OHLCV candles via ccxt.

        Backward paging uses ccxt's unified ``until`` param, which each
        exchange maps to its own field (``endTime`` on Binance, ``end`` on
        Bybit). The result is re-sorted ascending because Bybit's raw kline
        response is newest-first.
        """
        params: dict = {}
        if end_time_ms is not None:
            params["until"] = end_time_ms
        rows = await self._exchange.fetch_ohlcv(
            symbol, timeframe, None, limit, params=params
        )
        return sorted(rows, key=lambda row: row[0])
