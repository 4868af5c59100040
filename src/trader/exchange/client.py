"""Abstract venue client interface.

Defines the read-only market data contract the engine needs from a venue.
Candle, snapshot and price code depends only on this interface, keeping
ccxt details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod


class VenueClient(ABC):
    """Abstract base class for venue market data clients."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short venue identifier used in logs (e.g. "binanceusdm")."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_ticker(self, symbol: str) -> dict:
        """Fetch current ticker data (ccxt unified shape, ``last`` = price)."""
        ...

    @abstractmethod
    async def fetch_funding_rate(self, symbol: str) -> dict:
        """Fetch the current funding rate (ccxt unified shape, ``fundingRate``)."""
        ...

    @abstractmethod
    async def fetch_open_interest(self, symbol: str) -> dict:
        """Fetch open interest (ccxt unified shape, ``openInterestAmount``)."""
        ...

    @abstractmethod
    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        limit: int = 1000,
        end_time_ms: int | None = None,
    ) -> list[list]:
        """Fetch OHLCV candles ending at ``end_time_ms`` (inclusive).

        Returns list of [timestamp_ms, open, high, low, close, volume],
        ascending by timestamp. ``end_time_ms=None`` means "up to now".

        Pagination is NOT handled here -- CandleSource walks backward by
        passing the previous batch's first open time minus one.
        """
        ...
