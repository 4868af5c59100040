"""Paged OHLCV candle source.

Venues cap a kline request (1000 rows is the safe chunk for Binance futures),
while the 1m White Zone band needs 2000+ candles. CandleSource walks backward
through history: each page ends one millisecond before the previous page's
first open time, and pages are prepended until the requested count is
gathered or the venue runs out of data.
"""

import asyncio
from decimal import Decimal

from trader.exchange.client import VenueClient
from trader.logging import get_logger
from trader.models import Candle

logger = get_logger(__name__)


def row_to_candle(row: list) -> Candle:
    """Convert a ccxt OHLCV row into a Decimal Candle."""
    return Candle(
        open_time=int(row[0]),
        open=Decimal(str(row[1])),
        high=Decimal(str(row[2])),
        low=Decimal(str(row[3])),
        close=Decimal(str(row[4])),
        volume=Decimal(str(row[5] if row[5] is not None else 0)),
    )


class CandleSource:
    """Fetches candle series for a single symbol from one venue.

    Args:
        client: Venue client used for kline requests.
        symbol: ccxt unified symbol.
        page_limit: Maximum candles requested per call.
    """

    def __init__(self, client: VenueClient, symbol: str, page_limit: int = 1000) -> None:
        self._client = client
        self._symbol = symbol
        self._page_limit = page_limit

    async def fetch_candles(self, timeframe: str, count: int) -> list[Candle]:
        """Fetch up to ``count`` most recent candles, ascending by open time.

        Stops early (returning what was gathered) when a page comes back
        short or empty, or when a request fails. A failed request is logged;
        the next decision cycle simply tries again.
        """
        gathered: list[Candle] = []
        remaining = count
        end_time_ms: int | None = None

        while remaining > 0:
            limit = min(remaining, self._page_limit)
            try:
                rows = await self._client.fetch_ohlcv(
                    self._symbol, timeframe, limit, end_time_ms
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "candle_fetch_failed",
                    venue=self._client.name,
                    timeframe=timeframe,
                    gathered=len(gathered),
                    error=str(e),
                )
                break

            if not rows:
                break

            page = [row_to_candle(row) for row in rows]
            if gathered:
                # Guard against venues that ignore the end bound and return overlap
                page = [c for c in page if c.open_time < gathered[0].open_time]
                if not page:
                    break

            gathered = page + gathered
            end_time_ms = page[0].open_time - 1
            remaining -= len(page)

            if len(rows) < limit:
                break

        if len(gathered) > count:
            gathered = gathered[-count:]

        logger.debug(
            "candles_fetched",
            timeframe=timeframe,
            requested=count,
            received=len(gathered),
        )
        return gathered

    async def fetch_multi_timeframe(self, counts: dict[str, int]) -> dict[str, list[Candle]]:
        """Fetch every timeframe concurrently.

        Args:
            counts: Mapping of timeframe (e.g. "1m") to candle count.

        Returns:
            Mapping of timeframe to its candle series (possibly empty).
        """
        timeframes = list(counts)
        results = await asyncio.gather(
            *(self.fetch_candles(tf, counts[tf]) for tf in timeframes)
        )
        return dict(zip(timeframes, results))
