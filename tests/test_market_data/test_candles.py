"""Tests for backward-paged candle fetching.

A fake venue serves a fixed history of 1m rows and honours the page limit
and end time, the way Binance/Bybit do.
"""

from decimal import Decimal

import pytest

from trader.market_data.candles import CandleSource, row_to_candle

MINUTE = 60_000


class FakeVenue:
    """In-memory OHLCV history; records every request."""

    name = "fake"

    def __init__(self, count: int, fail_after: int | None = None) -> None:
        self.rows = [[i * MINUTE, 100 + i, 101 + i, 99 + i, 100 + i, 5] for i in range(count)]
        self.calls: list[tuple[int, int | None]] = []
        self._fail_after = fail_after

    async def fetch_ohlcv(self, symbol, timeframe, limit, end_time_ms=None):
        self.calls.append((limit, end_time_ms))
        if self._fail_after is not None and len(self.calls) > self._fail_after:
            raise Exception("rate limited")
        rows = [r for r in self.rows if end_time_ms is None or r[0] <= end_time_ms]
        return rows[-limit:]


class TestRowToCandle:
    def test_decimal_conversion(self) -> None:
        candle = row_to_candle([1700000000000, 50000.5, 50010.0, 49990.0, 50005.25, None])
        assert candle.open_time == 1700000000000
        assert candle.open == Decimal("50000.5")
        assert candle.close == Decimal("50005.25")
        assert candle.volume == Decimal("0")


class TestFetchCandles:
    @pytest.mark.asyncio
    async def test_single_page(self) -> None:
        venue = FakeVenue(3000)
        source = CandleSource(venue, "BTC/USDT:USDT", page_limit=1000)
        candles = await source.fetch_candles("1m", 500)
        assert len(candles) == 500
        assert candles[-1].open_time == 2999 * MINUTE
        assert venue.calls == [(500, None)]

    @pytest.mark.asyncio
    async def test_pages_backward_and_stays_ascending(self) -> None:
        venue = FakeVenue(3000)
        source = CandleSource(venue, "BTC/USDT:USDT", page_limit=1000)

        candles = await source.fetch_candles("1m", 2500)

        assert len(candles) == 2500
        times = [c.open_time for c in candles]
        assert times == sorted(times)
        assert len(set(times)) == 2500
        assert times[-1] == 2999 * MINUTE
        assert times[0] == 500 * MINUTE
        # each page ends 1ms before the previous page's first candle
        assert venue.calls == [
            (1000, None),
            (1000, 2000 * MINUTE - 1),
            (500, 1000 * MINUTE - 1),
        ]

    @pytest.mark.asyncio
    async def test_stops_when_history_runs_out(self) -> None:
        venue = FakeVenue(1200)
        source = CandleSource(venue, "BTC/USDT:USDT", page_limit=1000)
        candles = await source.fetch_candles("1m", 2500)
        assert len(candles) == 1200
        assert len(venue.calls) == 2

    @pytest.mark.asyncio
    async def test_failed_page_returns_what_was_gathered(self) -> None:
        venue = FakeVenue(3000, fail_after=1)
        source = CandleSource(venue, "BTC/USDT:USDT", page_limit=1000)
        candles = await source.fetch_candles("1m", 2500)
        assert len(candles) == 1000

    @pytest.mark.asyncio
    async def test_overlapping_page_is_deduplicated(self) -> None:
        class IgnoresEndTime(FakeVenue):
            async def fetch_ohlcv(self, symbol, timeframe, limit, end_time_ms=None):
                self.calls.append((limit, end_time_ms))
                return self.rows[-limit:]

        venue = IgnoresEndTime(3000)
        source = CandleSource(venue, "BTC/USDT:USDT", page_limit=1000)
        candles = await source.fetch_candles("1m", 2500)
        assert len(candles) == 1000
        assert len(venue.calls) == 2


class TestFetchMultiTimeframe:
    @pytest.mark.asyncio
    async def test_every_timeframe_fetched(self) -> None:
        venue = FakeVenue(600)
        source = CandleSource(venue, "BTC/USDT:USDT")
        result = await source.fetch_multi_timeframe({"1m": 500, "5m": 100, "1d": 10})
        assert {tf: len(c) for tf, c in result.items()} == {"1m": 500, "5m": 100, "1d": 10}
