"""Tests for fractal swing detection."""

from decimal import Decimal

from trader.indicators.swing import find_swing_points
from trader.models import Candle


def _series(highs: list[int], lows: list[int]) -> list[Candle]:
    return [
        Candle(
            open_time=i * 60_000,
            open=Decimal(low),
            high=Decimal(high),
            low=Decimal(low),
            close=Decimal(high),
            volume=Decimal("1"),
        )
        for i, (high, low) in enumerate(zip(highs, lows))
    ]


class TestFindSwingPoints:
    def test_fractal_high_and_low(self) -> None:
        highs = [10, 11, 15, 11, 10, 10, 10]
        lows = [5, 4, 6, 2, 4, 5, 5]
        swing = find_swing_points(_series(highs, lows))
        assert swing.high == Decimal("15")
        assert swing.low == Decimal("2")

    def test_nearest_fractal_wins_over_global_extreme(self) -> None:
        # Fractal highs at index 2 (20) and index 6 (14); the later one is kept
        highs = [10, 11, 20, 11, 10, 12, 14, 12, 10, 10, 10]
        lows = [1] * 11
        swing = find_swing_points(_series(highs, lows))
        assert swing.high == Decimal("14")

    def test_last_two_candles_cannot_be_fractals(self) -> None:
        highs = [10, 10, 10, 10, 10, 10, 30]
        lows = [5] * 7
        swing = find_swing_points(_series(highs, lows))
        # no fractal, falls back to the max of the window
        assert swing.high == Decimal("30")

    def test_fallback_to_period_extremes(self) -> None:
        highs = list(range(100, 130))
        lows = list(range(50, 80))
        swing = find_swing_points(_series(highs, lows), fallback_period=20)
        assert swing.high == Decimal("129")
        assert swing.low == Decimal("60")

    def test_empty(self) -> None:
        swing = find_swing_points([])
        assert swing.high == Decimal("0")
        assert swing.low == Decimal("0")
