"""Fractal swing point detection.

A swing high is a candle whose high exceeds the highs of the two candles on
each side (mirror for swing low). Scanning starts at the third-most-recent
candle -- the newest candle that has two confirming neighbours -- and walks
back, keeping the FIRST high and FIRST low found independently. This is the
nearest-to-present fractal, not a global extremum.
"""

from decimal import Decimal

from trader.indicators.models import SwingPoints
from trader.models import Candle

FALLBACK_PERIOD = 20


def find_swing_points(candles: list[Candle], fallback_period: int = FALLBACK_PERIOD) -> SwingPoints:
    """Find the most recent fractal swing high and low.

    Falls back to the ``fallback_period`` max high / min low for whichever
    side has no fractal in the series. Empty input yields zeros.
    """
    if not candles:
        return SwingPoints()

    highs = [c.high for c in candles]
    lows = [c.low for c in candles]
    swing_high: Decimal | None = None
    swing_low: Decimal | None = None

    for i in range(len(candles) - 3, 1, -1):
        h = highs[i]
        l = lows[i]
        if swing_high is None and (
            h > highs[i - 1] and h > highs[i - 2] and h > highs[i + 1] and h > highs[i + 2]
        ):
            swing_high = h
        if swing_low is None and (
            l < lows[i - 1] and l < lows[i - 2] and l < lows[i + 1] and l < lows[i + 2]
        ):
            swing_low = l
        if swing_high is not None and swing_low is not None:
            break

    if swing_high is None:
        swing_high = max(highs[-fallback_period:])
    if swing_low is None:
        swing_low = min(lows[-fallback_period:])

    return SwingPoints(high=swing_high, low=swing_low)
