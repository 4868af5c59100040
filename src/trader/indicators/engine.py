"""Per-timeframe indicator computation.

``compute_indicators`` is a pure function of one candle series. Each
sub-indicator degrades independently: a series too short for EMA200 still
gets its RSI, ATR and VWAP, and missing values read as zero.
"""

from trader.indicators.core import adx, atr_series, ema_series, last_or_zero, rsi_series, vwap
from trader.indicators.models import TimeframeIndicators
from trader.indicators.swing import find_swing_points
from trader.indicators.white_zone import LONG_EMA_PERIOD, compute_white_zone
from trader.logging import get_logger
from trader.models import Candle

logger = get_logger(__name__)

#: Timeframes fetched and analysed every decision cycle.
TIMEFRAMES = ("1m", "5m", "1h", "4h", "1d")

RSI_PERIOD = 14
ADX_PERIOD = 14
ATR_PERIOD = 14


def compute_indicators(candles: list[Candle]) -> TimeframeIndicators:
    """Compute every indicator for one timeframe's candle series.

    Args:
        candles: Candles ordered ascending by open time.

    Returns:
        TimeframeIndicators; all-zero (UNKNOWN band) for an empty series.
    """
    if not candles:
        return TimeframeIndicators()

    closes = [c.close for c in candles]
    ema20 = ema_series(closes, 20)
    atr = atr_series(candles, ATR_PERIOD)

    if len(candles) >= LONG_EMA_PERIOD:
        ema_long = ema_series(closes, LONG_EMA_PERIOD)
    else:
        ema_long = [None] * len(candles)

    return TimeframeIndicators(
        current_price=closes[-1],
        ema20=last_or_zero(ema20),
        ema50=last_or_zero(ema_series(closes, 50)),
        ema100=last_or_zero(ema_series(closes, 100)),
        ema200=last_or_zero(ema_series(closes, 200)),
        rsi=last_or_zero(rsi_series(closes, RSI_PERIOD)),
        adx=adx(candles, ADX_PERIOD),
        atr=last_or_zero(atr),
        vwap=vwap(candles),
        volume=candles[-1].volume,
        white_zone=compute_white_zone(candles, ema20, ema_long, atr),
        swing=find_swing_points(candles),
    )


def compute_all(candles_by_timeframe: dict[str, list[Candle]]) -> dict[str, TimeframeIndicators]:
    """Compute indicators independently for every timeframe.

    Timeframes missing from the input map get default (all-zero) indicators.
    """
    result: dict[str, TimeframeIndicators] = {}
    for timeframe in TIMEFRAMES:
        candles = candles_by_timeframe.get(timeframe, [])
        result[timeframe] = compute_indicators(candles)
    logger.debug(
        "indicators_computed",
        candles={tf: len(candles_by_timeframe.get(tf, [])) for tf in TIMEFRAMES},
        white_zone=result["1m"].white_zone.label,
    )
    return result
