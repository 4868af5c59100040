"""White Zone trend band (1m regime filter).

    upper = (EMA20 + EMA2000) / 2
    lower = upper - 1.0 * ATR14

Classification uses the current candle's BODY (open/close), not its wicks:
body entirely above the band -> UPTREND, entirely below -> DOWNTREND,
otherwise CHOP.

Rubbing override: over the last 240 candles, every 5th candle starts a
synthetic 5-candle window; a window "touches" when its [low, high] range
intersects the band as it stood at that candle. With 24 or more touches the
status is CHOP_RUBBING no matter what the body classification said -- a band
that price keeps crossing is not a usable trend signal.
"""

from decimal import Decimal

from trader.indicators.models import WhiteZone, WhiteZoneStatus
from trader.models import Candle

#: EMA period of the slow leg of the band.
LONG_EMA_PERIOD = 2000
RUBBING_LOOKBACK = 240
RUBBING_STRIDE = 5
RUBBING_WINDOW = 5
RUBBING_THRESHOLD = 24
ATR_MULTIPLIER = Decimal("1.0")


def band_at(
    ema_fast: Decimal, ema_slow: Decimal, atr: Decimal, multiplier: Decimal = ATR_MULTIPLIER
) -> tuple[Decimal, Decimal]:
    """Return (upper, lower) for one point in time."""
    upper = (ema_fast + ema_slow) / Decimal("2")
    return upper, upper - multiplier * atr


def classify_body(candle: Candle, upper: Decimal, lower: Decimal) -> WhiteZoneStatus:
    """Classify one candle body against the band."""
    body_top = max(candle.open, candle.close)
    body_bottom = min(candle.open, candle.close)
    zone_max = max(upper, lower)
    zone_min = min(upper, lower)

    if body_bottom > zone_max:
        return WhiteZoneStatus.UPTREND
    if body_top < zone_min:
        return WhiteZoneStatus.DOWNTREND
    return WhiteZoneStatus.CHOP


def count_band_touches(
    candles: list[Candle],
    ema_fast: list[Decimal | None],
    ema_slow: list[Decimal | None],
    atr: list[Decimal | None],
    lookback: int = RUBBING_LOOKBACK,
    stride: int = RUBBING_STRIDE,
    window: int = RUBBING_WINDOW,
    multiplier: Decimal = ATR_MULTIPLIER,
) -> tuple[int, int]:
    """Count sampled windows whose range intersects the band.

    Indicator series must be aligned to ``candles``. Sample points where any
    of the three series is still undefined are skipped entirely.

    Returns:
        (touches, samples)
    """
    touches = 0
    samples = 0
    n = len(candles)
    start = max(0, n - lookback)

    for i in range(start, n, stride):
        fast, slow, vol = ema_fast[i], ema_slow[i], atr[i]
        if fast is None or slow is None or vol is None:
            continue
        samples += 1

        upper, lower = band_at(fast, slow, vol, multiplier)
        chunk = candles[i : i + window]
        period_high = max(c.high for c in chunk)
        period_low = min(c.low for c in chunk)

        if period_low <= max(upper, lower) and period_high >= min(upper, lower):
            touches += 1

    return touches, samples


def compute_white_zone(
    candles: list[Candle],
    ema_fast: list[Decimal | None],
    ema_slow: list[Decimal | None],
    atr: list[Decimal | None],
    rubbing_threshold: int = RUBBING_THRESHOLD,
    lookback: int = RUBBING_LOOKBACK,
    stride: int = RUBBING_STRIDE,
    window: int = RUBBING_WINDOW,
    multiplier: Decimal = ATR_MULTIPLIER,
) -> WhiteZone:
    """Compute the band and status for the latest candle.

    Returns an UNKNOWN zone with zero bands when the slow EMA (or the fast
    EMA / ATR) is not yet defined at the latest candle.
    """
    if not candles:
        return WhiteZone()
    fast, slow, vol = ema_fast[-1], ema_slow[-1], atr[-1]
    if fast is None or slow is None or vol is None:
        return WhiteZone()

    upper, lower = band_at(fast, slow, vol, multiplier)
    status = classify_body(candles[-1], upper, lower)

    touches, samples = count_band_touches(
        candles, ema_fast, ema_slow, atr, lookback, stride, window, multiplier
    )
    if touches >= rubbing_threshold:
        status = WhiteZoneStatus.CHOP_RUBBING

    return WhiteZone(
        status=status, upper=upper, lower=lower, touches=touches, samples=samples
    )
