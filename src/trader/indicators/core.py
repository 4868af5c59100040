"""Standard rolling-window indicators over Decimal candle series.

Every ``*_series`` function returns a list aligned to its input: position i
holds the indicator value as of candle i, or None while the window is still
filling. Scalar helpers return the latest value, or ``Decimal("0")`` when the
series is too short -- these functions never raise for short history.

Each smoothed intermediate is quantized to 12 decimal places to keep Decimal
representations bounded over long (2000+) series.
"""

from decimal import Decimal

from trader.models import Candle

_QUANTIZE = Decimal("0.000000000001")
_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _q(value: Decimal) -> Decimal:
    return value.quantize(_QUANTIZE)


def last_or_zero(series: list[Decimal | None]) -> Decimal:
    """Return the final value of an aligned series, or 0 if undefined."""
    if not series or series[-1] is None:
        return _ZERO
    return series[-1]


def ema_series(values: list[Decimal], period: int) -> list[Decimal | None]:
    """Exponential Moving Average, seeded with the SMA of the first window.

        alpha = 2 / (period + 1)
        EMA_{period-1} = mean(values[0:period])
        EMA_t = alpha * value_t + (1 - alpha) * EMA_{t-1}

    Args:
        values: Ordered values (oldest first).
        period: EMA period.

    Returns:
        Aligned list; the first ``period - 1`` entries are None.
    """
    n = len(values)
    result: list[Decimal | None] = [None] * n
    if period <= 0 or n < period:
        return result

    alpha = Decimal("2") / (Decimal(period) + Decimal("1"))
    one_minus_alpha = Decimal("1") - alpha

    ema = _q(sum(values[:period], _ZERO) / Decimal(period))
    result[period - 1] = ema
    for i in range(period, n):
        ema = _q(alpha * values[i] + one_minus_alpha * ema)
        result[i] = ema
    return result


def rsi_series(closes: list[Decimal], period: int = 14) -> list[Decimal | None]:
    """Wilder's Relative Strength Index.

    The first value is defined at index ``period`` (it needs ``period``
    price changes). A window with no losses reads 100.
    """
    n = len(closes)
    result: list[Decimal | None] = [None] * n
    if period <= 0 or n < period + 1:
        return result

    p = Decimal(period)
    gains = _ZERO
    losses = _ZERO
    for i in range(1, period + 1):
        change = closes[i] - closes[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change
    avg_gain = _q(gains / p)
    avg_loss = _q(losses / p)
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, n):
        change = closes[i] - closes[i - 1]
        gain = change if change > 0 else _ZERO
        loss = -change if change < 0 else _ZERO
        avg_gain = _q((avg_gain * (p - 1) + gain) / p)
        avg_loss = _q((avg_loss * (p - 1) + loss) / p)
        result[i] = _rsi_value(avg_gain, avg_loss)
    return result


def _rsi_value(avg_gain: Decimal, avg_loss: Decimal) -> Decimal:
    if avg_loss == 0:
        return _HUNDRED if avg_gain > 0 else Decimal("50")
    rs = avg_gain / avg_loss
    return _q(_HUNDRED - _HUNDRED / (Decimal("1") + rs))


def true_range_series(candles: list[Candle]) -> list[Decimal | None]:
    """True range; undefined for the first candle (no previous close)."""
    result: list[Decimal | None] = [None] * len(candles)
    for i in range(1, len(candles)):
        c = candles[i]
        prev_close = candles[i - 1].close
        result[i] = max(
            c.high - c.low,
            abs(c.high - prev_close),
            abs(c.low - prev_close),
        )
    return result


def atr_series(candles: list[Candle], period: int = 14) -> list[Decimal | None]:
    """Average True Range with Wilder smoothing.

    First value at index ``period`` = mean of true ranges 1..period.
    """
    n = len(candles)
    result: list[Decimal | None] = [None] * n
    if period <= 0 or n < period + 1:
        return result

    tr = true_range_series(candles)
    p = Decimal(period)
    atr = _q(sum(tr[1 : period + 1], _ZERO) / p)  # type: ignore[arg-type]
    result[period] = atr
    for i in range(period + 1, n):
        atr = _q((atr * (p - 1) + tr[i]) / p)  # type: ignore[operator]
        result[i] = atr
    return result


def adx(candles: list[Candle], period: int = 14) -> Decimal:
    """Average Directional Index (Wilder), latest value or 0.

    Needs ``2 * period`` candles: ``period`` to seed the smoothed
    directional movement and another ``period`` DX values to seed ADX.
    """
    n = len(candles)
    if period <= 0 or n < 2 * period:
        return _ZERO

    p = Decimal(period)
    tr = true_range_series(candles)
    plus_dm: list[Decimal] = [_ZERO] * n
    minus_dm: list[Decimal] = [_ZERO] * n
    for i in range(1, n):
        up_move = candles[i].high - candles[i - 1].high
        down_move = candles[i - 1].low - candles[i].low
        if up_move > down_move and up_move > 0:
            plus_dm[i] = up_move
        if down_move > up_move and down_move > 0:
            minus_dm[i] = down_move

    sm_tr = sum(tr[1 : period + 1], _ZERO)  # type: ignore[arg-type]
    sm_plus = sum(plus_dm[1 : period + 1], _ZERO)
    sm_minus = sum(minus_dm[1 : period + 1], _ZERO)

    dx_values = [_dx(sm_tr, sm_plus, sm_minus)]
    for i in range(period + 1, n):
        sm_tr = _q(sm_tr - sm_tr / p + tr[i])  # type: ignore[operator]
        sm_plus = _q(sm_plus - sm_plus / p + plus_dm[i])
        sm_minus = _q(sm_minus - sm_minus / p + minus_dm[i])
        dx_values.append(_dx(sm_tr, sm_plus, sm_minus))

    if len(dx_values) < period:
        return _ZERO

    value = _q(sum(dx_values[:period], _ZERO) / p)
    for dx in dx_values[period:]:
        value = _q((value * (p - 1) + dx) / p)
    return value


def _dx(sm_tr: Decimal, sm_plus: Decimal, sm_minus: Decimal) -> Decimal:
    if sm_tr == 0:
        return _ZERO
    plus_di = _HUNDRED * sm_plus / sm_tr
    minus_di = _HUNDRED * sm_minus / sm_tr
    di_sum = plus_di + minus_di
    if di_sum == 0:
        return _ZERO
    return _q(_HUNDRED * abs(plus_di - minus_di) / di_sum)


def vwap(candles: list[Candle]) -> Decimal:
    """Volume-weighted average of typical price over the WHOLE series.

    Not session-reset: callers choose the window by how many candles they pass.
    """
    total_pv = _ZERO
    total_volume = _ZERO
    for c in candles:
        typical = (c.high + c.low + c.close) / Decimal("3")
        total_pv += typical * c.volume
        total_volume += c.volume
    if total_volume == 0:
        return _ZERO
    return _q(total_pv / total_volume)
