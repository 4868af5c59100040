"""Indicator result models, one TimeframeIndicators instance per timeframe."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class WhiteZoneStatus(str, Enum):
    """Market regime relative to the White Zone trend band."""

    UNKNOWN = "UNKNOWN"  # fewer candles than the long EMA needs
    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    CHOP = "CHOP"
    CHOP_RUBBING = "CHOP_RUBBING"


@dataclass(frozen=True)
class WhiteZone:
    """Trend band and its classification.

    ``upper >= lower`` is NOT guaranteed. Anything comparing prices against
    the band must use max(upper, lower) and min(upper, lower).
    """

    status: WhiteZoneStatus = WhiteZoneStatus.UNKNOWN
    upper: Decimal = Decimal("0")
    lower: Decimal = Decimal("0")
    touches: int = 0
    samples: int = 0

    @property
    def label(self) -> str:
        """Human-readable status, e.g. ``CHOP_RUBBING (30/48 touches)``."""
        if self.status is WhiteZoneStatus.CHOP_RUBBING:
            return f"CHOP_RUBBING ({self.touches}/{self.samples} touches)"
        return self.status.value


@dataclass(frozen=True)
class SwingPoints:
    """Nearest-to-present fractal swing high and low."""

    high: Decimal = Decimal("0")
    low: Decimal = Decimal("0")


@dataclass(frozen=True)
class TimeframeIndicators:
    """All indicators for one timeframe. Zero means "not enough history"."""

    current_price: Decimal = Decimal("0")
    ema20: Decimal = Decimal("0")
    ema50: Decimal = Decimal("0")
    ema100: Decimal = Decimal("0")
    ema200: Decimal = Decimal("0")
    rsi: Decimal = Decimal("0")
    adx: Decimal = Decimal("0")
    atr: Decimal = Decimal("0")
    vwap: Decimal = Decimal("0")
    volume: Decimal = Decimal("0")
    white_zone: WhiteZone = field(default_factory=WhiteZone)
    swing: SwingPoints = field(default_factory=SwingPoints)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the oracle request (Decimals as floats)."""
        return {
            "currentPrice": float(self.current_price),
            "ema20": float(self.ema20),
            "ema50": float(self.ema50),
            "ema100": float(self.ema100),
            "ema200": float(self.ema200),
            "rsi": float(self.rsi),
            "adx": float(self.adx),
            "atr": float(self.atr),
            "vwap": float(self.vwap),
            "volume": float(self.volume),
            "whiteZone": {
                "status": self.white_zone.label,
                "upper": float(self.white_zone.upper),
                "lower": float(self.white_zone.lower),
            },
            "swing": {
                "high": float(self.swing.high),
                "low": float(self.swing.low),
            },
        }
