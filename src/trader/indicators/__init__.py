"""Indicator engine: standard TA indicators, White Zone band and fractal swings."""

from trader.indicators.engine import TIMEFRAMES, compute_all, compute_indicators
from trader.indicators.models import SwingPoints, TimeframeIndicators, WhiteZone, WhiteZoneStatus

__all__ = [
    "SwingPoints",
    "TIMEFRAMES",
    "TimeframeIndicators",
    "WhiteZone",
    "WhiteZoneStatus",
    "compute_all",
    "compute_indicators",
]
