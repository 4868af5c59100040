"""Realized PnL and fee computation."""

from trader.pnl.calculator import PnLCalculator, RealizedPnL

__all__ = ["PnLCalculator", "RealizedPnL"]
