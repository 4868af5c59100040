"""Position sizing and lifecycle management."""

from trader.position.manager import PositionManager
from trader.position.sizing import PositionSizer, SizingResult

__all__ = ["PositionManager", "PositionSizer", "SizingResult"]
