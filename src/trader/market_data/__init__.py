"""Market data layer -- paged candle history and blended venue snapshots."""

from trader.market_data.candles import CandleSource
from trader.market_data.snapshot import MarketAggregator, VenueSnapshotProvider, blend_snapshots

__all__ = ["CandleSource", "MarketAggregator", "VenueSnapshotProvider", "blend_snapshots"]
