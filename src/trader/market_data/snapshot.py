"""Two-venue market snapshot aggregation.

Price and funding rate are blended with fixed weights (primary 0.6,
secondary 0.4); open interest is summed as additive liquidity. When either
venue returns the invalid sentinel (price <= 0), the other venue's raw
snapshot is used 100% -- a partially blended value is never produced.
"""

import asyncio
from decimal import Decimal

from trader.exceptions import PriceUnavailableError
from trader.exchange.client import VenueClient
from trader.logging import get_logger
from trader.models import MarketSnapshot

logger = get_logger(__name__)


def _to_decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except Exception:
        return None


class VenueSnapshotProvider:
    """Reads price, funding rate and open interest from one venue.

    Never raises for venue problems: any failure or missing field yields
    ``MarketSnapshot.invalid()`` so the aggregator can fall back.
    """

    def __init__(self, client: VenueClient, symbol: str) -> None:
        self._client = client
        self._symbol = symbol

    @property
    def venue(self) -> str:
        return self._client.name

    async def fetch(self) -> MarketSnapshot:
        """Fetch ticker, funding and open interest concurrently."""
        try:
            ticker, funding, oi = await asyncio.gather(
                self._client.fetch_ticker(self._symbol),
                self._client.fetch_funding_rate(self._symbol),
                self._client.fetch_open_interest(self._symbol),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("venue_snapshot_failed", venue=self.venue, error=str(e))
            return MarketSnapshot.invalid()

        price = _to_decimal((ticker or {}).get("last"))
        funding_rate = _to_decimal((funding or {}).get("fundingRate"))
        open_interest = _to_decimal((oi or {}).get("openInterestAmount"))

        if price is None or funding_rate is None or open_interest is None:
            logger.warning(
                "venue_snapshot_incomplete",
                venue=self.venue,
                has_price=price is not None,
                has_funding=funding_rate is not None,
                has_open_interest=open_interest is not None,
            )
            return MarketSnapshot.invalid()

        return MarketSnapshot(
            price=price, funding_rate=funding_rate, open_interest=open_interest
        )

    async def fetch_price(self) -> Decimal:
        """Fetch the last traded price only; ``Decimal("0")`` on failure."""
        try:
            ticker = await self._client.fetch_ticker(self._symbol)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("venue_price_failed", venue=self.venue, error=str(e))
            return Decimal("0")
        price = _to_decimal((ticker or {}).get("last"))
        return price if price is not None and price > 0 else Decimal("0")


def blend_snapshots(
    primary: MarketSnapshot,
    secondary: MarketSnapshot,
    primary_weight: Decimal = Decimal("0.6"),
    secondary_weight: Decimal = Decimal("0.4"),
) -> MarketSnapshot:
    """Blend two venue snapshots, or fall back to whichever one is valid.

    Returns the primary snapshot unchanged when the secondary is invalid and
    vice versa. When both are invalid the (invalid) primary is returned.
    """
    if not primary.is_valid:
        return secondary
    if not secondary.is_valid:
        return primary

    return MarketSnapshot(
        price=primary.price * primary_weight + secondary.price * secondary_weight,
        funding_rate=(
            primary.funding_rate * primary_weight
            + secondary.funding_rate * secondary_weight
        ),
        open_interest=primary.open_interest + secondary.open_interest,
    )


class MarketAggregator:
    """Blends the primary and secondary venue snapshots into one.

    Args:
        primary: Snapshot provider for the primary venue.
        secondary: Snapshot provider for the secondary venue.
        primary_weight: Blend weight for primary price/funding.
        secondary_weight: Blend weight for secondary price/funding.
    """

    def __init__(
        self,
        primary: VenueSnapshotProvider,
        secondary: VenueSnapshotProvider,
        primary_weight: Decimal = Decimal("0.6"),
        secondary_weight: Decimal = Decimal("0.4"),
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._primary_weight = primary_weight
        self._secondary_weight = secondary_weight

    async def aggregate(self) -> MarketSnapshot:
        """Query both venues concurrently and blend the results."""
        primary, secondary = await asyncio.gather(
            self._primary.fetch(), self._secondary.fetch()
        )
        if primary.is_valid != secondary.is_valid:
            logger.warning(
                "single_venue_fallback",
                using=self._primary.venue if primary.is_valid else self._secondary.venue,
            )
        return blend_snapshots(
            primary, secondary, self._primary_weight, self._secondary_weight
        )

    async def fetch_price(self) -> Decimal:
        """Live price for the trigger monitor: primary venue, else secondary.

        Raises:
            PriceUnavailableError: If neither venue returned a valid price.
        """
        price = await self._primary.fetch_price()
        if price > 0:
            return price
        price = await self._secondary.fetch_price()
        if price > 0:
            return price
        raise PriceUnavailableError("No venue returned a valid price")
