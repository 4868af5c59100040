"""Fee and realized PnL computation for perpetual position legs.

All calculations use Decimal arithmetic exclusively -- no float conversions anywhere.

    gross = (exit - entry) * size * (+1 LONG / -1 SHORT)
    fees  = entry * size * fee_rate + exit * size * fee_rate
    net   = gross - fees

The fee rate is a flat taker rate per side (default 0.04%).
"""

from dataclasses import dataclass
from decimal import Decimal

from trader.models import PositionSide


@dataclass(frozen=True)
class RealizedPnL:
    """Breakdown of a closed leg's result."""

    gross: Decimal
    fees: Decimal
    net: Decimal


class PnLCalculator:
    """Computes round-trip fees, realized PnL and leveraged ROE.

    Args:
        fee_rate: Fee charged on notional, per side.
    """

    def __init__(self, fee_rate: Decimal = Decimal("0.0004")) -> None:
        self._fee_rate = fee_rate

    @property
    def fee_rate(self) -> Decimal:
        return self._fee_rate

    def gross_pnl(
        self, side: PositionSide, entry_price: Decimal, exit_price: Decimal, size: Decimal
    ) -> Decimal:
        """Price-move PnL before fees."""
        return (exit_price - entry_price) * size * side.sign

    def round_trip_fee(self, entry_price: Decimal, exit_price: Decimal, size: Decimal) -> Decimal:
        """Entry fee plus exit fee."""
        return entry_price * size * self._fee_rate + exit_price * size * self._fee_rate

    def realized(
        self, side: PositionSide, entry_price: Decimal, exit_price: Decimal, size: Decimal
    ) -> RealizedPnL:
        """Gross PnL, round-trip fees and net PnL for closing a leg at ``exit_price``."""
        gross = self.gross_pnl(side, entry_price, exit_price, size)
        fees = self.round_trip_fee(entry_price, exit_price, size)
        return RealizedPnL(gross=gross, fees=fees, net=gross - fees)

    @staticmethod
    def roe_percent(
        side: PositionSide, entry_price: Decimal, price: Decimal, leverage: int
    ) -> Decimal:
        """Leveraged return on equity in percent (price-move % x leverage)."""
        if entry_price <= 0:
            return Decimal("0")
        move = (price - entry_price) / entry_price * side.sign
        return move * Decimal(leverage) * Decimal("100")
