"""Risk-based position sizing with a volatility-tiered leverage cap.

All calculations use Decimal arithmetic exclusively -- no float conversions.

Entry sizing flow:
1. sl_distance = max(|price - stop_loss| / price, min_sl_distance_pct)
2. risk_notional = balance * risk_per_trade / sl_distance
3. leverage_cap_notional = balance * dynamic_leverage(atr, price)
4. notional = min(risk_notional, leverage_cap_notional)
5. size = notional / price

The two ceilings are independent; whichever notional is smaller wins.
Pyramid (ADD) legs ignore both and use a fixed fraction of balance.
"""

from dataclasses import dataclass
from decimal import Decimal

from trader.config import TradingSettings


@dataclass(frozen=True)
class SizingResult:
    """Outcome of an entry sizing calculation."""

    size: Decimal
    notional: Decimal
    leverage: int
    sl_distance_pct: Decimal
    risk_notional: Decimal
    leverage_cap_notional: Decimal


class PositionSizer:
    """Calculates entry and pyramid sizes from the wallet balance.

    Args:
        settings: Trading settings (risk defaults, stop floor, leverage tiers).
    """

    def __init__(self, settings: TradingSettings) -> None:
        self._settings = settings

    def dynamic_leverage(self, atr: Decimal, price: Decimal) -> int:
        """Volatility-tiered leverage.

        ATR/price < 0.5% -> 20x, < 1.0% -> 10x, otherwise 5x (defaults).
        An unknown price is treated as maximum volatility.
        """
        s = self._settings
        if price <= 0:
            return s.high_vol_leverage
        volatility = atr / price
        if volatility < s.low_vol_threshold:
            return s.low_vol_leverage
        if volatility < s.mid_vol_threshold:
            return s.mid_vol_leverage
        return s.high_vol_leverage

    def calculate_entry_size(
        self,
        balance: Decimal,
        price: Decimal,
        stop_loss: Decimal,
        risk_per_trade: Decimal,
        atr: Decimal,
    ) -> SizingResult:
        """Size a new primary leg.

        Args:
            balance: Current wallet balance (quote currency).
            price: Entry price.
            stop_loss: Proposed stop; 0 means none, which hits the distance floor.
            risk_per_trade: Fraction of balance to risk; <= 0 uses the default.
            atr: ATR used to pick the leverage tier.

        Raises:
            ValueError: If price is not positive.
        """
        if price <= 0:
            raise ValueError(f"Cannot size a position at price {price}")

        if risk_per_trade <= 0:
            risk_per_trade = self._settings.default_risk_per_trade

        sl_distance = abs(price - stop_loss) / price
        sl_distance = max(sl_distance, self._settings.min_sl_distance_pct)

        leverage = self.dynamic_leverage(atr, price)
        risk_notional = balance * risk_per_trade / sl_distance
        cap_notional = balance * Decimal(leverage)
        notional = min(risk_notional, cap_notional)

        return SizingResult(
            size=notional / price,
            notional=notional,
            leverage=leverage,
            sl_distance_pct=sl_distance,
            risk_notional=risk_notional,
            leverage_cap_notional=cap_notional,
        )

    def calculate_add_size(self, balance: Decimal, price: Decimal) -> Decimal:
        """Size a pyramid leg: ``add_fraction`` of balance as notional.

        Raises:
            ValueError: If price is not positive.
        """
        if price <= 0:
            raise ValueError(f"Cannot size a position at price {price}")
        return balance * self._settings.add_fraction / price
