"""Stop-loss / take-profit trigger evaluation for a single leg.

LONG:  price >= take_profit -> TAKE_PROFIT, price <= stop_loss -> STOP_LOSS
SHORT: price <= take_profit -> TAKE_PROFIT, price >= stop_loss -> STOP_LOSS
"""

from decimal import Decimal

from trader.models import CloseReason, PositionSide, Trade


def evaluate_trigger(trade: Trade, price: Decimal) -> CloseReason | None:
    """Return the trigger crossed by ``price`` for this leg, if any.

    Take profit is checked before stop loss; a leg without a level never
    triggers on that side.
    """
    if price <= 0:
        return None

    tp = trade.take_profit
    sl = trade.stop_loss
    if trade.side is PositionSide.LONG:
        if tp is not None and tp > 0 and price >= tp:
            return CloseReason.TAKE_PROFIT
        if sl is not None and sl > 0 and price <= sl:
            return CloseReason.STOP_LOSS
    else:
        if tp is not None and tp > 0 and price <= tp:
            return CloseReason.TAKE_PROFIT
        if sl is not None and sl > 0 and price >= sl:
            return CloseReason.STOP_LOSS
    return None
