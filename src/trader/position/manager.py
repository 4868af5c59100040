"""Position lifecycle management for the decision-driven engine.

The open position is a set of legs keyed by opening order: the first OPEN
leg is the primary, any later legs are pyramid (ADD) legs. Every mutation
goes through this manager and is serialized by a single asyncio.Lock, so the
decision loop, the trigger monitor and manual closes never interleave.

Decision handling:
- LONG/SHORT: open a primary leg when flat and confidence >= threshold
- ADD:        open an ADD leg inheriting side, leverage, SL and TP
- UPDATE_SL:  move the stop of every OPEN leg
- CLOSE:      close every OPEN leg at the decision price
- HOLD/STAY:  no-op

Each close goes through TradeStore.close_trade, which is guarded by
``status = 'OPEN'``; a leg already closed elsewhere is a silent no-op.
"""

import asyncio
from decimal import Decimal

from trader.config import TradingSettings
from trader.data.store import TradeStore
from trader.exceptions import PersistenceError
from trader.logging import get_logger
from trader.models import (
    CloseReason,
    CloseResult,
    DecisionAction,
    LegRole,
    PositionSide,
    PositionStatus,
    Trade,
    TradeDecision,
)
from trader.notifications.telegram import TelegramNotifier
from trader.oracle.request import ActivePositionSummary
from trader.pnl.calculator import PnLCalculator
from trader.position.sizing import PositionSizer
from trader.position.triggers import evaluate_trigger

logger = get_logger(__name__)


class PositionManager:
    """Owns the OPEN -> CLOSED lifecycle of position legs.

    Args:
        store: Persistence for trades and the wallet.
        sizer: Entry and pyramid sizing.
        pnl_calculator: Realized PnL and fees on close.
        settings: Trading settings (entry threshold).
        symbol: Instrument recorded on new legs.
        notifier: Optional fire-and-forget notifier.
    """

    def __init__(
        self,
        store: TradeStore,
        sizer: PositionSizer,
        pnl_calculator: PnLCalculator,
        settings: TradingSettings,
        symbol: str,
        notifier: TelegramNotifier | None = None,
    ) -> None:
        self._store = store
        self._sizer = sizer
        self._pnl = pnl_calculator
        self._settings = settings
        self._symbol = symbol
        self._notifier = notifier
        self._lock = asyncio.Lock()

    async def apply_decision(
        self, decision: TradeDecision, price: Decimal, atr: Decimal
    ) -> list[Trade | CloseResult]:
        """Apply one oracle decision at ``price``.

        Returns:
            Legs opened or close results produced (empty for no-ops).
        """
        async with self._lock:
            open_legs = await self._store.get_trades_by_status(PositionStatus.OPEN)
            action = decision.action

            if action in (DecisionAction.LONG, DecisionAction.SHORT):
                trade = await self._open_locked(decision, open_legs, price, atr)
                return [trade] if trade else []

            if action is DecisionAction.ADD:
                trade = await self._add_locked(open_legs, price)
                return [trade] if trade else []

            if action is DecisionAction.UPDATE_SL:
                await self._update_sl_locked(open_legs, decision.stop_loss)
                return []

            if action is DecisionAction.CLOSE:
                results: list[Trade | CloseResult] = []
                for leg in open_legs:
                    result = await self._close_locked(leg, price, CloseReason.DECISION)
                    if result is not None:
                        results.append(result)
                return results

            return []

    async def close_position(
        self, trade_id: int, price: Decimal, reason: CloseReason
    ) -> CloseResult | None:
        """Close a single leg at ``price``.

        Returns:
            The close result, or None if the leg does not exist or is not OPEN.

        Raises:
            PersistenceError: If the close could not be written. The leg
                stays OPEN.
        """
        async with self._lock:
            trade = await self._store.get_trade(trade_id)
            if trade is None or trade.status is not PositionStatus.OPEN:
                return None
            return await self._close_locked(trade, price, reason)

    async def close_if_triggered(self, trade_id: int, price: Decimal) -> CloseResult | None:
        """Close a leg at ``price`` if its stored stop or target is crossed.

        The trigger is evaluated on the leg as re-read under the lock, so a
        stop moved by UPDATE_SL since the caller last looked is respected.

        Returns:
            The close result, or None if the leg is gone, not OPEN, or no
            longer triggered at ``price``.
        """
        async with self._lock:
            trade = await self._store.get_trade(trade_id)
            if trade is None or trade.status is not PositionStatus.OPEN:
                return None
            reason = evaluate_trigger(trade, price)
            if reason is None:
                logger.info(
                    "trigger_cleared",
                    trade_id=trade_id,
                    price=str(price),
                    stop_loss=str(trade.stop_loss),
                    take_profit=str(trade.take_profit),
                )
                return None
            logger.info(
                "trigger_hit",
                trade_id=trade_id,
                side=trade.side.value,
                reason=reason.value,
                price=str(price),
                stop_loss=str(trade.stop_loss),
                take_profit=str(trade.take_profit),
            )
            return await self._close_locked(trade, price, reason)

    async def get_open_positions(self) -> list[Trade]:
        """OPEN legs, primary first."""
        return await self._store.get_trades_by_status(PositionStatus.OPEN)

    async def active_position_summary(self, price: Decimal) -> ActivePositionSummary | None:
        """Combine the OPEN legs into one summary marked to ``price``."""
        legs = await self.get_open_positions()
        if not legs:
            return None

        primary = legs[0]
        total_size = sum((leg.size for leg in legs), Decimal("0"))
        if total_size > 0:
            entry = sum((leg.entry_price * leg.size for leg in legs), Decimal("0")) / total_size
        else:
            entry = primary.entry_price

        return ActivePositionSummary(
            side=primary.side.value,
            entry_price=entry,
            size=total_size,
            leverage=primary.leverage,
            pnl_percent=self._pnl.roe_percent(primary.side, entry, price, primary.leverage),
            stop_loss=primary.stop_loss,
            take_profit=primary.take_profit,
            legs=len(legs),
        )

    # ──────────────────────────────────────────────
    # Transitions (caller holds the lock)
    # ──────────────────────────────────────────────

    async def _open_locked(
        self,
        decision: TradeDecision,
        open_legs: list[Trade],
        price: Decimal,
        atr: Decimal,
    ) -> Trade | None:
        if open_legs:
            logger.info("entry_skipped_position_open", open_legs=len(open_legs))
            return None
        if decision.confidence < self._settings.entry_threshold:
            logger.info(
                "entry_skipped_low_confidence",
                confidence=decision.confidence,
                threshold=self._settings.entry_threshold,
            )
            return None
        if price <= 0:
            logger.warning("entry_skipped_no_price")
            return None

        balance = await self._store.get_wallet_balance()
        sizing = self._sizer.calculate_entry_size(
            balance=balance,
            price=price,
            stop_loss=decision.stop_loss,
            risk_per_trade=decision.risk_per_trade,
            atr=atr,
        )
        side = PositionSide(decision.action.value)

        trade = await self._store.insert_trade(
            symbol=self._symbol,
            side=side,
            entry_price=price,
            size=sizing.size,
            leverage=sizing.leverage,
            role=LegRole.PRIMARY,
            stop_loss=decision.stop_loss if decision.stop_loss > 0 else None,
            take_profit=decision.take_profit if decision.take_profit > 0 else None,
        )

        logger.info(
            "position_opened",
            trade_id=trade.id,
            side=side.value,
            entry_price=str(price),
            size=str(sizing.size),
            leverage=sizing.leverage,
            notional=str(sizing.notional),
            sl_distance_pct=str(sizing.sl_distance_pct),
        )
        self._notify(
            f"*{side.value}* opened #{trade.id} @ {price:.2f}\n"
            f"Size: {sizing.size:.4f} | Leverage: {sizing.leverage}x\n"
            f"SL: {_fmt(trade.stop_loss)} | TP: {_fmt(trade.take_profit)}\n"
            f"Confidence: {decision.confidence}% - {decision.reason}"
        )
        return trade

    async def _add_locked(self, open_legs: list[Trade], price: Decimal) -> Trade | None:
        if not open_legs:
            logger.info("add_skipped_no_position")
            return None
        if price <= 0:
            logger.warning("add_skipped_no_price")
            return None

        primary = open_legs[0]
        balance = await self._store.get_wallet_balance()
        size = self._sizer.calculate_add_size(balance, price)

        trade = await self._store.insert_trade(
            symbol=self._symbol,
            side=primary.side,
            entry_price=price,
            size=size,
            leverage=primary.leverage,
            role=LegRole.ADD,
            stop_loss=primary.stop_loss,
            take_profit=primary.take_profit,
        )

        logger.info(
            "position_added",
            trade_id=trade.id,
            primary_id=primary.id,
            side=primary.side.value,
            entry_price=str(price),
            size=str(size),
        )
        self._notify(
            f"Pyramid *{primary.side.value}* #{trade.id} @ {price:.2f} (size {size:.4f})"
        )
        return trade

    async def _update_sl_locked(self, open_legs: list[Trade], stop_loss: Decimal) -> None:
        if not open_legs:
            logger.info("update_sl_skipped_no_position")
            return
        if stop_loss <= 0:
            logger.warning("update_sl_skipped_invalid_stop", stop_loss=str(stop_loss))
            return

        updated = 0
        for leg in open_legs:
            if await self._store.update_stop_loss(leg.id, stop_loss):
                updated += 1

        logger.info("stop_loss_updated", stop_loss=str(stop_loss), legs=updated)
        if updated:
            self._notify(f"Stop loss moved to {stop_loss:.2f} ({updated} leg(s))")

    async def _close_locked(
        self, trade: Trade, price: Decimal, reason: CloseReason
    ) -> CloseResult | None:
        realized = self._pnl.realized(trade.side, trade.entry_price, price, trade.size)

        try:
            balance = await self._store.close_trade(
                trade.id, realized.net, exit_price=price, reason=reason
            )
        except Exception as e:
            logger.error("position_close_failed", trade_id=trade.id, error=str(e))
            raise PersistenceError(f"Failed to close trade {trade.id}: {e}") from e

        if balance is None:
            return None

        result = CloseResult(
            trade_id=trade.id,
            side=trade.side,
            reason=reason,
            exit_price=price,
            gross_pnl=realized.gross,
            fees=realized.fees,
            net_pnl=realized.net,
            balance_after=balance,
        )
        logger.info(
            "position_closed",
            trade_id=trade.id,
            side=trade.side.value,
            reason=reason.value,
            exit_price=str(price),
            gross_pnl=str(realized.gross),
            fees=str(realized.fees),
            net_pnl=str(realized.net),
            balance=str(balance),
        )
        outcome = "WIN" if realized.net > 0 else "LOSS"
        self._notify(
            f"Closed *{trade.side.value}* #{trade.id} ({reason.value}) @ {price:.2f}\n"
            f"{outcome}: ${realized.net:.2f} | Balance: ${balance:.2f}"
        )
        return result

    def _notify(self, text: str) -> None:
        if self._notifier is not None:
            self._notifier.notify(text)


def _fmt(value: Decimal | None) -> str:
    return f"{value:.2f}" if value is not None else "-"
