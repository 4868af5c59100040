"""Trigger monitor -- exit-only stop-loss / take-profit enforcement.

Runs on a fast cadence independent of the decision loop and of the oracle.
Each tick reads the live price once and asks the PositionManager to close
every OPEN leg whose stop or target was crossed. The pre-check here only
avoids taking the lock for untouched legs; the manager evaluates the trigger
again against the leg as stored, under its lock, before closing.
"""

import asyncio

from trader.data.store import TradeStore
from trader.exceptions import PriceUnavailableError
from trader.logging import get_logger
from trader.market_data.snapshot import MarketAggregator
from trader.models import CloseResult, LogEntry, LogType
from trader.position.manager import PositionManager
from trader.position.triggers import evaluate_trigger

logger = get_logger(__name__)


class TriggerMonitor:
    """Polls the live price and closes legs whose SL/TP was hit.

    Args:
        aggregator: Live price source (primary venue, secondary fallback).
        position_manager: Performs the guarded close.
        store: Ledger, used to persist ERROR log entries.
        interval: Seconds between ticks.
    """

    def __init__(
        self,
        aggregator: MarketAggregator,
        position_manager: PositionManager,
        store: TradeStore,
        interval: float = 10.0,
    ) -> None:
        self._aggregator = aggregator
        self._position_manager = position_manager
        self._store = store
        self._interval = interval
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    async def start(self) -> None:
        """Begin checking triggers in the background."""
        if self._running:
            logger.warning("trigger_monitor_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("trigger_monitor_started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the monitor gracefully. Open legs stay OPEN."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("trigger_monitor_stopped")

    async def check_once(self) -> list[CloseResult]:
        """Run one tick. Returns the closes it performed."""
        legs = await self._position_manager.get_open_positions()
        if not legs:
            return []

        try:
            price = await self._aggregator.fetch_price()
        except PriceUnavailableError:
            logger.warning("trigger_check_skipped_no_price", open_legs=len(legs))
            return []

        results: list[CloseResult] = []
        for leg in legs:
            if evaluate_trigger(leg, price) is None:
                continue
            result = await self._position_manager.close_if_triggered(leg.id, price)
            if result is not None:
                results.append(result)
        return results

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.check_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("trigger_monitor_error", error=str(e), exc_info=True)
                await self._log_error(f"Trigger monitor error: {e}")
            if self._running:
                await asyncio.sleep(self._interval)

    async def _log_error(self, message: str) -> None:
        try:
            await self._store.insert_log(LogEntry(type=LogType.ERROR, message=message))
        except Exception:
            logger.error("error_log_write_failed", exc_info=True)
