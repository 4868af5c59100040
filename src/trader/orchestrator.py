"""Decision loop -- wires market data, indicators, the oracle and positions.

Each cycle:
  1. FETCH: multi-timeframe candles and the blended market snapshot
  2. COMPUTE: indicators for every timeframe
  3. CONTEXT: OI/funding history, previous decision, recent trades, open position
  4. DECIDE: ask the oracle (STAY on any oracle failure)
  5. LOG: persist the raw oracle answer with the market data
  6. APPLY: hand the decision to the PositionManager

A failed cycle is logged (structlog and an ERROR log row) and the loop
carries on; nothing in a cycle is fatal to the process.
"""

from __future__ import annotations

import asyncio
import json

from trader.config import AppSettings
from trader.data.store import TradeStore
from trader.indicators.engine import compute_all
from trader.logging import get_logger
from trader.market_data.candles import CandleSource
from trader.market_data.snapshot import MarketAggregator
from trader.memory import DecisionMemory, summarize_recent_trades
from trader.models import LogEntry, LogType, TradeDecision
from trader.oracle.adapter import DecisionOracle
from trader.position.manager import PositionManager

logger = get_logger(__name__)

# Timeframe whose ATR drives leverage and whose VWAP is logged
_EXECUTION_TIMEFRAME = "5m"


class Orchestrator:
    """Runs the slow decision loop.

    Args:
        settings: Application settings.
        candle_source: Candle pages for all timeframes.
        aggregator: Blended two-venue market snapshot.
        oracle: Decision oracle adapter.
        position_manager: Applies decisions to the position set.
        store: Ledger (logs, recent closed trades).
        memory: In-process decision history.
    """

    def __init__(
        self,
        settings: AppSettings,
        candle_source: CandleSource,
        aggregator: MarketAggregator,
        oracle: DecisionOracle,
        position_manager: PositionManager,
        store: TradeStore,
        memory: DecisionMemory,
    ) -> None:
        self._settings = settings
        self._candle_source = candle_source
        self._aggregator = aggregator
        self._oracle = oracle
        self._position_manager = position_manager
        self._store = store
        self._memory = memory
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._cycle_lock = asyncio.Lock()

    async def seed_memory(self) -> int:
        """Load the most recent INFO log entries into the decision memory."""
        entries = await self._store.get_recent_logs(
            LogType.INFO, limit=self._settings.trading.history_depth
        )
        return self._memory.seed_from_logs(entries)

    async def start(self) -> None:
        """Begin running decision cycles in the background."""
        if self._running:
            logger.warning("orchestrator_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "orchestrator_started",
            symbol=self._settings.market.symbol,
            interval=self._settings.trading.decision_interval,
        )

    async def stop(self) -> None:
        """Stop the loop. Open positions stay OPEN; the ledger is the recovery point."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("orchestrator_stopped")

    async def run_cycle(self) -> TradeDecision | None:
        """Run one decision cycle. Returns None when the cycle was skipped."""
        async with self._cycle_lock:
            candles, snapshot = await asyncio.gather(
                self._candle_source.fetch_multi_timeframe(
                    self._settings.market.candle_counts()
                ),
                self._aggregator.aggregate(),
            )

            if not snapshot.is_valid:
                logger.error("cycle_skipped_no_market_data")
                await self._log(LogType.ERROR, "No valid market data from any venue")
                return None

            indicators = compute_all(candles)
            execution = indicators[_EXECUTION_TIMEFRAME]
            price = snapshot.price

            oi_change = self._memory.oi_change_percent(snapshot.open_interest)
            closed = await self._store.get_recent_closed_trades(
                self._settings.trading.recent_trades_depth
            )
            active = await self._position_manager.active_position_summary(price)

            logger.info(
                "market_checked",
                price=f"{price:.2f}",
                funding=str(snapshot.funding_rate),
                open_interest=str(snapshot.open_interest),
                oi_change_pct=f"{oi_change:.4f}",
                white_zone_1m=indicators["1m"].white_zone.label,
                has_position=active is not None,
            )

            decision = await self._oracle.decide(
                indicators=indicators,
                snapshot=snapshot,
                oi_history=self._memory.oi_history(snapshot.open_interest),
                funding_history=self._memory.funding_history(snapshot.funding_rate),
                previous_decision=self._memory.previous_decision,
                recent_trades_summary=summarize_recent_trades(closed),
                active_position=active,
            )

            await self._store.insert_log(
                LogEntry(
                    type=LogType.INFO,
                    message=(
                        f"Checked Market. Action: {decision.action.value} "
                        f"({decision.confidence}%)"
                    ),
                    ai_response=decision.raw_response or json.dumps(decision.to_dict()),
                    market_data={
                        "price": float(price),
                        "funding": float(snapshot.funding_rate),
                        "oi": float(snapshot.open_interest),
                        "vwap": float(execution.vwap),
                    },
                )
            )
            self._memory.record(decision, snapshot)

            await self._position_manager.apply_decision(decision, price, execution.atr)
            return decision

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("orchestrator_cycle_error", error=str(e), exc_info=True)
                await self._log(LogType.ERROR, str(e))
            if self._running:
                await asyncio.sleep(self._settings.trading.decision_interval)

    async def _log(self, log_type: LogType, message: str) -> None:
        try:
            await self._store.insert_log(LogEntry(type=log_type, message=message))
        except Exception:
            logger.error("log_write_failed", exc_info=True)

