"""In-process decision memory.

The decision loop feeds the oracle a short history of open interest and
funding plus the previous decision. That history lives in a bounded ring
buffer owned by the loop; on startup it is seeded once from the most recent
INFO log entries so a restart does not lose context.
"""

import json
from collections import deque
from dataclasses import dataclass
from decimal import Decimal

from trader.logging import get_logger
from trader.models import LogEntry, MarketSnapshot, Trade, TradeDecision
from trader.oracle.parser import parse_decision

logger = get_logger(__name__)


def build_history(newest_first: list[Decimal], current: Decimal) -> list[Decimal]:
    """Turn a reverse-chronological series into oldest-first plus ``current``."""
    return [*reversed(newest_first), current]


def summarize_recent_trades(closed_trades: list[Trade]) -> str:
    """One-line win/loss summary of recently closed legs (newest first)."""
    if not closed_trades:
        return "No recent closed trades."

    wins = sum(1 for t in closed_trades if (t.pnl or 0) > 0)
    losses = len(closed_trades) - wins
    history = ", ".join(
        f"{t.side.value} ({'WIN' if (t.pnl or 0) > 0 else 'LOSS'} ${t.pnl or Decimal('0'):.2f})"
        for t in closed_trades
    )
    return (
        f"Last {len(closed_trades)} Trades: {wins} Wins, {losses} Losses. "
        f"History: {history}"
    )


@dataclass(frozen=True)
class DecisionRecord:
    """One completed decision cycle."""

    decision: TradeDecision | None
    snapshot: MarketSnapshot


class DecisionMemory:
    """Bounded history of past decision cycles, oldest first.

    Args:
        depth: Number of past cycles kept (and fed to the oracle).
    """

    def __init__(self, depth: int = 6) -> None:
        self._records: deque[DecisionRecord] = deque(maxlen=depth)

    def __len__(self) -> int:
        return len(self._records)

    def record(self, decision: TradeDecision | None, snapshot: MarketSnapshot) -> None:
        self._records.append(DecisionRecord(decision=decision, snapshot=snapshot))

    def seed_from_logs(self, entries: list[LogEntry]) -> int:
        """Load past cycles from INFO log entries given newest first.

        Entries without market data (manual-close notes, for example) are
        skipped. Returns the number of records loaded.
        """
        loaded = 0
        for entry in reversed(entries):
            snapshot = _snapshot_from_market_data(entry.market_data)
            if snapshot is None:
                continue
            decision = parse_decision(entry.ai_response) if entry.ai_response else None
            self.record(decision, snapshot)
            loaded += 1
        logger.info("decision_memory_seeded", records=loaded)
        return loaded

    @property
    def previous_decision(self) -> TradeDecision | None:
        if not self._records:
            return None
        return self._records[-1].decision

    def oi_history(self, current: Decimal) -> list[Decimal]:
        newest_first = [r.snapshot.open_interest for r in reversed(self._records)]
        return build_history(newest_first, current)

    def funding_history(self, current: Decimal) -> list[Decimal]:
        newest_first = [r.snapshot.funding_rate for r in reversed(self._records)]
        return build_history(newest_first, current)

    def oi_change_percent(self, current: Decimal) -> Decimal:
        """Percent change of open interest versus the previous cycle."""
        if not self._records:
            return Decimal("0")
        previous = self._records[-1].snapshot.open_interest
        if previous == 0:
            return Decimal("0")
        return (current - previous) / previous * Decimal("100")


def _snapshot_from_market_data(market_data: dict | str | None) -> MarketSnapshot | None:
    if not market_data:
        return None
    if isinstance(market_data, str):
        try:
            market_data = json.loads(market_data)
        except json.JSONDecodeError:
            return None
    if not isinstance(market_data, dict):
        return None
    try:
        return MarketSnapshot(
            price=Decimal(str(market_data.get("price", 0))),
            funding_rate=Decimal(str(market_data.get("funding", 0))),
            open_interest=Decimal(str(market_data.get("oi", 0))),
        )
    except ArithmeticError:
        return None
