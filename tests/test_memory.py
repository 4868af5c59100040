"""Tests for the in-process decision memory and trade summaries."""

import json
from decimal import Decimal

from trader.memory import DecisionMemory, build_history, summarize_recent_trades
from trader.models import (
    DecisionAction,
    LogEntry,
    LogType,
    MarketSnapshot,
    PositionSide,
    PositionStatus,
    Trade,
    TradeDecision,
)


def _snap(oi: str, funding: str = "0.0001", price: str = "50000") -> MarketSnapshot:
    return MarketSnapshot(
        price=Decimal(price), funding_rate=Decimal(funding), open_interest=Decimal(oi)
    )


def _closed(side: PositionSide, pnl: str) -> Trade:
    return Trade(
        id=1,
        symbol="BTC/USDT:USDT",
        side=side,
        entry_price=Decimal("50000"),
        size=Decimal("0.1"),
        leverage=10,
        status=PositionStatus.CLOSED,
        pnl=Decimal(pnl),
    )


class TestBuildHistory:
    def test_reverses_and_appends_current(self) -> None:
        newest_first = [Decimal("3"), Decimal("2"), Decimal("1")]
        assert build_history(newest_first, Decimal("4")) == [
            Decimal("1"),
            Decimal("2"),
            Decimal("3"),
            Decimal("4"),
        ]

    def test_empty_history(self) -> None:
        assert build_history([], Decimal("7")) == [Decimal("7")]


class TestDecisionMemory:
    def test_ring_buffer_depth(self) -> None:
        memory = DecisionMemory(depth=3)
        for oi in ("1", "2", "3", "4"):
            memory.record(TradeDecision.stay(), _snap(oi))
        assert len(memory) == 3
        assert memory.oi_history(Decimal("5")) == [
            Decimal("2"),
            Decimal("3"),
            Decimal("4"),
            Decimal("5"),
        ]

    def test_funding_history(self) -> None:
        memory = DecisionMemory()
        memory.record(None, _snap("1", funding="0.0001"))
        memory.record(None, _snap("1", funding="0.0002"))
        assert memory.funding_history(Decimal("0.0003")) == [
            Decimal("0.0001"),
            Decimal("0.0002"),
            Decimal("0.0003"),
        ]

    def test_previous_decision(self) -> None:
        memory = DecisionMemory()
        assert memory.previous_decision is None
        decision = TradeDecision(action=DecisionAction.HOLD, confidence=50)
        memory.record(decision, _snap("1"))
        assert memory.previous_decision == decision

    def test_oi_change_percent(self) -> None:
        memory = DecisionMemory()
        assert memory.oi_change_percent(Decimal("100")) == Decimal("0")
        memory.record(None, _snap("200"))
        assert memory.oi_change_percent(Decimal("210")) == Decimal("5")

    def test_seed_from_logs_newest_first(self) -> None:
        entries = [
            LogEntry(
                type=LogType.INFO,
                message="Checked Market. Action: HOLD (60%)",
                ai_response=json.dumps({"action": "HOLD", "confidence": 60}),
                market_data={"price": 50100.0, "funding": 0.0002, "oi": 1020.0, "vwap": 50000.0},
            ),
            LogEntry(type=LogType.INFO, message="Manually closed Trade #3. Net PnL: $1.00"),
            LogEntry(
                type=LogType.INFO,
                message="Checked Market. Action: STAY (0%)",
                ai_response="garbage",
                market_data={"price": 50000.0, "funding": 0.0001, "oi": 1000.0, "vwap": 50000.0},
            ),
        ]
        memory = DecisionMemory(depth=6)

        loaded = memory.seed_from_logs(entries)

        assert loaded == 2
        assert memory.oi_history(Decimal("1030")) == [
            Decimal("1000.0"),
            Decimal("1020.0"),
            Decimal("1030"),
        ]
        previous = memory.previous_decision
        assert previous is not None
        assert previous.action is DecisionAction.HOLD
        assert previous.confidence == 60


class TestSummarizeRecentTrades:
    def test_no_trades(self) -> None:
        assert summarize_recent_trades([]) == "No recent closed trades."

    def test_wins_and_losses(self) -> None:
        trades = [
            _closed(PositionSide.LONG, "12.346"),
            _closed(PositionSide.SHORT, "-3.5"),
            _closed(PositionSide.LONG, "0"),
        ]
        assert summarize_recent_trades(trades) == (
            "Last 3 Trades: 1 Wins, 2 Losses. "
            "History: LONG (WIN $12.35), SHORT (LOSS $-3.50), LONG (LOSS $0.00)"
        )
