"""Shared data models for the trading engine.

CRITICAL: All monetary values use Decimal. Never use float for prices, sizes, PnL or fees.
Floats only appear at the network boundary and are converted via Decimal(str(x)).
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class PositionSide(str, Enum):
    """Position direction."""

    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def sign(self) -> Decimal:
        """+1 for LONG, -1 for SHORT."""
        return Decimal("1") if self is PositionSide.LONG else Decimal("-1")


class PositionStatus(str, Enum):
    """Position lifecycle state. CLOSED is terminal."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class LegRole(str, Enum):
    """Role of a position leg within the open position set."""

    PRIMARY = "PRIMARY"
    ADD = "ADD"


class CloseReason(str, Enum):
    """Why a position leg was closed."""

    DECISION = "DECISION"
    TAKE_PROFIT = "TAKE_PROFIT"
    STOP_LOSS = "STOP_LOSS"
    MANUAL = "MANUAL"


class DecisionAction(str, Enum):
    """Allow-list of oracle actions. Anything else is treated as STAY."""

    LONG = "LONG"
    SHORT = "SHORT"
    STAY = "STAY"
    CLOSE = "CLOSE"
    ADD = "ADD"
    UPDATE_SL = "UPDATE_SL"
    HOLD = "HOLD"


class LogType(str, Enum):
    """Severity of a persisted engine log entry."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Candle:
    """A single OHLCV candle. Series are ordered ascending by open_time."""

    open_time: int  # Unix milliseconds
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal


@dataclass(frozen=True)
class MarketSnapshot:
    """Blended (or single-venue) price, funding rate and open interest."""

    price: Decimal
    funding_rate: Decimal
    open_interest: Decimal

    @classmethod
    def invalid(cls) -> "MarketSnapshot":
        """Sentinel returned by a venue that could not be read."""
        return cls(price=Decimal("0"), funding_rate=Decimal("0"), open_interest=Decimal("0"))

    @property
    def is_valid(self) -> bool:
        return self.price > 0


@dataclass(frozen=True)
class NextSetup:
    """Oracle's plan for the next entry levels (informational only)."""

    short_level: Decimal = Decimal("0")
    long_level: Decimal = Decimal("0")
    comment: str = ""


@dataclass(frozen=True)
class TradeDecision:
    """One oracle decision per cycle. Logged verbatim, never mutated."""

    action: DecisionAction
    reason: str = ""
    confidence: int = 0  # 0..100
    stop_loss: Decimal = Decimal("0")
    take_profit: Decimal = Decimal("0")
    risk_per_trade: Decimal = Decimal("0")
    setup_reason: str | None = None
    strategy_used: str | None = None
    next_setup: NextSetup | None = None
    # Oracle text this decision was parsed from; None for local fallbacks
    raw_response: str | None = field(default=None, compare=False, repr=False)

    @classmethod
    def stay(cls, reason: str = "No decision available") -> "TradeDecision":
        """The safe do-nothing decision."""
        return cls(action=DecisionAction.STAY, reason=reason, confidence=0)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the oracle's wire field names (Decimals as floats)."""
        data: dict[str, Any] = {
            "action": self.action.value,
            "reason": self.reason,
            "confidence": self.confidence,
            "stopLoss": float(self.stop_loss),
            "takeProfit": float(self.take_profit),
            "riskPerTrade": float(self.risk_per_trade),
        }
        if self.setup_reason is not None:
            data["setup_reason"] = self.setup_reason
        if self.strategy_used is not None:
            data["strategy_used"] = self.strategy_used
        if self.next_setup is not None:
            data["next_setup"] = {
                "short_level": float(self.next_setup.short_level),
                "long_level": float(self.next_setup.long_level),
                "comment": self.next_setup.comment,
            }
        return data


@dataclass
class Trade:
    """A persisted position leg.

    ``id`` is the SQLite rowid, so ordering by id is the opening sequence.
    Only ``status``, ``pnl``, ``closed_at``, ``close_reason`` (on close) and
    ``stop_loss`` (UPDATE_SL) ever change after insert.
    """

    id: int
    symbol: str
    side: PositionSide
    entry_price: Decimal
    size: Decimal  # base-asset units
    leverage: int
    role: LegRole = LegRole.PRIMARY
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    status: PositionStatus = PositionStatus.OPEN
    pnl: Decimal | None = None
    created_at: float = field(default_factory=time.time)
    closed_at: float | None = None
    close_reason: CloseReason | None = None

    @property
    def notional(self) -> Decimal:
        return self.entry_price * self.size


@dataclass(frozen=True)
class CloseResult:
    """Outcome of a successful (first and only) close of a leg."""

    trade_id: int
    side: PositionSide
    reason: CloseReason
    exit_price: Decimal
    gross_pnl: Decimal
    fees: Decimal
    net_pnl: Decimal
    balance_after: Decimal


@dataclass
class LogEntry:
    """Append-only audit record, also used to seed engine memory on restart."""

    type: LogType
    message: str
    ai_response: str | None = None  # raw decision JSON
    market_data: dict[str, Any] | None = None  # price/funding/oi/vwap
    created_at: float = field(default_factory=time.time)
    id: int | None = None
