"""Serialization of the decision request sent to the oracle.

The oracle receives one prompt: fixed trading rules, a JSON bundle of the
current market state, and the required response format. The rules describe
how the engine expects the indicators to be used; the oracle remains free
to decide, the engine only enforces the response contract.
"""

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from trader.indicators.models import TimeframeIndicators
from trader.models import MarketSnapshot, TradeDecision

TRADING_RULES = """\
You are the decision module of an automated BTC perpetual futures trader.

Rules:
1. Market structure: on 4h and 1h, EMA50 above EMA200 is a bullish bias
   (longs only); EMA50 below EMA200 is a bearish bias (shorts only).
2. Location: with a bullish bias wait for a pullback to support (5m/1h
   EMA200, VWAP, swing low); with a bearish bias wait for a retracement to
   resistance (5m/1h EMA200, VWAP, swing high).
3. Confirmation: the 1m White Zone status is a trend filter, not a level.
   UPTREND confirms longs, DOWNTREND confirms shorts. CHOP or CHOP_RUBBING
   means no new entry.
4. Stop loss goes behind the structural level (at least $500 away).
5. Take profit targets the next major level (at least $1000 away) with a
   reward/risk ratio of at least 1.5.
6. With an open position answer HOLD, CLOSE, ADD or UPDATE_SL. Without one
   answer LONG, SHORT or STAY. Entries need confidence >= 70.
7. Quote the actual numbers (price vs. White Zone bands) in your reasoning.
"""

RESPONSE_FORMAT = """\
Respond with a single JSON object:
{
  "action": "LONG" | "SHORT" | "STAY" | "CLOSE" | "ADD" | "UPDATE_SL" | "HOLD",
  "strategy_used": "TREND_A" | "RANGE_B",
  "reason": string,
  "confidence": integer 0-100,
  "stopLoss": number,      // holding: current or new stop; new trade: proposed stop
  "takeProfit": number,    // holding: current target; new trade: proposed target
  "riskPerTrade": number,  // fraction of balance to risk, e.g. 0.02
  "setup_reason": string,
  "next_setup": {"short_level": number, "long_level": number, "comment": string}
}
"""


@dataclass(frozen=True)
class ActivePositionSummary:
    """Open position as presented to the oracle (all legs combined)."""

    side: str
    entry_price: Decimal  # size-weighted across legs
    size: Decimal
    leverage: int
    pnl_percent: Decimal  # leveraged ROE
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    legs: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "side": self.side,
            "entry_price": float(self.entry_price),
            "size": float(self.size),
            "leverage": self.leverage,
            "pnl_percent": f"{self.pnl_percent:.2f}",
            "sl_price": float(self.stop_loss) if self.stop_loss is not None else None,
            "tp_price": float(self.take_profit) if self.take_profit is not None else None,
            "legs": self.legs,
        }


@dataclass(frozen=True)
class DecisionRequest:
    """Everything the oracle sees for one decision cycle."""

    indicators: dict[str, TimeframeIndicators]
    snapshot: MarketSnapshot
    oi_history: list[Decimal]
    funding_history: list[Decimal]
    previous_decision: TradeDecision | None
    recent_trades_summary: str
    active_position: ActivePositionSummary | None

    def to_payload(self) -> dict[str, Any]:
        """JSON-serializable bundle of the request."""
        return {
            "market": {
                "price": float(self.snapshot.price),
                "fundingRate": float(self.snapshot.funding_rate),
                "openInterest": float(self.snapshot.open_interest),
            },
            "indicators": {tf: ind.to_dict() for tf, ind in self.indicators.items()},
            "oiHistory": [float(v) for v in self.oi_history],
            "fundingHistory": [float(v) for v in self.funding_history],
            "previousDecision": (
                self.previous_decision.to_dict() if self.previous_decision else None
            ),
            "recentTrades": self.recent_trades_summary,
            "activePosition": (
                self.active_position.to_dict() if self.active_position else None
            ),
        }


def build_prompt(request: DecisionRequest) -> str:
    """Render the full prompt text for one decision request."""
    payload = json.dumps(request.to_payload(), indent=2)
    position_line = (
        "You currently HOLD a position (see activePosition)."
        if request.active_position
        else "You currently have NO open position."
    )
    return (
        f"{TRADING_RULES}\n"
        f"{position_line}\n\n"
        f"### Market state (JSON)\n{payload}\n\n"
        f"### Response format\n{RESPONSE_FORMAT}"
    )
