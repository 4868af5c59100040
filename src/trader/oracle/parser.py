"""Strict parsing of oracle responses into TradeDecision.

The oracle's JSON shape drifts between prompt revisions (camelCase vs
snake_case keys, optional blocks present or not). Every field is coerced
individually and defaults safely; only the ``action`` allow-list is strict.
Unparsable text, a non-object payload or an unknown action all yield the
STAY default with confidence 0.
"""

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from trader.logging import get_logger
from trader.models import DecisionAction, NextSetup, TradeDecision

logger = get_logger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)
_ACTIONS = {action.value for action in DecisionAction}


def _pick(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    return result


def _confidence(value: Any) -> int:
    number = _decimal(value)
    return int(min(max(number, Decimal("0")), Decimal("100")))


def _risk_fraction(value: Any) -> Decimal:
    """Risk per trade as a fraction; values above 1 are read as percent."""
    risk = _decimal(value)
    if risk <= 0:
        return Decimal("0")
    if risk > 1:
        risk = risk / Decimal("100")
    return min(risk, Decimal("1"))


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _next_setup(value: Any) -> NextSetup | None:
    if not isinstance(value, dict):
        return None
    return NextSetup(
        short_level=_decimal(_pick(value, "short_level", "shortLevel")),
        long_level=_decimal(_pick(value, "long_level", "longLevel")),
        comment=str(value.get("comment") or ""),
    )


def parse_decision(text: str) -> TradeDecision:
    """Parse raw oracle output into a TradeDecision, never raising."""
    raw = (text or "").strip()
    fenced = _CODE_FENCE.match(raw)
    if fenced:
        raw = fenced.group(1)

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("oracle_response_not_json", preview=raw[:200])
        return TradeDecision.stay("Unparsable oracle response")

    if not isinstance(data, dict):
        logger.warning("oracle_response_not_object", kind=type(data).__name__)
        return TradeDecision.stay("Oracle response is not an object")

    action_raw = str(data.get("action", "")).strip().upper()
    if action_raw not in _ACTIONS:
        logger.warning("oracle_unknown_action", action=action_raw or None)
        return TradeDecision.stay(f"Unknown oracle action: {action_raw or 'missing'}")

    return TradeDecision(
        action=DecisionAction(action_raw),
        reason=str(data.get("reason") or ""),
        confidence=_confidence(data.get("confidence")),
        stop_loss=_decimal(_pick(data, "stopLoss", "stop_loss")),
        take_profit=_decimal(_pick(data, "takeProfit", "take_profit")),
        risk_per_trade=_risk_fraction(_pick(data, "riskPerTrade", "risk_per_trade")),
        setup_reason=_optional_str(_pick(data, "setup_reason", "setupReason")),
        strategy_used=_optional_str(_pick(data, "strategy_used", "strategyUsed")),
        next_setup=_next_setup(_pick(data, "next_setup", "nextSetup")),
    )
