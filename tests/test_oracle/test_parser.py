"""Tests for oracle response parsing.

Verifies:
- Well-formed responses (camelCase and snake_case keys)
- Markdown code fences are tolerated
- Unknown/missing action, non-JSON and non-object payloads fall back to STAY
- Field coercion: confidence clamped, risk percent normalized, bad numbers -> 0
"""

import json
from decimal import Decimal

import pytest

from trader.models import DecisionAction
from trader.oracle.parser import parse_decision


def _payload(**overrides) -> str:
    data = {
        "action": "LONG",
        "strategy_used": "TREND_A",
        "reason": "4h bullish, price at 1h EMA200, 1m UPTREND",
        "confidence": 82,
        "stopLoss": 49400.5,
        "takeProfit": 51500,
        "riskPerTrade": 0.02,
        "setup_reason": "pullback",
        "next_setup": {"short_level": 52000, "long_level": 49000, "comment": "watch"},
    }
    data.update(overrides)
    return json.dumps(data)


class TestWellFormed:
    def test_full_decision(self) -> None:
        decision = parse_decision(_payload())
        assert decision.action is DecisionAction.LONG
        assert decision.confidence == 82
        assert decision.stop_loss == Decimal("49400.5")
        assert decision.take_profit == Decimal("51500")
        assert decision.risk_per_trade == Decimal("0.02")
        assert decision.strategy_used == "TREND_A"
        assert decision.setup_reason == "pullback"
        assert decision.next_setup is not None
        assert decision.next_setup.short_level == Decimal("52000")
        assert decision.next_setup.comment == "watch"

    def test_snake_case_keys(self) -> None:
        text = json.dumps({"action": "update_sl", "stop_loss": "49800", "confidence": "60"})
        decision = parse_decision(text)
        assert decision.action is DecisionAction.UPDATE_SL
        assert decision.stop_loss == Decimal("49800")
        assert decision.confidence == 60

    def test_code_fence(self) -> None:
        decision = parse_decision(f"```json\n{_payload(action='CLOSE')}\n```")
        assert decision.action is DecisionAction.CLOSE

    def test_optional_fields_default(self) -> None:
        decision = parse_decision('{"action": "HOLD"}')
        assert decision.action is DecisionAction.HOLD
        assert decision.confidence == 0
        assert decision.stop_loss == Decimal("0")
        assert decision.next_setup is None
        assert decision.strategy_used is None


class TestFallbackToStay:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "not json at all",
            "[1, 2, 3]",
            '"LONG"',
            '{"action": "BUY", "confidence": 99}',
            '{"confidence": 99}',
            '{"action": null}',
        ],
    )
    def test_stay_with_zero_confidence(self, text: str) -> None:
        decision = parse_decision(text)
        assert decision.action is DecisionAction.STAY
        assert decision.confidence == 0


class TestCoercion:
    def test_confidence_clamped(self) -> None:
        assert parse_decision(_payload(confidence=150)).confidence == 100
        assert parse_decision(_payload(confidence=-5)).confidence == 0

    def test_confidence_garbage(self) -> None:
        assert parse_decision(_payload(confidence="very")).confidence == 0

    def test_risk_given_as_percent(self) -> None:
        assert parse_decision(_payload(riskPerTrade=2)).risk_per_trade == Decimal("0.02")

    def test_negative_risk_is_zero(self) -> None:
        assert parse_decision(_payload(riskPerTrade=-0.5)).risk_per_trade == Decimal("0")

    def test_bad_prices_are_zero(self) -> None:
        decision = parse_decision(_payload(stopLoss="n/a", takeProfit=True))
        assert decision.stop_loss == Decimal("0")
        assert decision.take_profit == Decimal("0")

    def test_round_trip_through_to_dict(self) -> None:
        original = parse_decision(_payload())
        again = parse_decision(json.dumps(original.to_dict()))
        assert again == original
