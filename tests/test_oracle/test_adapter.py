"""Tests for the decision oracle adapter and request serialization.

The oracle client is mocked; GeminiOracleClient itself is only checked for
its error translation.
"""

import json
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from trader.config import OracleSettings
from trader.exceptions import OracleError
from trader.indicators.models import TimeframeIndicators
from trader.models import DecisionAction, MarketSnapshot, TradeDecision
from trader.oracle.adapter import DecisionOracle
from trader.oracle.client import GeminiOracleClient
from trader.oracle.request import ActivePositionSummary, DecisionRequest, build_prompt

SNAPSHOT = MarketSnapshot(
    price=Decimal("50000"), funding_rate=Decimal("0.0001"), open_interest=Decimal("1000")
)


def _request(**overrides) -> DecisionRequest:
    fields = {
        "indicators": {"5m": TimeframeIndicators(current_price=Decimal("50000"))},
        "snapshot": SNAPSHOT,
        "oi_history": [Decimal("990"), Decimal("1000")],
        "funding_history": [Decimal("0.0001")],
        "previous_decision": None,
        "recent_trades_summary": "No recent closed trades.",
        "active_position": None,
    }
    fields.update(overrides)
    return DecisionRequest(**fields)


def _decide_kwargs() -> dict:
    request = _request()
    return {
        "indicators": request.indicators,
        "snapshot": request.snapshot,
        "oi_history": request.oi_history,
        "funding_history": request.funding_history,
        "previous_decision": request.previous_decision,
        "recent_trades_summary": request.recent_trades_summary,
        "active_position": request.active_position,
    }


class TestBuildPrompt:
    def test_payload_is_embedded_json(self) -> None:
        prompt = build_prompt(_request())
        start = prompt.index("### Market state (JSON)\n") + len("### Market state (JSON)\n")
        end = prompt.index("\n\n### Response format")
        payload = json.loads(prompt[start:end])

        assert payload["market"]["price"] == 50000.0
        assert payload["oiHistory"] == [990.0, 1000.0]
        assert payload["indicators"]["5m"]["currentPrice"] == 50000.0
        assert payload["activePosition"] is None
        assert "NO open position" in prompt

    def test_position_and_previous_decision(self) -> None:
        position = ActivePositionSummary(
            side="SHORT",
            entry_price=Decimal("51000"),
            size=Decimal("0.05"),
            leverage=10,
            pnl_percent=Decimal("19.6078"),
            stop_loss=Decimal("51500"),
        )
        previous = TradeDecision(action=DecisionAction.SHORT, reason="rejection", confidence=80)
        payload = _request(active_position=position, previous_decision=previous).to_payload()

        assert payload["activePosition"]["side"] == "SHORT"
        assert payload["activePosition"]["pnl_percent"] == "19.61"
        assert payload["activePosition"]["tp_price"] is None
        assert payload["previousDecision"]["action"] == "SHORT"


class TestDecisionOracle:
    @pytest.mark.asyncio
    async def test_parses_client_response(self) -> None:
        client = AsyncMock()
        client.generate.return_value = '{"action": "SHORT", "confidence": 77, "stopLoss": 50600}'
        oracle = DecisionOracle(client)

        decision = await oracle.decide(**_decide_kwargs())

        assert decision.action is DecisionAction.SHORT
        assert decision.confidence == 77
        prompt = client.generate.call_args.args[0]
        assert "Response format" in prompt

    @pytest.mark.asyncio
    async def test_client_error_returns_stay(self) -> None:
        client = AsyncMock()
        client.generate.side_effect = OracleError("quota exceeded")
        decision = await DecisionOracle(client).decide(**_decide_kwargs())
        assert decision.action is DecisionAction.STAY
        assert decision.confidence == 0
        assert decision.raw_response is None

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_stay(self) -> None:
        client = AsyncMock()
        client.generate.side_effect = RuntimeError("boom")
        decision = await DecisionOracle(client).decide(**_decide_kwargs())
        assert decision.action is DecisionAction.STAY

    @pytest.mark.asyncio
    async def test_garbage_response_returns_stay(self) -> None:
        client = AsyncMock()
        client.generate.return_value = "I think you should buy!"
        decision = await DecisionOracle(client).decide(**_decide_kwargs())
        assert decision.action is DecisionAction.STAY
        assert decision.raw_response == "I think you should buy!"


class TestGeminiOracleClient:
    def _client(self, generate: AsyncMock) -> GeminiOracleClient:
        sdk = MagicMock()
        sdk.aio.models.generate_content = generate
        with patch("trader.oracle.client.genai.Client", return_value=sdk):
            return GeminiOracleClient(OracleSettings(api_key="k", timeout_seconds=1))  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_returns_text(self) -> None:
        client = self._client(AsyncMock(return_value=MagicMock(text='{"action": "STAY"}')))
        assert await client.generate("prompt") == '{"action": "STAY"}'

    @pytest.mark.asyncio
    async def test_empty_text_raises(self) -> None:
        client = self._client(AsyncMock(return_value=MagicMock(text="")))
        with pytest.raises(OracleError):
            await client.generate("prompt")

    @pytest.mark.asyncio
    async def test_sdk_error_wrapped(self) -> None:
        client = self._client(AsyncMock(side_effect=ValueError("403")))
        with pytest.raises(OracleError, match="403"):
            await client.generate("prompt")
