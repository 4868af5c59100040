"""Decision oracle adapter.

Owns only marshalling: build the request, call the transport, parse the
answer. Any transport error or contract violation becomes the STAY default
so the decision loop always has a "do nothing" decision to apply.
"""

import asyncio
from dataclasses import replace
from decimal import Decimal

from trader.indicators.models import TimeframeIndicators
from trader.logging import get_logger
from trader.models import MarketSnapshot, TradeDecision
from trader.oracle.client import OracleClient
from trader.oracle.parser import parse_decision
from trader.oracle.request import ActivePositionSummary, DecisionRequest, build_prompt

logger = get_logger(__name__)


class DecisionOracle:
    """Turns market state into a TradeDecision via an OracleClient.

    Args:
        client: Transport to the decision model.
    """

    def __init__(self, client: OracleClient) -> None:
        self._client = client

    async def decide(
        self,
        indicators: dict[str, TimeframeIndicators],
        snapshot: MarketSnapshot,
        oi_history: list[Decimal],
        funding_history: list[Decimal],
        previous_decision: TradeDecision | None,
        recent_trades_summary: str,
        active_position: ActivePositionSummary | None,
    ) -> TradeDecision:
        """Ask the oracle for this cycle's decision. Never raises."""
        request = DecisionRequest(
            indicators=indicators,
            snapshot=snapshot,
            oi_history=oi_history,
            funding_history=funding_history,
            previous_decision=previous_decision,
            recent_trades_summary=recent_trades_summary,
            active_position=active_position,
        )

        try:
            prompt = build_prompt(request)
            text = await self._client.generate(prompt)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("oracle_request_failed", error=str(e))
            return TradeDecision.stay("Oracle error")

        decision = replace(parse_decision(text), raw_response=text)
        logger.info(
            "oracle_decision",
            action=decision.action.value,
            confidence=decision.confidence,
            strategy=decision.strategy_used,
        )
        return decision
