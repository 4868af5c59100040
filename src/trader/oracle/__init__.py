"""Decision oracle adapter: request marshalling and strict response parsing."""

from trader.oracle.adapter import DecisionOracle
from trader.oracle.client import GeminiOracleClient, OracleClient
from trader.oracle.parser import parse_decision
from trader.oracle.request import ActivePositionSummary, DecisionRequest, build_prompt

__all__ = [
    "ActivePositionSummary",
    "DecisionOracle",
    "DecisionRequest",
    "GeminiOracleClient",
    "OracleClient",
    "build_prompt",
    "parse_decision",
]
