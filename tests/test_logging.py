"""Tests for structlog setup.

Verifies:
- JSON rendering of structlog events with key/value context
- stdlib records (third-party libraries) share the same format
- Noisy HTTP client loggers are raised to WARNING
"""

import io
import json
import logging

import pytest
import structlog

from trader.logging import get_logger, setup_logging


@pytest.fixture
def json_stream():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    stream = io.StringIO()
    setup_logging("DEBUG", log_format="json", stream=stream)
    yield stream
    structlog.reset_defaults()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def _lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestSetupLogging:
    def test_structlog_event_as_json(self, json_stream: io.StringIO) -> None:
        get_logger("trader.test_events").info("position_closed", trade_id=3, net_pnl="9.92")

        (record,) = _lines(json_stream)
        assert record["event"] == "position_closed"
        assert record["trade_id"] == 3
        assert record["net_pnl"] == "9.92"
        assert record["level"] == "info"
        assert record["logger"] == "trader.test_events"
        assert "timestamp" in record

    def test_stdlib_records_share_format(self, json_stream: io.StringIO) -> None:
        logging.getLogger("ccxt.test").warning("rate limited")

        (record,) = _lines(json_stream)
        assert record["event"] == "rate limited"
        assert record["level"] == "warning"

    def test_noisy_loggers_quieted(self, json_stream: io.StringIO) -> None:
        assert logging.getLogger("httpx").level == logging.WARNING
        logging.getLogger("httpx").info("HTTP Request: POST ...")
        assert _lines(json_stream) == []

    def test_unknown_level_falls_back_to_info(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("LOUD", log_format="json", stream=io.StringIO())
            assert root.level == logging.INFO
        finally:
            structlog.reset_defaults()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
