"""Shared test fixtures for the perpetual futures decision trader."""

from decimal import Decimal

import pytest
import pytest_asyncio

from trader.config import AppSettings, DatabaseSettings, OracleSettings, TradingSettings
from trader.data.database import LedgerDatabase
from trader.data.store import TradeStore


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:
    """Return AppSettings with test defaults (temp database, dummy oracle key)."""
    return AppSettings(
        log_level="DEBUG",
        trading=TradingSettings(),
        oracle=OracleSettings(api_key="test-api-key"),  # type: ignore[arg-type]
        database=DatabaseSettings(path=str(tmp_path / "trader.db")),
    )


@pytest.fixture
def trading_settings() -> TradingSettings:
    return TradingSettings()


@pytest_asyncio.fixture
async def ledger(tmp_path):
    """A connected LedgerDatabase on a temp file with a 1000 USDT wallet."""
    database = LedgerDatabase(str(tmp_path / "ledger.db"), initial_balance=Decimal("1000"))
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def store(ledger: LedgerDatabase) -> TradeStore:
    return TradeStore(ledger)

