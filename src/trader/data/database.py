"""Async SQLite database manager for the position ledger.

Uses aiosqlite for non-blocking database operations with WAL mode so a
second process (e.g. the admin API run separately) can read while the
engine writes.
"""

import os
from decimal import Decimal
from typing import Self

import aiosqlite

from trader.exceptions import PersistenceError
from trader.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS trades (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol TEXT NOT NULL,
    side TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'PRIMARY',
    entry_price TEXT NOT NULL,
    size TEXT NOT NULL,
    leverage INTEGER NOT NULL,
    stop_loss TEXT,
    take_profit TEXT,
    status TEXT NOT NULL DEFAULT 'OPEN',
    pnl TEXT,
    created_at REAL NOT NULL,
    closed_at REAL,
    close_reason TEXT
);

CREATE TABLE IF NOT EXISTS wallet (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    balance TEXT NOT NULL,
    updated_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS wallet_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp REAL NOT NULL,
    trade_id INTEGER NOT NULL,
    balance TEXT NOT NULL,
    price TEXT NOT NULL,
    pnl TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at REAL NOT NULL,
    type TEXT NOT NULL,
    message TEXT NOT NULL,
    ai_response TEXT,
    market_data TEXT
);
"""

_CREATE_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_trades_status
    ON trades(status, id);

CREATE INDEX IF NOT EXISTS idx_logs_type_created
    ON logs(type, created_at);
"""


class LedgerDatabase:
    """Async SQLite connection manager for trades, wallet and logs.

    Usage:
        async with LedgerDatabase("data/trader.db") as db:
            store = TradeStore(db)
    """

    def __init__(
        self, db_path: str = "data/trader.db", initial_balance: Decimal = Decimal("1000")
    ) -> None:
        self._db_path = db_path
        self._initial_balance = initial_balance
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises PersistenceError if not connected.
        """
        if self._connection is None:
            raise PersistenceError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open the connection, configure pragmas, create schema, seed the wallet."""
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        self._connection.row_factory = aiosqlite.Row

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")

        await self._create_tables()
        await self._ensure_schema_version()
        await self._ensure_wallet()

        logger.info("ledger_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("ledger_db_closed", db_path=self._db_path)

    async def _create_tables(self) -> None:
        assert self._connection is not None
        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.executescript(_CREATE_INDEXES_SQL)
        await self._connection.commit()

    async def _ensure_schema_version(self) -> None:
        assert self._connection is not None
        cursor = await self._connection.execute(
            "SELECT version FROM schema_version LIMIT 1"
        )
        row = await cursor.fetchone()
        if row is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            await self._connection.commit()

    async def _ensure_wallet(self) -> None:
        """Create the singleton wallet row with the initial balance if missing."""
        assert self._connection is not None
        cursor = await self._connection.execute(
            "INSERT OR IGNORE INTO wallet (id, balance, updated_at) "
            "VALUES (1, ?, strftime('%s', 'now'))",
            (str(self._initial_balance),),
        )
        await self._connection.commit()
        if cursor.rowcount:
            logger.info("wallet_created", balance=str(self._initial_balance))

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
