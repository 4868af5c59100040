"""Typed SQLite read/write abstraction for the position ledger.

TradeStore is the only code that touches SQL. It implements the table
contract both engine loops rely on:

- trades: insert, close-with-status-guard, update stop, select by status
- wallet: read balance, additive PnL application (inside the close)
- logs:   insert, select recent by type

CRITICAL: All monetary values stored as TEXT in SQLite, restored as Decimal on read.
"""

import asyncio
import json
import time
from decimal import Decimal

import aiosqlite

from trader.data.database import LedgerDatabase
from trader.logging import get_logger
from trader.models import (
    CloseReason,
    LegRole,
    LogEntry,
    LogType,
    PositionSide,
    PositionStatus,
    Trade,
)

logger = get_logger(__name__)


def _dec(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _row_to_trade(row: aiosqlite.Row) -> Trade:
    return Trade(
        id=row["id"],
        symbol=row["symbol"],
        side=PositionSide(row["side"]),
        role=LegRole(row["role"]),
        entry_price=Decimal(row["entry_price"]),
        size=Decimal(row["size"]),
        leverage=row["leverage"],
        stop_loss=_dec(row["stop_loss"]),
        take_profit=_dec(row["take_profit"]),
        status=PositionStatus(row["status"]),
        pnl=_dec(row["pnl"]),
        created_at=row["created_at"],
        closed_at=row["closed_at"],
        close_reason=CloseReason(row["close_reason"]) if row["close_reason"] else None,
    )


def _row_to_log(row: aiosqlite.Row) -> LogEntry:
    market_data = json.loads(row["market_data"]) if row["market_data"] else None
    return LogEntry(
        id=row["id"],
        created_at=row["created_at"],
        type=LogType(row["type"]),
        message=row["message"],
        ai_response=row["ai_response"],
        market_data=market_data,
    )


class TradeStore:
    """Async SQLite store for trades, the wallet and engine logs.

    Write transactions are serialized with an internal lock: aiosqlite shares
    one connection, so without it a commit issued by one coroutine could
    commit another coroutine's half-finished close.

    Usage:
        async with LedgerDatabase("data/trader.db") as database:
            store = TradeStore(database)
            trade = await store.insert_trade(...)
    """

    def __init__(self, database: LedgerDatabase) -> None:
        self._database = database
        self._write_lock = asyncio.Lock()

    # ──────────────────────────────────────────────
    # Trades
    # ──────────────────────────────────────────────

    async def insert_trade(
        self,
        symbol: str,
        side: PositionSide,
        entry_price: Decimal,
        size: Decimal,
        leverage: int,
        role: LegRole = LegRole.PRIMARY,
        stop_loss: Decimal | None = None,
        take_profit: Decimal | None = None,
    ) -> Trade:
        """Insert a new OPEN leg and return it with its assigned id."""
        created_at = time.time()
        async with self._write_lock:
            db = self._database.db
            try:
                cursor = await db.execute(
                    "INSERT INTO trades "
                    "(symbol, side, role, entry_price, size, leverage, "
                    "stop_loss, take_profit, status, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'OPEN', ?)",
                    (
                        symbol,
                        side.value,
                        role.value,
                        str(entry_price),
                        str(size),
                        leverage,
                        str(stop_loss) if stop_loss is not None else None,
                        str(take_profit) if take_profit is not None else None,
                        created_at,
                    ),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        trade_id = cursor.lastrowid
        assert trade_id is not None
        return Trade(
            id=trade_id,
            symbol=symbol,
            side=side,
            role=role,
            entry_price=entry_price,
            size=size,
            leverage=leverage,
            stop_loss=stop_loss,
            take_profit=take_profit,
            created_at=created_at,
        )

    async def get_trade(self, trade_id: int) -> Trade | None:
        cursor = await self._database.db.execute(
            "SELECT * FROM trades WHERE id = ?", (trade_id,)
        )
        row = await cursor.fetchone()
        return _row_to_trade(row) if row is not None else None

    async def get_trades_by_status(self, status: PositionStatus) -> list[Trade]:
        """All legs with the given status, in opening order."""
        cursor = await self._database.db.execute(
            "SELECT * FROM trades WHERE status = ? ORDER BY id ASC", (status.value,)
        )
        rows = await cursor.fetchall()
        return [_row_to_trade(row) for row in rows]

    async def get_recent_closed_trades(self, limit: int = 5) -> list[Trade]:
        """Most recently closed legs, newest first."""
        cursor = await self._database.db.execute(
            "SELECT * FROM trades WHERE status = 'CLOSED' "
            "ORDER BY closed_at DESC, id DESC LIMIT ?",
            (limit,),
        )
        rows = await cursor.fetchall()
        return [_row_to_trade(row) for row in rows]

    async def update_stop_loss(self, trade_id: int, stop_loss: Decimal) -> bool:
        """Move the stop of an OPEN leg. Returns False if the leg is not OPEN."""
        async with self._write_lock:
            db = self._database.db
            try:
                cursor = await db.execute(
                    "UPDATE trades SET stop_loss = ? WHERE id = ? AND status = 'OPEN'",
                    (str(stop_loss), trade_id),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return cursor.rowcount > 0

    async def close_trade(
        self,
        trade_id: int,
        pnl: Decimal,
        exit_price: Decimal,
        reason: CloseReason,
        closed_at: float | None = None,
    ) -> Decimal | None:
        """Close an OPEN leg and apply its PnL to the wallet in one transaction.

        The trade update is predicated on ``status = 'OPEN'``; if no row
        matches (already closed by the other loop, or unknown id) nothing is
        written and None is returned. Otherwise the wallet balance is
        re-read inside the transaction, incremented by ``pnl`` and a
        wallet_history row is appended.

        Returns:
            The new wallet balance, or None if the leg was not OPEN.

        Raises:
            Exception: Any database error, after rolling back. The leg stays
                OPEN so the next monitor tick or decision can retry.
        """
        closed_at = closed_at if closed_at is not None else time.time()
        async with self._write_lock:
            db = self._database.db
            try:
                cursor = await db.execute(
                    "UPDATE trades SET status = 'CLOSED', pnl = ?, closed_at = ?, "
                    "close_reason = ? WHERE id = ? AND status = 'OPEN'",
                    (str(pnl), closed_at, reason.value, trade_id),
                )
                if cursor.rowcount == 0:
                    await db.rollback()
                    logger.info("close_skipped_not_open", trade_id=trade_id)
                    return None

                cursor = await db.execute("SELECT balance FROM wallet WHERE id = 1")
                row = await cursor.fetchone()
                balance = Decimal(row["balance"]) if row is not None else Decimal("0")
                new_balance = balance + pnl

                await db.execute(
                    "INSERT OR REPLACE INTO wallet (id, balance, updated_at) "
                    "VALUES (1, ?, ?)",
                    (str(new_balance), closed_at),
                )
                await db.execute(
                    "INSERT INTO wallet_history "
                    "(timestamp, trade_id, balance, price, pnl) VALUES (?, ?, ?, ?, ?)",
                    (closed_at, trade_id, str(new_balance), str(exit_price), str(pnl)),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        return new_balance

    # ──────────────────────────────────────────────
    # Wallet
    # ──────────────────────────────────────────────

    async def get_wallet_balance(self) -> Decimal:
        cursor = await self._database.db.execute("SELECT balance FROM wallet WHERE id = 1")
        row = await cursor.fetchone()
        return Decimal(row["balance"]) if row is not None else Decimal("0")

    async def get_wallet_history(self, limit: int = 100) -> list[dict]:
        """Balance snapshots after each close, oldest first."""
        cursor = await self._database.db.execute(
            "SELECT * FROM (SELECT * FROM wallet_history ORDER BY id DESC LIMIT ?) "
            "ORDER BY id ASC",
            (limit,),
        )
        rows = await cursor.fetchall()
        return [
            {
                "timestamp": row["timestamp"],
                "trade_id": row["trade_id"],
                "balance": Decimal(row["balance"]),
                "price": Decimal(row["price"]),
                "pnl": Decimal(row["pnl"]),
            }
            for row in rows
        ]

    # ──────────────────────────────────────────────
    # Logs
    # ──────────────────────────────────────────────

    async def insert_log(self, entry: LogEntry) -> int:
        """Append a log entry and return its id."""
        market_data = json.dumps(entry.market_data) if entry.market_data is not None else None
        async with self._write_lock:
            db = self._database.db
            try:
                cursor = await db.execute(
                    "INSERT INTO logs (created_at, type, message, ai_response, market_data) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        entry.created_at,
                        entry.type.value,
                        entry.message,
                        entry.ai_response,
                        market_data,
                    ),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        entry.id = cursor.lastrowid
        return cursor.lastrowid or 0

    async def get_recent_logs(self, log_type: LogType | None = None, limit: int = 6) -> list[LogEntry]:
        """Most recent log entries, newest first, optionally filtered by type."""
        if log_type is None:
            cursor = await self._database.db.execute(
                "SELECT * FROM logs ORDER BY created_at DESC, id DESC LIMIT ?", (limit,)
            )
        else:
            cursor = await self._database.db.execute(
                "SELECT * FROM logs WHERE type = ? ORDER BY created_at DESC, id DESC LIMIT ?",
                (log_type.value, limit),
            )
        rows = await cursor.fetchall()
        return [_row_to_log(row) for row in rows]
