"""Ledger persistence layer: SQLite database manager and typed store."""

from trader.data.database import LedgerDatabase
from trader.data.store import TradeStore

__all__ = ["LedgerDatabase", "TradeStore"]
