"""Session, trade and portfolio persistence."""

from solbot.storage.base import PortfolioStore, SessionStore, StoreUnavailable, TradeLedger
from solbot.storage.memory import MemoryPortfolioStore, MemorySessionStore, MemoryTradeLedger
from solbot.storage.sqlite import (
    SqliteDatabase,
    SqlitePortfolioStore,
    SqliteSessionStore,
    SqliteTradeLedger,
    open_sqlite_stores,
)

__all__ = [
    "MemoryPortfolioStore",
    "MemorySessionStore",
    "MemoryTradeLedger",
    "PortfolioStore",
    "SessionStore",
    "SqliteDatabase",
    "SqlitePortfolioStore",
    "SqliteSessionStore",
    "SqliteTradeLedger",
    "StoreUnavailable",
    "TradeLedger",
    "open_sqlite_stores",
]
