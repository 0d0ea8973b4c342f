"""SQLite-backed session, portfolio and trade stores."""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from solbot.simulator.models import Balances, MarketState, SessionConfig, SessionRecord, Side, Trade
from solbot.storage.base import PortfolioStore, SessionStore, StoreUnavailable, TradeLedger

T = TypeVar("T")

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS sessions (
        user_id TEXT PRIMARY KEY,
        config TEXT NOT NULL,
        market TEXT,
        last_trade_at TEXT,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS portfolio (
        user_id TEXT PRIMARY KEY,
        usdc_balance REAL NOT NULL,
        sol_balance REAL NOT NULL,
        total_value REAL NOT NULL,
        last_updated TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trades (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL UNIQUE,
        user_id TEXT NOT NULL,
        type TEXT NOT NULL,
        amount REAL NOT NULL,
        price REAL NOT NULL,
        pnl REAL NOT NULL,
        timestamp TEXT NOT NULL,
        reference_price REAL,
        origin TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS trades_user_seq ON trades (user_id, seq)",
)


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    if value.endswith("Z"):
        value = value.replace("Z", "+00:00")
    return datetime.fromisoformat(value)


def _serialize_dt(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


class SqliteDatabase:
    """One database file shared by the three stores, one connection per thread."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._lock = threading.Lock()
        self._connections: list[sqlite3.Connection] = []
        self.run(lambda conn: None)

    def _conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        with self._lock:
            if conn is not None and any(conn is open_conn for open_conn in self._connections):
                return conn
            conn = sqlite3.connect(self.path, check_same_thread=False)
            self._connections.append(conn)
        for statement in SCHEMA:
            conn.execute(statement)
        conn.commit()
        self._local.conn = conn
        return conn

    def run(self, work: Callable[[sqlite3.Connection], T]) -> T:
        try:
            conn = self._conn()
            result = work(conn)
            conn.commit()
            return result
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"sqlite store {self.path} failed: {exc}") from exc

    @property
    def open_connections(self) -> int:
        with self._lock:
            return len(self._connections)

    def close(self) -> None:
        """Close the connection of every thread that used this database."""
        with self._lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        self._local.conn = None


class SqliteSessionStore(SessionStore):
    def __init__(self, db: SqliteDatabase) -> None:
        self.db = db

    def load(self, user_id: str) -> Optional[SessionRecord]:
        row = self.db.run(
            lambda conn: conn.execute(
                "SELECT config, market, last_trade_at FROM sessions WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        )
        if not row:
            return None
        config = json.loads(row[0])
        market = json.loads(row[1]) if row[1] else None
        return SessionRecord(
            config=SessionConfig(
                capital=float(config["capital"]),
                risk_percent=float(config["risk_percent"]),
                slippage_percent=float(config["slippage_percent"]),
                running=bool(config.get("running", False)),
                token_address=str(config.get("token_address", "")),
            ),
            market=_market_from_payload(market) if market else None,
            last_trade_at=_parse_dt(row[2]),
        )

    def save(self, user_id: str, record: SessionRecord) -> None:
        config = {
            "capital": record.config.capital,
            "risk_percent": record.config.risk_percent,
            "slippage_percent": record.config.slippage_percent,
            "running": record.config.running,
            "token_address": record.config.token_address,
        }
        market = _market_payload(record.market) if record.market else None
        self.db.run(
            lambda conn: conn.execute(
                "INSERT INTO sessions (user_id, config, market, last_trade_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT (user_id) DO UPDATE SET "
                "config = excluded.config, market = excluded.market, "
                "last_trade_at = excluded.last_trade_at, updated_at = excluded.updated_at",
                (
                    user_id,
                    json.dumps(config),
                    json.dumps(market) if market else None,
                    _serialize_dt(record.last_trade_at),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
        )

    def delete(self, user_id: str) -> None:
        self.db.run(lambda conn: conn.execute("DELETE FROM sessions WHERE user_id = ?", (user_id,)))

    def close(self) -> None:
        self.db.close()


class SqliteTradeLedger(TradeLedger):
    def __init__(self, db: SqliteDatabase) -> None:
        self.db = db

    def append(self, user_id: str, trade: Trade) -> None:
        self.db.run(
            lambda conn: conn.execute(
                "INSERT OR IGNORE INTO trades "
                "(id, user_id, type, amount, price, pnl, timestamp, reference_price, origin) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    trade.id,
                    user_id,
                    trade.side.value,
                    trade.base_amount,
                    trade.executed_price,
                    trade.realized_pnl,
                    _serialize_dt(trade.occurred_at),
                    trade.reference_price,
                    trade.origin,
                ),
            )
        )

    def list(self, user_id: str, limit: Optional[int] = None) -> list[Trade]:
        query = (
            "SELECT id, type, amount, price, pnl, timestamp, reference_price, origin "
            "FROM trades WHERE user_id = ? ORDER BY seq DESC"
        )
        params: tuple[Any, ...] = (user_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (user_id, int(limit))
        rows = self.db.run(lambda conn: conn.execute(query, params).fetchall())
        trades: list[Trade] = []
        for row in rows:
            trades.append(
                Trade(
                    id=row[0],
                    side=Side(row[1]),
                    base_amount=float(row[2]),
                    executed_price=float(row[3]),
                    realized_pnl=float(row[4]),
                    occurred_at=_parse_dt(row[5]),
                    reference_price=float(row[6]) if row[6] is not None else None,
                    origin=row[7],
                )
            )
        return trades

    def clear(self, user_id: str) -> None:
        self.db.run(lambda conn: conn.execute("DELETE FROM trades WHERE user_id = ?", (user_id,)))

    def close(self) -> None:
        self.db.close()


class SqlitePortfolioStore(PortfolioStore):
    def __init__(self, db: SqliteDatabase) -> None:
        self.db = db

    def get(self, user_id: str) -> Optional[Balances]:
        row = self.db.run(
            lambda conn: conn.execute(
                "SELECT usdc_balance, sol_balance, total_value FROM portfolio WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        )
        if not row:
            return None
        return Balances(quote_amount=float(row[0]), base_amount=float(row[1]), total_value=float(row[2]))

    def upsert(self, user_id: str, balances: Balances) -> None:
        self.db.run(
            lambda conn: conn.execute(
                "INSERT INTO portfolio (user_id, usdc_balance, sol_balance, total_value, last_updated) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT (user_id) DO UPDATE SET "
                "usdc_balance = excluded.usdc_balance, sol_balance = excluded.sol_balance, "
                "total_value = excluded.total_value, last_updated = excluded.last_updated",
                (
                    user_id,
                    balances.quote_amount,
                    balances.base_amount,
                    balances.total_value,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
        )

    def delete(self, user_id: str) -> None:
        self.db.run(lambda conn: conn.execute("DELETE FROM portfolio WHERE user_id = ?", (user_id,)))

    def close(self) -> None:
        self.db.close()


def _market_payload(market: MarketState) -> dict:
    return {
        "last_price": market.last_price,
        "percent_change": market.percent_change,
        "updated_at": _serialize_dt(market.updated_at),
        "source": market.source,
    }


def _market_from_payload(payload: dict) -> MarketState:
    return MarketState(
        last_price=float(payload["last_price"]),
        percent_change=float(payload.get("percent_change", 0.0)),
        updated_at=_parse_dt(payload["updated_at"]),
        source=str(payload.get("source", "unknown")),
    )


def open_sqlite_stores(path: str | Path) -> tuple[SqliteSessionStore, SqliteTradeLedger, SqlitePortfolioStore]:
    db = SqliteDatabase(path)
    return SqliteSessionStore(db), SqliteTradeLedger(db), SqlitePortfolioStore(db)
