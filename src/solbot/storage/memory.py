"""Volatile in-process stores."""

from __future__ import annotations

import threading
from typing import Optional

from solbot.simulator.models import Balances, SessionRecord, Trade
from solbot.storage.base import PortfolioStore, SessionStore, TradeLedger


class MemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}

    def load(self, user_id: str) -> Optional[SessionRecord]:
        return self._records.get(user_id)

    def save(self, user_id: str, record: SessionRecord) -> None:
        self._records[user_id] = record

    def delete(self, user_id: str) -> None:
        self._records.pop(user_id, None)


class MemoryTradeLedger(TradeLedger):
    def __init__(self) -> None:
        self._trades: dict[str, list[Trade]] = {}
        self._lock = threading.Lock()

    def append(self, user_id: str, trade: Trade) -> None:
        with self._lock:
            trades = self._trades.setdefault(user_id, [])
            if any(existing.id == trade.id for existing in trades):
                return
            trades.append(trade)

    def list(self, user_id: str, limit: Optional[int] = None) -> list[Trade]:
        with self._lock:
            trades = list(reversed(self._trades.get(user_id, [])))
        if limit is not None:
            trades = trades[:limit]
        return trades

    def clear(self, user_id: str) -> None:
        with self._lock:
            self._trades.pop(user_id, None)


class MemoryPortfolioStore(PortfolioStore):
    def __init__(self) -> None:
        self._balances: dict[str, Balances] = {}

    def get(self, user_id: str) -> Optional[Balances]:
        return self._balances.get(user_id)

    def upsert(self, user_id: str, balances: Balances) -> None:
        self._balances[user_id] = balances

    def delete(self, user_id: str) -> None:
        self._balances.pop(user_id, None)
