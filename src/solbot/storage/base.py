"""Persistence interfaces for sessions, trades and balances."""

from __future__ import annotations

from typing import Optional

from solbot.simulator.models import Balances, SessionRecord, Trade


class StoreUnavailable(RuntimeError):
    """The backing store could not be read or written."""


class SessionStore:
    def load(self, user_id: str) -> Optional[SessionRecord]:  # pragma: no cover - interface
        raise NotImplementedError

    def save(self, user_id: str, record: SessionRecord) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def delete(self, user_id: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def close(self) -> None:
        return None


class TradeLedger:
    def append(self, user_id: str, trade: Trade) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def list(self, user_id: str, limit: Optional[int] = None) -> list[Trade]:  # pragma: no cover - interface
        """Trades for ``user_id``, most recent first."""
        raise NotImplementedError

    def clear(self, user_id: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def close(self) -> None:
        return None


class PortfolioStore:
    def get(self, user_id: str) -> Optional[Balances]:  # pragma: no cover - interface
        raise NotImplementedError

    def upsert(self, user_id: str, balances: Balances) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def delete(self, user_id: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def close(self) -> None:
        return None
