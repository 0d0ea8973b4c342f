"""Operator alert routing."""

from __future__ import annotations

from dataclasses import dataclass

from solbot.monitoring.notifier import Notifier


@dataclass
class Monitor:
    notifier: Notifier

    def price_fallback(self, reason: str) -> None:
        self.notifier.notify("PRICE_FALLBACK", f"Using synthetic prices: {reason}")

    def store_unavailable(self, user_id: str, reason: str) -> None:
        self.notifier.notify("STORE_UNAVAILABLE", f"{user_id}: {reason}")

    def scheduler_error(self, user_id: str, reason: str) -> None:
        self.notifier.notify("SCHEDULER_ERROR", f"{user_id}: {reason}")
