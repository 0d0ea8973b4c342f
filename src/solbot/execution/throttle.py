"""Trade throttling: cooldown after a fill and a daily trade cap."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class ThrottleDecision:
    allow: bool
    reason: str


class TradeThrottle:
    def __init__(self, cooldown_seconds: float = 30.0, max_trades_per_day: int = 0) -> None:
        self.cooldown_seconds = cooldown_seconds
        self.max_trades_per_day = max_trades_per_day

    def allow(
        self,
        last_trade_at: Optional[datetime],
        trades_today: int = 0,
        now: Optional[datetime] = None,
    ) -> ThrottleDecision:
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        if self.max_trades_per_day > 0 and trades_today >= self.max_trades_per_day:
            return ThrottleDecision(False, "Daily trade cap reached")

        if self.cooldown_seconds > 0 and last_trade_at is not None:
            if last_trade_at.tzinfo is None:
                last_trade_at = last_trade_at.replace(tzinfo=timezone.utc)
            elapsed = (now - last_trade_at).total_seconds()
            if elapsed < self.cooldown_seconds:
                wait = self.cooldown_seconds - elapsed
                return ThrottleDecision(False, f"Cooldown active, {wait:.0f}s remaining")

        return ThrottleDecision(True, "Allowed")
