"""Simulation data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"


class TickStatus(str, Enum):
    OK = "ok"
    PAUSED = "paused"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class Balances:
    quote_amount: float
    base_amount: float
    total_value: float

    @classmethod
    def at_price(cls, quote_amount: float, base_amount: float, price: float) -> "Balances":
        return cls(quote_amount, base_amount, quote_amount + base_amount * price)

    def revalue(self, price: float) -> "Balances":
        return Balances.at_price(self.quote_amount, self.base_amount, price)


@dataclass(frozen=True)
class MarketState:
    last_price: float
    percent_change: float
    updated_at: datetime
    source: str = "unknown"


@dataclass(frozen=True)
class Trade:
    id: str
    side: Side
    base_amount: float
    executed_price: float
    realized_pnl: float
    occurred_at: datetime
    reference_price: Optional[float] = None
    origin: str = "strategy"

    @property
    def notional(self) -> float:
        return self.base_amount * self.executed_price


@dataclass(frozen=True)
class TradingStats:
    total_trades: int = 0
    winning_trades: int = 0
    total_pnl: float = 0.0

    @property
    def win_rate(self) -> float:
        if self.total_trades == 0:
            return 0.0
        return self.winning_trades / self.total_trades


@dataclass(frozen=True)
class TradeIntent:
    side: Side
    base_amount: float
    reason: str


@dataclass(frozen=True)
class SessionConfig:
    capital: float
    risk_percent: float
    slippage_percent: float
    running: bool = False
    token_address: str = ""


@dataclass(frozen=True)
class SessionRecord:
    """What the session store keeps for one user besides balances and trades."""

    config: SessionConfig
    market: Optional[MarketState] = None
    last_trade_at: Optional[datetime] = None


@dataclass
class TradingSession:
    user_id: str
    config: SessionConfig
    balances: Balances
    market: Optional[MarketState] = None
    ledger: list[Trade] = field(default_factory=list)  # oldest first
    last_trade_at: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self.config.running

    def record(self) -> SessionRecord:
        return SessionRecord(config=self.config, market=self.market, last_trade_at=self.last_trade_at)


@dataclass(frozen=True)
class TickResult:
    status: TickStatus
    market: Optional[MarketState] = None
    balances: Optional[Balances] = None
    trade: Optional[Trade] = None
    intent: Optional[TradeIntent] = None
    rejected_reason: Optional[str] = None
    price_source: Optional[str] = None
    reason: str = ""
