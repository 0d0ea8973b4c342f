"""Portfolio simulation."""

from solbot.simulator.models import (
    Balances,
    MarketState,
    SessionConfig,
    SessionRecord,
    Side,
    TickResult,
    TickStatus,
    Trade,
    TradeIntent,
    TradingSession,
    TradingStats,
)
from solbot.simulator.portfolio import (
    InsufficientFunds,
    InvalidTrade,
    TradeRejected,
    apply_trade,
    average_cost,
    compute_stats,
    executed_price_for,
    trades_on_day,
)

__all__ = [
    "Balances",
    "InsufficientFunds",
    "InvalidTrade",
    "MarketState",
    "SessionConfig",
    "SessionRecord",
    "Side",
    "TickResult",
    "TickStatus",
    "Trade",
    "TradeIntent",
    "TradeRejected",
    "TradingSession",
    "TradingStats",
    "apply_trade",
    "average_cost",
    "compute_stats",
    "executed_price_for",
    "trades_on_day",
]
