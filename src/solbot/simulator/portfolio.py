"""Deterministic trade application against a balance pair."""

from __future__ import annotations

import math
import uuid
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence

from solbot.simulator.models import Balances, Side, Trade, TradingStats


class TradeRejected(ValueError):
    """Trade could not be applied; balances were left untouched."""


class InvalidTrade(TradeRejected):
    pass


class InsufficientFunds(TradeRejected):
    pass


def executed_price_for(side: Side, reference_price: float, slippage_percent: float) -> float:
    if side == Side.BUY:
        return reference_price * (1 + slippage_percent / 100)
    return reference_price * (1 - slippage_percent / 100)


def average_cost(ledger: Iterable[Trade]) -> Optional[float]:
    total_amount = 0.0
    total_cost = 0.0
    for trade in ledger:
        if trade.side != Side.BUY:
            continue
        total_amount += trade.base_amount
        total_cost += trade.base_amount * trade.executed_price
    if total_amount <= 0:
        return None
    return total_cost / total_amount


def apply_trade(
    side: Side,
    amount: float,
    reference_price: float,
    slippage_percent: float,
    ledger: Sequence[Trade],
    balances: Balances,
    *,
    occurred_at: Optional[datetime] = None,
    trade_id: Optional[str] = None,
    origin: str = "strategy",
) -> tuple[Trade, Balances]:
    """Apply one simulated fill and return the new trade and balances.

    Neither ``ledger`` nor ``balances`` is modified; the caller appends the
    returned trade. BUY fills at ``reference_price`` marked up by the
    slippage, SELL fills marked down. SELL realises PnL against the
    volume-weighted average BUY price of the whole ledger.

    Raises ``InvalidTrade`` for a non-finite or non-positive amount or price and
    ``InsufficientFunds`` when the balance on the paying side is too small.
    """
    side = Side(side)
    if not math.isfinite(amount) or not amount > 0:
        raise InvalidTrade(f"Trade amount must be finite and positive, got {amount}")
    if not math.isfinite(reference_price) or not reference_price > 0:
        raise InvalidTrade(f"Reference price must be finite and positive, got {reference_price}")
    if not math.isfinite(slippage_percent) or not slippage_percent >= 0:
        raise InvalidTrade(f"Slippage must be a finite non-negative percent, got {slippage_percent}")

    executed_price = executed_price_for(side, reference_price, slippage_percent)
    if not executed_price > 0:
        raise InvalidTrade(f"Slippage {slippage_percent}% leaves no positive execution price")

    if side == Side.BUY:
        cost = amount * executed_price
        if cost > balances.quote_amount:
            raise InsufficientFunds(
                f"BUY needs {cost:.6f} quote, only {balances.quote_amount:.6f} available"
            )
        quote_amount = max(0.0, balances.quote_amount - cost)
        base_amount = balances.base_amount + amount
        realized_pnl = 0.0
    else:
        if amount > balances.base_amount:
            raise InsufficientFunds(
                f"SELL needs {amount:.6f} base, only {balances.base_amount:.6f} available"
            )
        quote_amount = balances.quote_amount + amount * executed_price
        base_amount = max(0.0, balances.base_amount - amount)
        entry = average_cost(ledger)
        realized_pnl = 0.0 if entry is None else (executed_price - entry) * amount

    trade = Trade(
        id=trade_id or uuid.uuid4().hex,
        side=side,
        base_amount=amount,
        executed_price=executed_price,
        realized_pnl=realized_pnl,
        occurred_at=occurred_at or datetime.now(timezone.utc),
        reference_price=reference_price,
        origin=origin,
    )
    return trade, Balances.at_price(quote_amount, base_amount, reference_price)


def compute_stats(ledger: Iterable[Trade]) -> TradingStats:
    total = 0
    wins = 0
    pnl = 0.0
    for trade in ledger:
        total += 1
        pnl += trade.realized_pnl
        if trade.realized_pnl > 0:
            wins += 1
    return TradingStats(total_trades=total, winning_trades=wins, total_pnl=pnl)


def trades_on_day(ledger: Iterable[Trade], day: date) -> int:
    return sum(1 for trade in ledger if trade.occurred_at.astimezone(timezone.utc).date() == day)
