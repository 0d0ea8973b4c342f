"""Threshold strategy over the tick-to-tick price change."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from solbot.simulator.models import Balances, MarketState, Side, TradeIntent


@dataclass(frozen=True)
class ThresholdParams:
    buy_threshold_pct: float = -1.5
    sell_threshold_pct: float = 2.0
    min_quote_amount: float = 10.0
    min_base_amount: float = 0.001
    sell_fraction: float = 0.3

    def __post_init__(self) -> None:
        if self.buy_threshold_pct >= self.sell_threshold_pct:
            raise ValueError("buy_threshold_pct must be below sell_threshold_pct")
        if not 0 < self.sell_fraction <= 1:
            raise ValueError("sell_fraction must be in (0, 1]")


def buy_size(balances: Balances, price: float, risk_percent: float) -> float:
    if price <= 0:
        return 0.0
    return balances.quote_amount * risk_percent / 100 / price


def sell_size(balances: Balances, params: ThresholdParams) -> float:
    return balances.base_amount * params.sell_fraction


def evaluate_strategy(
    market: MarketState,
    balances: Balances,
    risk_percent: float,
    params: Optional[ThresholdParams] = None,
) -> Optional[TradeIntent]:
    """Return at most one intent for this tick.

    BUY is checked before SELL and the first match wins, so a configuration
    with overlapping thresholds resolves to BUY.
    """
    params = params or ThresholdParams()

    if market.percent_change <= params.buy_threshold_pct and balances.quote_amount > params.min_quote_amount:
        amount = buy_size(balances, market.last_price, risk_percent)
        if amount > 0:
            return TradeIntent(
                side=Side.BUY,
                base_amount=amount,
                reason=f"Price down {market.percent_change:.2f}%",
            )

    if market.percent_change >= params.sell_threshold_pct and balances.base_amount > params.min_base_amount:
        amount = sell_size(balances, params)
        if amount > 0:
            return TradeIntent(
                side=Side.SELL,
                base_amount=amount,
                reason=f"Price up {market.percent_change:.2f}%",
            )

    return None


def build_threshold_params(parameters: dict[str, Any]) -> ThresholdParams:
    defaults = ThresholdParams()
    return ThresholdParams(
        buy_threshold_pct=float(parameters.get("buy_threshold_pct", defaults.buy_threshold_pct)),
        sell_threshold_pct=float(parameters.get("sell_threshold_pct", defaults.sell_threshold_pct)),
        min_quote_amount=float(parameters.get("min_quote_amount", defaults.min_quote_amount)),
        min_base_amount=float(parameters.get("min_base_amount", defaults.min_base_amount)),
        sell_fraction=float(parameters.get("sell_fraction", defaults.sell_fraction)),
    )
