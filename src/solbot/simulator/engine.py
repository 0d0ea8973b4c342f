"""Tick-driven portfolio simulator."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from solbot.execution.throttle import TradeThrottle
from solbot.pricing.base import SOL_MINT, USDC_MINT
from solbot.pricing.chain import PriceChain
from solbot.simulator.models import (
    MarketState,
    Side,
    TickResult,
    TickStatus,
    Trade,
    TradeIntent,
    TradingSession,
)
from solbot.simulator.portfolio import TradeRejected, apply_trade, trades_on_day
from solbot.strategy.threshold import ThresholdParams, buy_size, evaluate_strategy, sell_size


class PortfolioSimulator:
    def __init__(
        self,
        prices: PriceChain,
        params: Optional[ThresholdParams] = None,
        throttle: Optional[TradeThrottle] = None,
        quote_asset: str = USDC_MINT,
        default_base_asset: str = SOL_MINT,
        audit_log: Optional[object] = None,
    ) -> None:
        self.prices = prices
        self.params = params or ThresholdParams()
        self.throttle = throttle
        self.quote_asset = quote_asset
        self.default_base_asset = default_base_asset
        self._audit_log = audit_log

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    def base_asset_for(self, session: TradingSession) -> str:
        return session.config.token_address or self.default_base_asset

    async def refresh_market(self, session: TradingSession, now: Optional[datetime] = None) -> MarketState:
        """Fetch a price and build the next market state without touching the session."""
        now = now or datetime.now(timezone.utc)
        previous = session.market.last_price if session.market is not None else None
        quote = await self.prices.get_price(self.base_asset_for(session), self.quote_asset, previous=previous)
        change = 0.0
        if previous:
            change = (quote.price - previous) / previous * 100
        return MarketState(last_price=quote.price, percent_change=change, updated_at=now, source=quote.source)

    async def tick(self, session: TradingSession, now: Optional[datetime] = None) -> TickResult:
        if not session.running:
            return TickResult(TickStatus.PAUSED, market=session.market, balances=session.balances, reason="Session stopped")

        now = now or datetime.now(timezone.utc)
        if self.throttle is not None:
            decision = self.throttle.allow(
                session.last_trade_at,
                trades_today=trades_on_day(session.ledger, now.astimezone(timezone.utc).date()),
                now=now,
            )
            if not decision.allow:
                self._log("rate_limited", {"user_id": session.user_id, "reason": decision.reason})
                return TickResult(
                    TickStatus.RATE_LIMITED,
                    market=session.market,
                    balances=session.balances,
                    reason=decision.reason,
                )

        market = await self.refresh_market(session, now)
        balances = session.balances.revalue(market.last_price)
        intent = evaluate_strategy(market, balances, session.config.risk_percent, self.params)

        trade = None
        rejected_reason = None
        if intent is not None:
            try:
                trade, balances = apply_trade(
                    intent.side,
                    intent.base_amount,
                    market.last_price,
                    session.config.slippage_percent,
                    session.ledger,
                    balances,
                    occurred_at=now,
                )
            except TradeRejected as exc:
                rejected_reason = str(exc)
                self._log(
                    "trade_rejected",
                    {"user_id": session.user_id, "side": intent.side.value, "reason": rejected_reason},
                )

        session.market = market
        session.balances = balances
        if trade is not None:
            session.ledger.append(trade)
            session.last_trade_at = trade.occurred_at
            self._log_trade(session, trade)

        self._log(
            "tick",
            {
                "user_id": session.user_id,
                "price": market.last_price,
                "percent_change": market.percent_change,
                "source": market.source,
                "traded": trade is not None,
            },
        )
        return TickResult(
            TickStatus.OK,
            market=market,
            balances=balances,
            trade=trade,
            intent=intent,
            rejected_reason=rejected_reason,
            price_source=market.source,
            reason=intent.reason if intent is not None else "No signal",
        )

    async def manual_trade(
        self,
        session: TradingSession,
        side: Side,
        amount: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> TickResult:
        """Fill a user-requested trade at a fresh price.

        Raises ``TradeRejected`` when the fill cannot be applied; the session is
        left as it was in that case.
        """
        side = Side(side)
        if not session.running:
            return TickResult(TickStatus.PAUSED, market=session.market, balances=session.balances, reason="Session stopped")

        now = now or datetime.now(timezone.utc)
        market = await self.refresh_market(session, now)
        balances = session.balances.revalue(market.last_price)
        if amount is None:
            if side == Side.BUY:
                amount = buy_size(balances, market.last_price, session.config.risk_percent)
            else:
                amount = sell_size(balances, self.params)

        trade, balances = apply_trade(
            side,
            amount,
            market.last_price,
            session.config.slippage_percent,
            session.ledger,
            balances,
            occurred_at=now,
            origin="manual",
        )

        session.market = market
        session.balances = balances
        session.ledger.append(trade)
        session.last_trade_at = trade.occurred_at
        self._log_trade(session, trade)
        return TickResult(
            TickStatus.OK,
            market=market,
            balances=balances,
            trade=trade,
            intent=TradeIntent(side=side, base_amount=amount, reason="Manual"),
            price_source=market.source,
            reason="Manual",
        )

    def _log_trade(self, session: TradingSession, trade: Trade) -> None:
        self._log(
            "trade_executed",
            {
                "user_id": session.user_id,
                "trade_id": trade.id,
                "side": trade.side.value,
                "amount": trade.base_amount,
                "executed_price": trade.executed_price,
                "realized_pnl": trade.realized_pnl,
                "origin": trade.origin,
            },
        )
