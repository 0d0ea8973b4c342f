"""Wire a TradingService from a loaded config."""

from __future__ import annotations

from typing import Optional

from solbot.config.models import PricingConfig, ProviderConfig, SimulatorConfig
from solbot.execution.throttle import TradeThrottle
from solbot.pricing.base import PriceSource
from solbot.pricing.chain import PriceChain
from solbot.pricing.jupiter import JupiterPriceSource, JupiterQuoteSource
from solbot.pricing.random_walk import RandomWalkGenerator
from solbot.runtime.service import TradingService
from solbot.simulator.engine import PortfolioSimulator
from solbot.storage.base import PortfolioStore, SessionStore, TradeLedger
from solbot.storage.sqlite import open_sqlite_stores
from solbot.strategy.threshold import build_threshold_params


def build_provider(config: ProviderConfig, timeout: float) -> PriceSource:
    options = dict(config.options)
    if config.url:
        options["url"] = config.url
    if config.name == "jupiter_price":
        return JupiterPriceSource(timeout=timeout, **options)
    if config.name == "jupiter_quote":
        return JupiterQuoteSource(timeout=timeout, **options)
    raise ValueError(f"Unknown price provider: {config.name}")


def build_price_chain(
    config: PricingConfig,
    audit_log: Optional[object] = None,
    monitor: Optional[object] = None,
) -> PriceChain:
    fallback = config.fallback
    generator = RandomWalkGenerator(
        base_price=fallback.base_price,
        min_price=fallback.min_price,
        max_price=fallback.max_price,
        max_step_pct=fallback.max_step_pct,
        seed=fallback.seed,
    )
    providers = [build_provider(provider, config.timeout_seconds) for provider in config.providers]
    return PriceChain(
        providers,
        generator=generator,
        timeout_seconds=config.timeout_seconds,
        audit_log=audit_log,
        monitor=monitor,
    )


def build_service(
    config: SimulatorConfig,
    audit_log: Optional[object] = None,
    monitor: Optional[object] = None,
    stores: Optional[tuple[SessionStore, TradeLedger, PortfolioStore]] = None,
    prices: Optional[PriceChain] = None,
) -> TradingService:
    if stores is None:
        stores = open_sqlite_stores(config.runtime.storage_path)
    session_store, ledger, portfolio_store = stores

    simulator = PortfolioSimulator(
        prices or build_price_chain(config.pricing, audit_log=audit_log, monitor=monitor),
        params=build_threshold_params(config.strategy.parameters),
        throttle=TradeThrottle(
            cooldown_seconds=config.throttle.cooldown_seconds,
            max_trades_per_day=config.throttle.max_trades_per_day,
        ),
        quote_asset=config.market.quote_asset,
        default_base_asset=config.market.base_asset,
        audit_log=audit_log,
    )
    return TradingService(
        simulator,
        session_store,
        ledger,
        portfolio_store,
        defaults=config.defaults,
        tick_interval_seconds=config.runtime.tick_interval_seconds,
        auto_tick=config.runtime.auto_tick,
        trade_history_limit=config.runtime.trade_history_limit,
        audit_log=audit_log,
        monitor=monitor,
    )
