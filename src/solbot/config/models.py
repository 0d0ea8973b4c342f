"""Configuration models for simulator runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from solbot.pricing.base import SOL_MINT, USDC_MINT


@dataclass(frozen=True)
class MarketConfig:
    base_asset: str = SOL_MINT
    quote_asset: str = USDC_MINT
    base_symbol: str = "SOL"
    quote_symbol: str = "USDC"


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    url: Optional[str] = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RandomWalkConfig:
    base_price: float = 150.0
    min_price: float = 100.0
    max_price: float = 200.0
    max_step_pct: float = 3.0
    seed: Optional[int] = None


@dataclass(frozen=True)
class PricingConfig:
    timeout_seconds: float = 5.0
    providers: list[ProviderConfig] = field(default_factory=list)
    fallback: RandomWalkConfig = RandomWalkConfig()


@dataclass(frozen=True)
class StrategyConfig:
    name: str = "threshold"
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ThrottleConfig:
    cooldown_seconds: float = 30.0
    max_trades_per_day: int = 0


@dataclass(frozen=True)
class SessionDefaults:
    risk_percent: float = 10.0
    slippage_percent: float = 1.0


@dataclass(frozen=True)
class RuntimeConfig:
    tick_interval_seconds: float = 10.0
    auto_tick: bool = True
    storage_path: str = "runtime/solbot.db"
    audit_log_path: str = "runtime/audit.log"
    status_dir: str = "runtime/status"
    trade_history_limit: int = 100


@dataclass(frozen=True)
class SimulatorConfig:
    name: str
    version: str
    run_id_prefix: str
    market: MarketConfig = MarketConfig()
    pricing: PricingConfig = PricingConfig()
    strategy: StrategyConfig = StrategyConfig()
    throttle: ThrottleConfig = ThrottleConfig()
    defaults: SessionDefaults = SessionDefaults()
    runtime: RuntimeConfig = RuntimeConfig()
