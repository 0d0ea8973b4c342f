"""Load and freeze configuration files."""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from solbot.config.models import (
    MarketConfig,
    PricingConfig,
    ProviderConfig,
    RandomWalkConfig,
    RuntimeConfig,
    SessionDefaults,
    SimulatorConfig,
    StrategyConfig,
    ThrottleConfig,
)
from solbot.config.validation import InvalidConfig

KNOWN_PROVIDERS = {"jupiter_price", "jupiter_quote"}


def load_config(path: str | Path) -> SimulatorConfig:
    path = Path(path)
    data = _load_yaml(path)

    name = _require(data, "name")
    version = str(_require(data, "version"))
    run_id_prefix = data.get("run_id_prefix", name)

    return SimulatorConfig(
        name=name,
        version=version,
        run_id_prefix=run_id_prefix,
        market=_parse_market(data.get("market", {})),
        pricing=_parse_pricing(data.get("pricing", {})),
        strategy=_parse_strategy(data.get("strategy", {})),
        throttle=_parse_throttle(data.get("throttle", {})),
        defaults=_parse_defaults(data.get("defaults", {})),
        runtime=_parse_runtime(data.get("runtime", {})),
    )


def compute_config_hash(path: str | Path) -> str:
    path = Path(path)
    content = path.read_bytes()
    return hashlib.sha256(content).hexdigest()


def freeze_config(path: str | Path, lock_path: Optional[str | Path] = None) -> Path:
    path = Path(path)
    config_hash = compute_config_hash(path)
    if lock_path is None:
        lock_path = path.with_suffix(path.suffix + ".lock.json")
    lock_path = Path(lock_path)

    payload = {
        "config_path": str(path),
        "config_hash": config_hash,
        "frozen_at_utc": datetime.now(timezone.utc).isoformat(),
    }
    lock_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return lock_path


def verify_config_lock(path: str | Path, lock_path: Optional[str | Path] = None) -> bool:
    path = Path(path)
    if lock_path is None:
        lock_path = path.with_suffix(path.suffix + ".lock.json")
    lock_path = Path(lock_path)
    if not lock_path.exists():
        return False
    payload = json.loads(lock_path.read_text(encoding="utf-8"))
    return payload.get("config_hash") == compute_config_hash(path)


def serialize_config(config: SimulatorConfig) -> dict[str, Any]:
    return asdict(config)


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise InvalidConfig("Config must be a mapping")
    return data


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise InvalidConfig(f"Missing required config key: {key}")
    return data[key]


def _parse_market(data: dict[str, Any]) -> MarketConfig:
    defaults = MarketConfig()
    return MarketConfig(
        base_asset=str(data.get("base_asset", defaults.base_asset)),
        quote_asset=str(data.get("quote_asset", defaults.quote_asset)),
        base_symbol=str(data.get("base_symbol", defaults.base_symbol)),
        quote_symbol=str(data.get("quote_symbol", defaults.quote_symbol)),
    )


def _parse_pricing(data: dict[str, Any]) -> PricingConfig:
    providers = []
    for entry in data.get("providers", []):
        name = str(_require(entry, "name"))
        if name not in KNOWN_PROVIDERS:
            raise InvalidConfig(f"Unknown price provider: {name}")
        options = {key: value for key, value in entry.items() if key not in {"name", "url"}}
        providers.append(ProviderConfig(name=name, url=entry.get("url"), options=options))

    fallback = data.get("fallback", {})
    seed = fallback.get("seed")
    random_walk = RandomWalkConfig(
        base_price=float(fallback.get("base_price", 150.0)),
        min_price=float(fallback.get("min_price", 100.0)),
        max_price=float(fallback.get("max_price", 200.0)),
        max_step_pct=float(fallback.get("max_step_pct", 3.0)),
        seed=int(seed) if seed is not None else None,
    )
    if not 0 < random_walk.min_price <= random_walk.base_price <= random_walk.max_price:
        raise InvalidConfig("Fallback prices must satisfy 0 < min_price <= base_price <= max_price")

    timeout = float(data.get("timeout_seconds", 5.0))
    if timeout <= 0:
        raise InvalidConfig("pricing.timeout_seconds must be positive")
    return PricingConfig(timeout_seconds=timeout, providers=providers, fallback=random_walk)


def _parse_strategy(data: dict[str, Any]) -> StrategyConfig:
    name = str(data.get("name", "threshold"))
    if name != "threshold":
        raise InvalidConfig(f"Unknown strategy: {name}")
    return StrategyConfig(name=name, parameters=dict(data.get("parameters", {})))


def _parse_throttle(data: dict[str, Any]) -> ThrottleConfig:
    return ThrottleConfig(
        cooldown_seconds=float(data.get("cooldown_seconds", 30.0)),
        max_trades_per_day=int(data.get("max_trades_per_day", 0)),
    )


def _parse_defaults(data: dict[str, Any]) -> SessionDefaults:
    return SessionDefaults(
        risk_percent=float(data.get("risk_percent", 10.0)),
        slippage_percent=float(data.get("slippage_percent", 1.0)),
    )


def _parse_runtime(data: dict[str, Any]) -> RuntimeConfig:
    interval = float(data.get("tick_interval_seconds", 10.0))
    if interval <= 0:
        raise InvalidConfig("runtime.tick_interval_seconds must be positive")
    return RuntimeConfig(
        tick_interval_seconds=interval,
        auto_tick=bool(data.get("auto_tick", True)),
        storage_path=str(data.get("storage_path", "runtime/solbot.db")),
        audit_log_path=str(data.get("audit_log_path", "runtime/audit.log")),
        status_dir=str(data.get("status_dir", "runtime/status")),
        trade_history_limit=int(data.get("trade_history_limit", 100)),
    )
