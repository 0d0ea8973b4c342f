"""Config loading, freezing and start-parameter validation."""

from solbot.config.loader import (
    compute_config_hash,
    freeze_config,
    load_config,
    serialize_config,
    verify_config_lock,
)
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
from solbot.config.validation import (
    InvalidConfig,
    is_valid_token_address,
    is_valid_wallet_key,
    validate_start_params,
)

__all__ = [
    "InvalidConfig",
    "MarketConfig",
    "PricingConfig",
    "ProviderConfig",
    "RandomWalkConfig",
    "RuntimeConfig",
    "SessionDefaults",
    "SimulatorConfig",
    "StrategyConfig",
    "ThrottleConfig",
    "compute_config_hash",
    "freeze_config",
    "is_valid_token_address",
    "is_valid_wallet_key",
    "load_config",
    "serialize_config",
    "validate_start_params",
    "verify_config_lock",
]
