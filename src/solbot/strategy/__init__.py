"""Trading rules."""

from solbot.strategy.threshold import (
    ThresholdParams,
    build_threshold_params,
    buy_size,
    evaluate_strategy,
    sell_size,
)

__all__ = [
    "ThresholdParams",
    "build_threshold_params",
    "buy_size",
    "evaluate_strategy",
    "sell_size",
]
