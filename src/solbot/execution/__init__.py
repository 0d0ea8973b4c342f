"""Execution guards."""

from solbot.execution.throttle import ThrottleDecision, TradeThrottle

__all__ = [
    "ThrottleDecision",
    "TradeThrottle",
]
