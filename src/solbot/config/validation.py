"""Validation of user-supplied start parameters."""

from __future__ import annotations

import math
from typing import Any

from solbot.simulator.models import SessionConfig

BASE58_ALPHABET = set("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")


class InvalidConfig(ValueError):
    pass


def _number(value: Any, key: str) -> float:
    if value is None or value == "":
        raise InvalidConfig(f"Missing required parameter: {key}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfig(f"{key} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidConfig(f"{key} must be finite")
    return number


def is_valid_token_address(address: str) -> bool:
    address = address.strip()
    return 32 <= len(address) <= 44 and set(address) <= BASE58_ALPHABET


def is_valid_wallet_key(key: str) -> bool:
    """Shape check only: a 12-24 word seed phrase or an encoded private key."""
    key = key.strip()
    if " " in key:
        return 12 <= len(key.split()) <= 24
    return 30 <= len(key) <= 200


def validate_start_params(
    wallet_key: Any,
    capital: Any,
    token_address: Any,
    risk_percent: Any,
    slippage_percent: Any,
) -> SessionConfig:
    if not wallet_key or not isinstance(wallet_key, str):
        raise InvalidConfig("Missing required parameter: key")
    if not token_address or not isinstance(token_address, str):
        raise InvalidConfig("Missing required parameter: address")

    capital_value = _number(capital, "capital")
    risk_value = _number(risk_percent, "risk_percent")
    slippage_value = _number(slippage_percent, "slippage_percent")

    if capital_value <= 0:
        raise InvalidConfig("capital must be positive")
    if not 0 < risk_value <= 100:
        raise InvalidConfig("risk_percent must be in (0, 100]")
    if not 0 <= slippage_value < 100:
        raise InvalidConfig("slippage_percent must be in [0, 100)")
    if not is_valid_wallet_key(wallet_key):
        raise InvalidConfig("Wallet key must be a 12-24 word seed phrase or an encoded private key")
    if not is_valid_token_address(token_address):
        raise InvalidConfig("Invalid token address format")

    return SessionConfig(
        capital=capital_value,
        risk_percent=risk_value,
        slippage_percent=slippage_value,
        running=False,
        token_address=token_address.strip(),
    )
