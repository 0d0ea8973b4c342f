"""Bounded random-walk price generator used when no market source answers."""

from __future__ import annotations

import random
from typing import Optional


class RandomWalkGenerator:
    name = "random_walk"

    def __init__(
        self,
        base_price: float = 150.0,
        min_price: float = 100.0,
        max_price: float = 200.0,
        max_step_pct: float = 3.0,
        seed: Optional[int] = None,
    ) -> None:
        if not 0 < min_price <= base_price <= max_price:
            raise ValueError("Expected 0 < min_price <= base_price <= max_price")
        if max_step_pct < 0:
            raise ValueError("max_step_pct must not be negative")
        self.base_price = base_price
        self.min_price = min_price
        self.max_price = max_price
        self.max_step_pct = max_step_pct
        self._rng = random.Random(seed)

    def next_price(self, previous: Optional[float] = None) -> float:
        anchor = previous if previous is not None and previous > 0 else self.base_price
        step = self._rng.uniform(-self.max_step_pct, self.max_step_pct)
        price = anchor * (1 + step / 100)
        return min(self.max_price, max(self.min_price, price))
