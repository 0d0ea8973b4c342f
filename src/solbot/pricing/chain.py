"""Ordered price providers with a synthetic fallback."""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from solbot.pricing.base import PriceQuote, PriceSource, PriceUnavailable
from solbot.pricing.random_walk import RandomWalkGenerator


class PriceChain:
    def __init__(
        self,
        providers: Sequence[PriceSource] = (),
        generator: Optional[RandomWalkGenerator] = None,
        timeout_seconds: float = 5.0,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
    ) -> None:
        self.providers = list(providers)
        self.generator = generator or RandomWalkGenerator()
        self.timeout_seconds = timeout_seconds
        self._audit_log = audit_log
        self._monitor = monitor

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    async def get_price(
        self,
        base_asset: str,
        quote_asset: str,
        previous: Optional[float] = None,
    ) -> PriceQuote:
        failures: list[str] = []
        for provider in self.providers:
            try:
                price = await asyncio.wait_for(
                    provider.get_price(base_asset, quote_asset),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                failures.append(f"{provider.name}: timed out after {self.timeout_seconds}s")
                continue
            except PriceUnavailable as exc:
                failures.append(f"{provider.name}: {exc}")
                continue
            return PriceQuote(price=price, source=provider.name)

        price = self.generator.next_price(previous)
        if self.providers:
            self._log("price_fallback", {"base_asset": base_asset, "failures": failures, "price": price})
            if self._monitor is not None:
                self._monitor.price_fallback("; ".join(failures))
        return PriceQuote(price=price, source=self.generator.name, fell_back=bool(self.providers))

    async def close(self) -> None:
        for provider in self.providers:
            await provider.close()
