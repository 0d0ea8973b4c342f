"""Price source interface."""

from __future__ import annotations

from dataclasses import dataclass

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class PriceUnavailable(RuntimeError):
    """A price source could not produce a usable price."""


@dataclass(frozen=True)
class PriceQuote:
    price: float
    source: str
    fell_back: bool = False


class PriceSource:
    name: str = "source"

    async def get_price(self, base_asset: str, quote_asset: str) -> float:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:
        return None
