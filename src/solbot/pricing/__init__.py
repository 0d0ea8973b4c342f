"""Price sources and fallback chain."""

from solbot.pricing.base import SOL_MINT, USDC_MINT, PriceQuote, PriceSource, PriceUnavailable
from solbot.pricing.chain import PriceChain
from solbot.pricing.jupiter import JupiterPriceSource, JupiterQuoteSource
from solbot.pricing.random_walk import RandomWalkGenerator

__all__ = [
    "JupiterPriceSource",
    "JupiterQuoteSource",
    "PriceChain",
    "PriceQuote",
    "PriceSource",
    "PriceUnavailable",
    "RandomWalkGenerator",
    "SOL_MINT",
    "USDC_MINT",
]
