"""Jupiter aggregator price sources.

Two public endpoints are used. The price API answers with a ready price per
token; the quote API is asked to swap a small probe amount and the price is
derived from the quoted output.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from solbot.pricing.base import PriceSource, PriceUnavailable

PRICE_API_URL = "https://api.jup.ag/price/v2"
QUOTE_API_URL = "https://quote-api.jup.ag/v6/quote"


class _HttpSource(PriceSource):
    def __init__(self, url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, params: dict[str, Any]) -> dict:
        client = await self._get_client()
        try:
            response = await client.get(self.url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise PriceUnavailable(f"{self.name} request failed: {exc}") from exc
        except ValueError as exc:
            raise PriceUnavailable(f"{self.name} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise PriceUnavailable(f"{self.name} returned unexpected payload")
        return data


class JupiterPriceSource(_HttpSource):
    name = "jupiter_price"

    def __init__(
        self,
        url: str = PRICE_API_URL,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(url, timeout=timeout, client=client)

    async def get_price(self, base_asset: str, quote_asset: str) -> float:
        data = await self._get_json({"ids": base_asset, "vsToken": quote_asset})
        entry = (data.get("data") or {}).get(base_asset)
        if not entry or entry.get("price") is None:
            raise PriceUnavailable(f"{self.name} has no price for {base_asset}")
        try:
            price = float(entry["price"])
        except (TypeError, ValueError) as exc:
            raise PriceUnavailable(f"{self.name} price is not numeric: {entry['price']!r}") from exc
        if price <= 0:
            raise PriceUnavailable(f"{self.name} returned non-positive price {price}")
        return price


class JupiterQuoteSource(_HttpSource):
    name = "jupiter_quote"

    def __init__(
        self,
        url: str = QUOTE_API_URL,
        timeout: float = 5.0,
        probe_amount: float = 0.01,
        base_decimals: int = 9,
        quote_decimals: int = 6,
        slippage_bps: int = 50,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(url, timeout=timeout, client=client)
        if probe_amount <= 0:
            raise ValueError("probe_amount must be positive")
        self.probe_amount = probe_amount
        self.base_decimals = base_decimals
        self.quote_decimals = quote_decimals
        self.slippage_bps = slippage_bps

    async def get_price(self, base_asset: str, quote_asset: str) -> float:
        amount = int(round(self.probe_amount * 10**self.base_decimals))
        data = await self._get_json(
            {
                "inputMint": base_asset,
                "outputMint": quote_asset,
                "amount": amount,
                "slippageBps": self.slippage_bps,
            }
        )
        out_amount = data.get("outAmount")
        if out_amount is None:
            raise PriceUnavailable(f"{self.name} response has no outAmount")
        try:
            received = int(out_amount) / 10**self.quote_decimals
        except (TypeError, ValueError) as exc:
            raise PriceUnavailable(f"{self.name} outAmount is not an integer: {out_amount!r}") from exc
        if received <= 0:
            raise PriceUnavailable(f"{self.name} quoted nothing for the probe amount")
        return received / self.probe_amount
