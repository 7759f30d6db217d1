"""DeFi Llama coins API price client.

Endpoint:
  GET https://coins.llama.fi/prices/current/{chain}:{address},{chain}:{address}...

The payload has a top-level "coins" mapping keyed by "{chain}:{address}" with
objects carrying `price`, `symbol`, `decimals` and `timestamp`.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable

import httpx

from teller_yields.core.config import settings
from teller_yields.models.pool import PriceMap

logger = logging.getLogger(__name__)


def _to_price(value: Any) -> float | None:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price < 0:
        return None
    return price


class CoinsPriceClient:
    """Async client for current USD token prices."""

    # Keep URLs well under common proxy limits.
    CHUNK_SIZE = 50

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.COINS_API_URL).rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds or settings.HTTP_TIMEOUT_SECONDS)
        self._transport = transport

    async def get_prices(self, addresses: Iterable[str], network: str) -> PriceMap:
        """Return lowercase address -> USD price.

        Tokens the API doesn't know are simply absent from the result.

        Raises:
            httpx.HTTPStatusError: If the endpoint returns a non-success status.
            httpx.RequestError: For network errors.
        """
        unique = sorted({a.lower() for a in addresses if a})
        prices: PriceMap = {}
        if not unique:
            return prices

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for i in range(0, len(unique), self.CHUNK_SIZE):
                chunk = unique[i : i + self.CHUNK_SIZE]
                coins = ",".join(f"{network}:{a}" for a in chunk)
                response = await client.get(f"{self.base_url}/prices/current/{coins}")
                response.raise_for_status()
                payload = response.json() or {}

                for key, item in (payload.get("coins") or {}).items():
                    if not isinstance(item, dict):
                        continue
                    address = str(key).split(":")[-1].lower()
                    price = _to_price(item.get("price"))
                    if price is not None:
                        prices[address] = price

        missing = len(unique) - len(prices)
        if missing:
            logger.warning(f"No price for {missing}/{len(unique)} tokens on {network}")
        return prices


async def resolve_prices(addresses: Iterable[str], network: str, client: CoinsPriceClient | None = None) -> PriceMap:
    """Batch price lookup; missing prices read as 0 downstream."""
    return await (client or CoinsPriceClient()).get_prices(addresses, network)
