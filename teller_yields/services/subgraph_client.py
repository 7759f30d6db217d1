"""Teller lender-group subgraph client.

Fetches `groupPoolMetrics` entities from a Teller subgraph deployment and
parses them into `RawPoolMetrics`.

Historical queries pin the subgraph to a block. The block for a timestamp
comes from the DeFi Llama coins API; without a timestamp the subgraph's own
indexed head (`_meta`) is used. Either way the query runs `BLOCK_LAG` blocks
behind so a lagging indexer doesn't serve a partially indexed block.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from teller_yields.core.config import settings
from teller_yields.models.pool import RawPoolMetrics

logger = logging.getLogger(__name__)


POOL_METRICS_QUERY = """
query GetPoolMetrics($block: Block_height) {
  groupPoolMetrics(first: 1000, block: $block) {
    id
    group_pool_address
    principal_token_address
    collateral_token_address
    shares_token_address
    market_id
    total_principal_tokens_committed
    total_principal_tokens_withdrawn
    total_principal_tokens_borrowed
    total_interest_collected
    token_difference_from_liquidations
    total_principal_tokens_repaid
    total_collateral_tokens_escrowed
    total_collateral_withdrawn
    interest_rate_upper_bound
    interest_rate_lower_bound
    liquidity_threshold_percent
    collateral_ratio
  }
}
"""

META_BLOCK_QUERY = """
query GetIndexedBlock {
  _meta {
    block {
      number
    }
  }
}
"""


class SubgraphQueryError(RuntimeError):
    """Raised when a GraphQL response carries an `errors` payload."""


def parse_pool_metrics(items: list[Any]) -> list[RawPoolMetrics]:
    """Parse subgraph entities, skipping (and logging) malformed ones."""
    out: list[RawPoolMetrics] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            out.append(RawPoolMetrics.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed pool {item.get('group_pool_address')}: {e.error_count()} errors")
    return out


class TellerSubgraphClient:
    """Async client for one Teller subgraph deployment."""

    def __init__(
        self,
        url: str,
        *,
        coins_api_url: str | None = None,
        block_lag: int | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a new client.

        Args:
            url: Full subgraph query URL.
            coins_api_url: DeFi Llama coins API base (block-by-timestamp lookups).
            block_lag: Blocks to stay behind the resolved block.
            timeout_seconds: Request timeout.
            transport: Optional httpx transport override (used for unit tests).
        """
        self.url = url
        self.coins_api_url = (coins_api_url or settings.COINS_API_URL).rstrip("/")
        self.block_lag = settings.BLOCK_LAG if block_lag is None else block_lag
        self._timeout = httpx.Timeout(timeout_seconds or settings.HTTP_TIMEOUT_SECONDS)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _graphql(
        self,
        client: httpx.AsyncClient,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = await client.post(self.url, json={"query": query, "variables": variables or {}})
        response.raise_for_status()
        payload = response.json() or {}
        if payload.get("errors"):
            messages = "; ".join(str(e.get("message", e)) for e in payload["errors"] if e)
            raise SubgraphQueryError(messages or "unknown subgraph error")
        return payload.get("data") or {}

    async def resolve_block(self, client: httpx.AsyncClient, network: str, timestamp: int | None) -> int | None:
        """Return the block to query, already shifted back by `block_lag`.

        Returns None when no block can be determined; callers then query the
        latest indexed state.
        """
        block: int | None = None
        if timestamp is not None:
            response = await client.get(f"{self.coins_api_url}/block/{network}/{int(timestamp)}")
            response.raise_for_status()
            height = (response.json() or {}).get("height")
            block = int(height) if height is not None else None
        else:
            data = await self._graphql(client, META_BLOCK_QUERY)
            number = ((data.get("_meta") or {}).get("block") or {}).get("number")
            block = int(number) if number is not None else None

        if block is None:
            logger.warning(f"Could not resolve a block for {network} (timestamp={timestamp}); querying latest")
            return None
        return block - self.block_lag

    async def fetch_raw_pool_metrics(self, network: str, timestamp: int | None = None) -> list[RawPoolMetrics]:
        """Fetch every lender group's metrics at (roughly) `timestamp`.

        Raises:
            httpx.HTTPStatusError: If an endpoint returns a non-success status.
            httpx.RequestError: For network errors.
            SubgraphQueryError: If the subgraph rejects the query.
        """
        async with self._client() as client:
            block = await self.resolve_block(client, network, timestamp)
            variables = {"block": {"number": block} if block is not None else None}
            data = await self._graphql(client, POOL_METRICS_QUERY, variables)

        items = data.get("groupPoolMetrics") or []
        if not isinstance(items, list):
            return []
        pools = parse_pool_metrics(items)
        logger.info(f"Fetched {len(pools)} Teller pools on {network} at block {block}")
        return pools
