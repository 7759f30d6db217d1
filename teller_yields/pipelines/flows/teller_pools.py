"""Prefect flow: Teller lender-group yields in DeFi Llama's pool format.

This module implements:
- Fetch raw lender-group counters from each configured Teller subgraph
- Resolve token metadata and USD prices once per network batch
- Derive TVL, supply/borrow APY and LTV per pool
- Emit a lending row and a collateral row per pool, dropping non-finite rows

Networks are processed one after another. A network that fails (subgraph,
metadata or price errors) is logged and contributes no rows; the others are
unaffected.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Awaitable, Callable, Iterable, Sequence

from prefect import flow, get_run_logger, task
from prefect.exceptions import MissingContextError

from teller_yields.core.config import settings
from teller_yields.models.pool import PositionRecord, PriceMap, RawPoolMetrics, TokenContext
from teller_yields.pipelines.enrich import enrich_pool
from teller_yields.pipelines.project import project_pool
from teller_yields.services.price_client import resolve_prices
from teller_yields.services.subgraph_client import TellerSubgraphClient
from teller_yields.services.token_metadata import resolve_token_context

TokenResolver = Callable[[Iterable[str], str], Awaitable[TokenContext]]
PriceResolver = Callable[[Iterable[str], str], Awaitable[PriceMap]]
PoolFetcher = Callable[[str, int | None], Awaitable[Sequence[RawPoolMetrics]]]
NetworkRunner = Callable[[str, Sequence[RawPoolMetrics]], Awaitable[list[PositionRecord]]]


def _get_logger() -> logging.Logger:
    """Return a logger usable both inside and outside Prefect contexts."""
    try:
        return get_run_logger()  # type: ignore[return-value]
    except MissingContextError:
        return logging.getLogger(__name__)


def collect_token_addresses(raw_pools: Iterable[RawPoolMetrics]) -> set[str]:
    """Distinct lowercase principal and collateral token addresses."""
    addresses: set[str] = set()
    for pool in raw_pools:
        addresses.add(pool.principal_token_address.lower())
        addresses.add(pool.collateral_token_address.lower())
    return addresses


def keep_finite(record: PositionRecord) -> bool:
    return all(math.isfinite(v) for v in record.numeric_values())


def filter_finite(records: Iterable[PositionRecord]) -> list[PositionRecord]:
    return [r for r in records if keep_finite(r)]


async def run_network(
    network: str,
    raw_pools: Sequence[RawPoolMetrics],
    *,
    token_resolver: TokenResolver = resolve_token_context,
    price_resolver: PriceResolver = resolve_prices,
) -> list[PositionRecord]:
    """Turn one network's raw pools into finite yield rows.

    Token metadata and prices are resolved once for the whole batch; errors
    from either resolver propagate so the caller can drop the network.
    Output order follows `raw_pools`, lending row first for each pool.
    """
    logger = _get_logger()
    if not raw_pools:
        return []

    addresses = collect_token_addresses(raw_pools)
    token_context = await token_resolver(addresses, network)
    price_map = await price_resolver(addresses, network)

    async def _one(raw: RawPoolMetrics) -> list[PositionRecord]:
        return project_pool(enrich_pool(raw, token_context, price_map), network)

    projected = await asyncio.gather(*[_one(p) for p in raw_pools])
    records = [r for pair in projected for r in pair]

    finite = filter_finite(records)
    dropped = len(records) - len(finite)
    if dropped:
        logger.info(f"Dropped {dropped} non-finite rows on {network}")
    return finite


async def fetch_network_pools(network: str, timestamp: int | None = None) -> list[RawPoolMetrics]:
    """Fetch raw pools from the network's configured Teller subgraph."""
    subgraph = settings.teller_subgraphs()[network]
    client = TellerSubgraphClient(settings.subgraph_url(subgraph))
    return await client.fetch_raw_pool_metrics(network, timestamp)


async def collect_teller_yields(
    networks: Iterable[str],
    timestamp: int | None = None,
    *,
    fetch: PoolFetcher = fetch_network_pools,
    run: NetworkRunner = run_network,
) -> list[PositionRecord]:
    """Process networks sequentially, skipping any network that fails.

    Rows come back already filtered to finite values by `run`.
    """
    logger = _get_logger()
    data: list[PositionRecord] = []
    for network in networks:
        try:
            logger.info(f"Fetching Teller pools for {network}...")
            raw_pools = await fetch(network, timestamp)
            rows = await run(network, raw_pools)
        except Exception as e:
            logger.error(f"Skipping {network}: {type(e).__name__}: {e}")
            continue
        logger.info(f"{network}: {len(raw_pools)} pools -> {len(rows)} rows")
        data.extend(rows)
    return data


@task
async def fetch_network_pools_task(network: str, timestamp: int | None = None) -> list[RawPoolMetrics]:
    """Prefect task wrapper for the subgraph fetch."""
    return await fetch_network_pools(network, timestamp)


@task
async def run_network_task(network: str, raw_pools: Sequence[RawPoolMetrics]) -> list[PositionRecord]:
    """Prefect task wrapper for enrichment + projection of one network."""
    return await run_network(network, raw_pools)


@flow(name="teller-pools-sync", log_prints=True)
async def teller_pools_flow(
    timestamp: int | None = None,
    networks: list[str] | None = None,
) -> list[dict[str, Any]]:
    """Build Teller yield rows for every configured network.

    Args:
        timestamp: Optional unix timestamp for a historical snapshot. Defaults
            to the subgraph's latest indexed block.
        networks: Restrict the run to these networks. Defaults to every
            network in TELLER_SUBGRAPHS_JSON.
    """
    logger = get_run_logger()
    targets = networks or list(settings.teller_subgraphs())
    records = await collect_teller_yields(
        targets,
        timestamp,
        fetch=fetch_network_pools_task,
        run=run_network_task,
    )
    logger.info(f"Built {len(records)} Teller yield rows across {len(targets)} networks")
    return [r.to_dict() for r in records]
