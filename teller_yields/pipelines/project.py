"""Split an enriched Teller pool into DeFi Llama yield rows."""

from __future__ import annotations

from teller_yields.models.pool import EnrichedPool, PositionRecord

PROJECT = "teller"
APP_URL = "https://app.teller.org"

# DeFi Llama display names that aren't a plain capitalization of the chain id.
_CHAIN_DISPLAY_NAMES = {
    "avax": "Avalanche",
    "bsc": "BSC",
    "xdai": "xDai",
    "polygon_zkevm": "Polygon zkEVM",
    "zksync_era": "zkSync Era",
}

# The Teller app routes Ethereum mainnet under /mainnet.
_APP_NETWORK_OVERRIDES = {"ethereum": "mainnet"}


def format_chain(network: str) -> str:
    """DeFi Llama chain label for a network id ("ethereum" -> "Ethereum")."""
    key = network.lower()
    if key in _CHAIN_DISPLAY_NAMES:
        return _CHAIN_DISPLAY_NAMES[key]
    return network[:1].upper() + network[1:]


def app_network_label(network: str) -> str:
    return _APP_NETWORK_OVERRIDES.get(network, network)


def pool_url(network: str, pool_address: str) -> str:
    """Teller app link for a pool.

    Ethereum pools link under /mainnet rather than /ethereum, on purpose: that
    is the route the Teller app serves mainnet pools from.
    """
    return f"{APP_URL}/{app_network_label(network)}/lend/pool/{pool_address}"


def project_pool(enriched: EnrichedPool, network: str) -> list[PositionRecord]:
    """Return `[lending, collateral]` rows for one pool.

    The lending row is the principal side (what lenders supply and earn on).
    The collateral row is the borrow side: its TVL is the escrowed collateral
    and `mintedCoin` names the principal token borrowed against it.
    """
    shared = {
        "pool": enriched.pool_address,
        "chain": format_chain(network),
        "project": PROJECT,
        "url": pool_url(network, enriched.pool_address),
    }

    lending = PositionRecord(
        **shared,
        symbol=enriched.principal_symbol,
        underlying_tokens=enriched.underlying_tokens,
        tvl_usd=enriched.total_supply_usd,
        apy_base=enriched.apy_base,
    )
    collateral = PositionRecord(
        **shared,
        symbol=enriched.collateral_symbol,
        underlying_tokens=enriched.underlying_tokens,
        minted_coin=enriched.principal_symbol,
        tvl_usd=enriched.total_collateral_usd,
        total_supply_usd=enriched.total_collateral_usd,
        total_borrow_usd=enriched.total_borrow_usd,
        apy_base_borrow=enriched.borrow_apy,
        apy_base=0,
    )
    return [lending, collateral]
