"""Derive USD and rate metrics for one Teller lender group."""

from __future__ import annotations

import logging
import math

from teller_yields.models.pool import (
    DEFAULT_DECIMALS,
    UNKNOWN_SYMBOL,
    EnrichedPool,
    PriceMap,
    RawPoolMetrics,
    TokenContext,
)
from teller_yields.pipelines.yield_curve import borrower_yield, lender_yield, resolve_rate_bounds

logger = logging.getLogger(__name__)


def _token_decimals(token_context: TokenContext, address: str) -> int:
    info = token_context.get(address.lower())
    # Zero decimals falls back too; ERC-20s that report 0 are treated as unresolved.
    return (info.decimals if info else 0) or DEFAULT_DECIMALS


def _token_symbol(token_context: TokenContext, address: str) -> str:
    info = token_context.get(address.lower())
    return (info.symbol if info else "") or UNKNOWN_SYMBOL


def _token_price(price_map: PriceMap, address: str) -> float:
    return float(price_map.get(address.lower()) or 0)


def to_usd(amount: int, price: float, decimals: int) -> float:
    """Convert a raw integer token amount to USD."""
    return amount * (price / 10**decimals)


def clamp_utilization(borrowed: int, committed: int) -> float:
    """Fraction of committed principal that is lent out, clamped to [0, 1]."""
    if committed <= 0:
        return 0.0
    return min(max(borrowed / committed, 0.0), 1.0)


def loan_to_value(collateral_ratio: int) -> float:
    """LTV percent for a percent-scaled collateral ratio (150 -> 66.67).

    A zero ratio has no defined LTV and maps to +inf.
    """
    if collateral_ratio == 0:
        return math.inf
    return 100.0 / (collateral_ratio / 100.0)


def enrich_pool(raw: RawPoolMetrics, token_context: TokenContext, price_map: PriceMap) -> EnrichedPool:
    """Compute supply/borrow/collateral USD, utilization, APYs and LTV for one pool.

    Missing token metadata or prices degrade to defaults (18 decimals,
    "UNKNOWN" symbol, price 0) instead of raising.
    """
    principal = raw.principal_token_address
    collateral = raw.collateral_token_address

    principal_decimals = _token_decimals(token_context, principal)
    collateral_decimals = _token_decimals(token_context, collateral)
    principal_price = _token_price(price_map, principal)
    collateral_price = _token_price(price_map, collateral)

    # Negative net collateral means more was withdrawn than escrowed; keep it.
    collateral_net = raw.total_collateral_tokens_escrowed - raw.total_collateral_withdrawn

    actively_borrowed = raw.total_principal_tokens_borrowed - raw.total_principal_tokens_repaid
    actively_committed = (
        raw.total_principal_tokens_committed
        + raw.total_interest_collected
        + raw.token_difference_from_liquidations
        - raw.total_principal_tokens_withdrawn
    )

    utilization = clamp_utilization(actively_borrowed, actively_committed)

    total_supply_usd = to_usd(actively_committed, principal_price, principal_decimals)
    total_borrow_usd = to_usd(actively_borrowed, principal_price, principal_decimals)
    total_collateral_usd = to_usd(collateral_net, collateral_price, collateral_decimals)

    lower_bound, upper_bound = resolve_rate_bounds(raw.interest_rate_lower_bound, raw.interest_rate_upper_bound)

    logger.debug(
        f"Token decimals for pool {raw.group_pool_address}: "
        f"principal={principal_decimals}, collateral={collateral_decimals}"
    )

    return EnrichedPool(
        raw=raw,
        principal_symbol=_token_symbol(token_context, principal),
        collateral_symbol=_token_symbol(token_context, collateral),
        principal_decimals=principal_decimals,
        collateral_decimals=collateral_decimals,
        utilization=utilization,
        total_supply_usd=total_supply_usd,
        total_borrow_usd=total_borrow_usd,
        total_collateral_usd=total_collateral_usd,
        tvl_usd=total_supply_usd - total_borrow_usd,
        apy_base=lender_yield(utilization, lower_bound, upper_bound),
        borrow_apy=borrower_yield(utilization, lower_bound, upper_bound),
        ltv=loan_to_value(raw.collateral_ratio),
    )
