"""Teller lender-group interest rate curve.

A lender group quotes a rate that moves linearly from `interest_rate_lower_bound`
at 0% utilization to `interest_rate_upper_bound` at 100% utilization. Bounds are
integer hundredths of a percent, so dividing by 100 gives a percentage.

Borrowers pay the full interpolated rate. Lenders only earn it on the share of
the pool that is actually lent out, so their yield is scaled by utilization.
"""

from __future__ import annotations

from typing import Any

DEFAULT_LOWER_BOUND = 500
DEFAULT_UPPER_BOUND = 1500


def _bound_or_default(value: Any, default: int) -> int:
    """Substitute `default` for a missing, zero or non-numeric bound."""
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed or default


def resolve_rate_bounds(lower: Any, upper: Any) -> tuple[int, int]:
    return (
        _bound_or_default(lower, DEFAULT_LOWER_BOUND),
        _bound_or_default(upper, DEFAULT_UPPER_BOUND),
    )


def interpolate_rate(utilization: float, lower_bound: int, upper_bound: int) -> float:
    """Raw curve rate (in bound units) at the given utilization."""
    if utilization == 0:
        return lower_bound
    if utilization == 1:
        return upper_bound
    rate_range = upper_bound - lower_bound
    return lower_bound + (utilization * rate_range)


def lender_yield(utilization: float, lower_bound: int, upper_bound: int) -> float:
    """APY (percent) earned by lenders in the group."""
    return (interpolate_rate(utilization, lower_bound, upper_bound) / 100) * utilization


def borrower_yield(utilization: float, lower_bound: int, upper_bound: int) -> float:
    """APY (percent) paid by borrowers from the group."""
    return interpolate_rate(utilization, lower_bound, upper_bound) / 100
