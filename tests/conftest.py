"""Pytest configuration.

Adds the repository root to `sys.path` so `teller_yields` imports work under
`pytest` without an installed wheel, and pins secrets in the environment so
importing settings never reaches out to Prefect.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

os.environ.setdefault("GRAPH_API_KEY", "test-key")

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


def raw_pool_payload(**overrides: Any) -> dict[str, Any]:
    """A `groupPoolMetrics` entity shaped like the subgraph response."""
    payload: dict[str, Any] = {
        "id": "0xpool1",
        "group_pool_address": "0x1111111111111111111111111111111111111111",
        "principal_token_address": USDC,
        "collateral_token_address": WETH,
        "shares_token_address": "0x9999999999999999999999999999999999999999",
        "market_id": "12",
        "total_principal_tokens_committed": "1000",
        "total_principal_tokens_withdrawn": "0",
        "total_principal_tokens_borrowed": "400",
        "total_principal_tokens_repaid": "0",
        "total_interest_collected": "0",
        "token_difference_from_liquidations": "0",
        "total_collateral_tokens_escrowed": "0",
        "total_collateral_withdrawn": "0",
        "interest_rate_upper_bound": "1500",
        "interest_rate_lower_bound": "500",
        "liquidity_threshold_percent": "8000",
        "collateral_ratio": "150",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_raw_pool() -> Callable[..., Any]:
    from teller_yields.models.pool import RawPoolMetrics

    def _make(**overrides: Any) -> RawPoolMetrics:
        return RawPoolMetrics.model_validate(raw_pool_payload(**overrides))

    return _make
