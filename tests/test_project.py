"""Unit tests for splitting enriched pools into yield rows."""

from __future__ import annotations

import pytest

from conftest import USDC, WETH
from teller_yields.models.pool import TokenInfo
from teller_yields.pipelines.enrich import enrich_pool
from teller_yields.pipelines.project import app_network_label, format_chain, pool_url, project_pool


@pytest.fixture
def enriched(make_raw_pool):
    raw = make_raw_pool(
        total_principal_tokens_committed=str(1_000 * 10**6),
        total_principal_tokens_borrowed=str(400 * 10**6),
        total_collateral_tokens_escrowed=str(10**18),
    )
    context = {
        USDC.lower(): TokenInfo(address=USDC.lower(), symbol="USDC", decimals=6),
        WETH.lower(): TokenInfo(address=WETH.lower(), symbol="WETH", decimals=18),
    }
    return enrich_pool(raw, context, {USDC.lower(): 1.0, WETH.lower(): 2500.0})


def test_project_pool_lending_row(enriched) -> None:
    lending, _ = project_pool(enriched, "ethereum")

    row = lending.to_dict()
    assert row == {
        "pool": "0x1111111111111111111111111111111111111111",
        "chain": "Ethereum",
        "project": "teller",
        "symbol": "USDC",
        "tvlUsd": pytest.approx(1_000.0),
        "apyBase": pytest.approx(3.6),
        "underlyingTokens": [USDC, WETH],
        "url": "https://app.teller.org/mainnet/lend/pool/0x1111111111111111111111111111111111111111",
    }


def test_project_pool_collateral_row(enriched) -> None:
    _, collateral = project_pool(enriched, "ethereum")

    row = collateral.to_dict()
    assert row["symbol"] == "WETH"
    assert row["mintedCoin"] == "USDC"
    assert row["tvlUsd"] == pytest.approx(2_500.0)
    assert row["totalSupplyUsd"] == pytest.approx(2_500.0)
    assert row["totalBorrowUsd"] == pytest.approx(400.0)
    assert row["apyBaseBorrow"] == pytest.approx(9.0)
    assert row["apyBase"] == 0
    assert row["underlyingTokens"] == [USDC, WETH]


def test_rows_do_not_share_token_lists(enriched) -> None:
    lending, collateral = project_pool(enriched, "base")
    assert lending.underlying_tokens == collateral.underlying_tokens
    assert lending.underlying_tokens is not collateral.underlying_tokens
    assert lending.url == collateral.url == pool_url("base", enriched.pool_address)


def test_network_labels() -> None:
    assert app_network_label("ethereum") == "mainnet"
    assert app_network_label("arbitrum") == "arbitrum"
    assert format_chain("ethereum") == "Ethereum"
    assert format_chain("base") == "Base"
    assert format_chain("bsc") == "BSC"
