"""Unit tests for settings helpers."""

from __future__ import annotations

import json

import pytest

from teller_yields.core.config import DEFAULT_TELLER_SUBGRAPHS, Settings


def test_default_subgraphs() -> None:
    s = Settings(TELLER_SUBGRAPHS_JSON=None)
    assert s.teller_subgraphs() == DEFAULT_TELLER_SUBGRAPHS


def test_subgraphs_json_override_lowercases_chains() -> None:
    s = Settings(TELLER_SUBGRAPHS_JSON=json.dumps({"Ethereum": "abc", "Base": "https://example/base", "empty": ""}))
    assert s.teller_subgraphs() == {"ethereum": "abc", "base": "https://example/base"}


def test_subgraphs_json_must_be_object() -> None:
    s = Settings(TELLER_SUBGRAPHS_JSON=json.dumps(["abc"]))
    with pytest.raises(ValueError):
        s.teller_subgraphs()


def test_subgraph_url_builds_gateway_url() -> None:
    s = Settings(GRAPH_API_KEY="k123")
    assert s.subgraph_url("sub-id") == "https://gateway.thegraph.com/api/k123/subgraphs/id/sub-id"
    assert s.subgraph_url("https://example/base") == "https://example/base"


def test_subgraph_url_requires_api_key() -> None:
    s = Settings(GRAPH_API_KEY=None)
    with pytest.raises(RuntimeError):
        s.subgraph_url("sub-id")


def test_rpc_url_uses_chain_override() -> None:
    s = Settings(ETHEREUM_RPC_URL="https://eth.example", BASE_RPC_URL="https://base.example")
    assert s.get_rpc_url("base") == "https://base.example"
    assert s.get_rpc_url("ethereum") == "https://eth.example"


@pytest.mark.parametrize("chain", ["arbitrum", "optimism"])
def test_rpc_url_unconfigured_chain_raises(chain) -> None:
    s = Settings(ETHEREUM_RPC_URL="https://eth.example", ARBITRUM_RPC_URL=None)
    with pytest.raises(RuntimeError, match="No RPC URL configured"):
        s.get_rpc_url(chain)


@pytest.mark.asyncio
async def test_network_without_rpc_contributes_no_rows(monkeypatch, make_raw_pool) -> None:
    from teller_yields.core.config import settings
    from teller_yields.pipelines.flows import teller_pools as mod

    monkeypatch.setattr(settings, "ARBITRUM_RPC_URL", None)

    async def fetch(network, timestamp):
        return [make_raw_pool(group_pool_address=f"0x{network}")]

    async def prices(addresses, network):
        return {}

    async def run(network, raw_pools):
        # Default token resolver, so the RPC lookup for the chain is exercised.
        return await mod.run_network(network, raw_pools, price_resolver=prices)

    rows = await mod.collect_teller_yields(["arbitrum", "ethereum"], fetch=fetch, run=run)

    assert [r.pool for r in rows] == ["0xethereum", "0xethereum"]
