"""ERC-20 symbol/decimals lookups for Teller pool tokens.

Reads go through a synchronous web3 HTTP provider and are pushed to worker
threads so a batch of tokens resolves concurrently. A handful of common tokens
are hardcoded to avoid RPC calls.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from web3 import Web3

from teller_yields.core.config import settings
from teller_yields.models.pool import DEFAULT_DECIMALS, TokenContext, TokenInfo

logger = logging.getLogger(__name__)


_ERC20_ABI: list[dict[str, Any]] = [
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "name": "symbol",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
]

# chain -> lowercase address -> (symbol, decimals)
KNOWN_TOKENS: dict[str, dict[str, tuple[str, int]]] = {
    "ethereum": {
        "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": ("USDC", 6),
        "0xdac17f958d2ee523a2206206994597c13d831ec7": ("USDT", 6),
        "0x6b175474e89094c44da98b954eedeac495271d0f": ("DAI", 18),
        "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": ("WETH", 18),
        "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599": ("WBTC", 8),
        "0x7f39c581f595b53c5cb19bd0b3f8da6c935e2ca0": ("wstETH", 18),
    },
}


class TokenMetadataClient:
    def __init__(self, network: str, rpc_url: str | None = None, request_timeout_seconds: int = 20) -> None:
        self.network = network
        self._w3 = Web3(
            Web3.HTTPProvider(
                rpc_url or settings.get_rpc_url(network),
                request_kwargs={"timeout": request_timeout_seconds},
            )
        )
        self._cache: dict[str, TokenInfo] = {}

    def get_token_info_sync(self, address: str) -> TokenInfo:
        """Return symbol/decimals for one token, or the UNKNOWN/18 fallback."""
        key = address.lower()
        if key in self._cache:
            return self._cache[key]

        known = KNOWN_TOKENS.get(self.network, {}).get(key)
        if known:
            info = TokenInfo(address=key, symbol=known[0], decimals=known[1])
            self._cache[key] = info
            return info

        try:
            contract = self._w3.eth.contract(address=Web3.to_checksum_address(address), abi=_ERC20_ABI)
            symbol = contract.functions.symbol().call()
            decimals = contract.functions.decimals().call()
        except Exception as e:
            # Not cached so the next run retries.
            logger.warning(f"Token metadata lookup failed for {address} on {self.network}: {e}")
            return TokenInfo.unknown(key)

        info = TokenInfo(
            address=key,
            symbol=str(symbol),
            decimals=int(decimals) if isinstance(decimals, int) and decimals > 0 else DEFAULT_DECIMALS,
        )
        self._cache[key] = info
        return info

    async def get_token_info(self, address: str) -> TokenInfo:
        return await asyncio.to_thread(self.get_token_info_sync, address)

    async def get_token_context(self, addresses: Iterable[str]) -> TokenContext:
        """Resolve every address; the result has an entry for each one."""
        unique = sorted({a.lower() for a in addresses if a})
        infos = await asyncio.gather(*[self.get_token_info(a) for a in unique])
        return {info.address: info for info in infos}


async def resolve_token_context(
    addresses: Iterable[str],
    network: str,
    client: TokenMetadataClient | None = None,
) -> TokenContext:
    return await (client or TokenMetadataClient(network)).get_token_context(addresses)
