import json

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .prefect_secrets import env_or_prefect_secret

load_dotenv()

# Teller lender-group subgraph deployments on The Graph's decentralized network.
DEFAULT_TELLER_SUBGRAPHS = {
    "ethereum": "x6qJPkv7FaCWkfcjDWx12Z2NEfsvCCwuy87vQzk9zRh",
}


class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = "Teller Pool Yields"
    DEBUG: bool = False

    # The Graph gateway. Subgraph ids are resolved against this URL template;
    # entries in TELLER_SUBGRAPHS_JSON that already look like URLs are used as-is.
    GRAPH_API_KEY: str | None = Field(
        env_or_prefect_secret("GRAPH_API_KEY", "graph-api-key"),
        alias="GRAPH_API_KEY",
    )
    GRAPH_GATEWAY_URL: str = "https://gateway.thegraph.com/api/{api_key}/subgraphs/id/{subgraph_id}"
    TELLER_SUBGRAPHS_JSON: str | None = None

    # DeFi Llama coins API (prices + block-by-timestamp)
    COINS_API_URL: str = "https://coins.llama.fi"

    # Chain RPC URLs used for ERC-20 metadata reads, one <CHAIN>_RPC_URL field
    # per supported chain. Only Ethereum has a default.
    ETHEREUM_RPC_URL: str = "https://eth.llamarpc.com"
    ARBITRUM_RPC_URL: str | None = None
    BASE_RPC_URL: str | None = None
    POLYGON_RPC_URL: str | None = None

    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Query the subgraph this many blocks behind head in case the indexer lags.
    BLOCK_LAG: int = 30

    # Config for Pydantic V2
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars not defined here
    )

    def teller_subgraphs(self) -> dict[str, str]:
        """Return the configured chain -> subgraph id/url mapping."""
        raw = self.TELLER_SUBGRAPHS_JSON
        if not raw:
            return dict(DEFAULT_TELLER_SUBGRAPHS)
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError("TELLER_SUBGRAPHS_JSON must be a JSON object of chain -> subgraph id")
        return {str(k).lower(): str(v) for k, v in parsed.items() if v}

    def subgraph_url(self, subgraph: str) -> str:
        """Build the query URL for a subgraph id (or pass a full URL through)."""
        if subgraph.startswith(("http://", "https://")):
            return subgraph
        if not self.GRAPH_API_KEY:
            raise RuntimeError(
                "GRAPH_API_KEY is not set. Set the GRAPH_API_KEY env var or create a Prefect Secret block "
                "named 'graph-api-key', or configure full subgraph URLs in TELLER_SUBGRAPHS_JSON."
            )
        return self.GRAPH_GATEWAY_URL.format(api_key=self.GRAPH_API_KEY, subgraph_id=subgraph)

    def get_rpc_url(self, chain: str) -> str:
        """Get the RPC URL configured for a chain.

        Only Ethereum has a default. Reading token metadata for another chain
        from a mainnet node would return the wrong contracts, so an unconfigured
        chain is an error.
        """
        if chain.lower() == "ethereum":
            return self.ETHEREUM_RPC_URL
        chain_url = getattr(self, f"{chain.upper()}_RPC_URL", None)
        if not chain_url:
            raise RuntimeError(f"No RPC URL configured for {chain}. Set {chain.upper()}_RPC_URL.")
        return chain_url


# Singleton instance to be imported across the app
settings = Settings()
