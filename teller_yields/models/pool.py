"""Typed records for the Teller pool yields pipeline.

Three layers of data flow through the pipeline:
- RawPoolMetrics: one `groupPoolMetrics` entity exactly as the subgraph returns it
- EnrichedPool: a raw record plus the USD and rate metrics derived from it
- PositionRecord: one DeFi Llama yield row (lending or collateral side)

Token metadata and prices are plain lookups keyed by lowercase token address
(`TokenContext` and `PriceMap`) and are treated as read-only snapshots for the
duration of a run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_DECIMALS = 18
UNKNOWN_SYMBOL = "UNKNOWN"


@dataclass(frozen=True)
class TokenInfo:
    """ERC-20 symbol/decimals for one token."""

    address: str
    symbol: str = UNKNOWN_SYMBOL
    decimals: int = DEFAULT_DECIMALS

    @classmethod
    def unknown(cls, address: str) -> "TokenInfo":
        return cls(address=address.lower())


TokenContext = dict[str, TokenInfo]
PriceMap = dict[str, float]


class RawPoolMetrics(BaseModel):
    """One lender group's cumulative accounting counters.

    Field names match the subgraph entity. BigInt counters arrive as decimal
    strings and are coerced to `int`; a missing counter reads as 0.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = ""
    group_pool_address: str
    principal_token_address: str
    collateral_token_address: str
    shares_token_address: str | None = None
    market_id: str | None = None

    total_principal_tokens_committed: int = 0
    total_principal_tokens_withdrawn: int = 0
    total_principal_tokens_borrowed: int = 0
    total_principal_tokens_repaid: int = 0
    total_interest_collected: int = 0
    token_difference_from_liquidations: int = 0
    total_collateral_tokens_escrowed: int = 0
    total_collateral_withdrawn: int = 0

    # Basis-point-like units; None when missing or unparsable so the yield
    # curve can substitute its defaults.
    interest_rate_lower_bound: int | None = None
    interest_rate_upper_bound: int | None = None

    liquidity_threshold_percent: int = 0
    # Percent scaled integer, e.g. 150 == 1.5x over-collateralized.
    collateral_ratio: int = 0

    @field_validator("interest_rate_lower_bound", "interest_rate_upper_bound", mode="before")
    @classmethod
    def _lenient_rate_bound(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(str(value).strip())
        except ValueError:
            return None

    @field_validator("market_id", "id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # market_id is a BigInt on some deployments and an ID on others
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def token_addresses(self) -> tuple[str, str]:
        return (self.principal_token_address, self.collateral_token_address)


@dataclass(frozen=True)
class EnrichedPool:
    """A raw pool plus every metric derived from it. Built once, never mutated."""

    raw: RawPoolMetrics

    principal_symbol: str
    collateral_symbol: str
    principal_decimals: int
    collateral_decimals: int

    utilization: float
    total_supply_usd: float
    total_borrow_usd: float
    total_collateral_usd: float
    tvl_usd: float

    apy_base: float
    borrow_apy: float
    ltv: float

    @property
    def pool_address(self) -> str:
        return self.raw.group_pool_address

    @property
    def underlying_tokens(self) -> list[str]:
        return list(self.raw.token_addresses)


class PositionRecord(BaseModel):
    """A DeFi Llama yield row.

    Attribute names are snake_case; the serialized (alias) names are the public
    contract consumed downstream and must not change.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pool: str
    chain: str
    project: str
    symbol: str
    tvl_usd: float = Field(alias="tvlUsd")
    apy_base: float = Field(alias="apyBase")
    apy_base_borrow: float | None = Field(default=None, alias="apyBaseBorrow")
    total_supply_usd: float | None = Field(default=None, alias="totalSupplyUsd")
    total_borrow_usd: float | None = Field(default=None, alias="totalBorrowUsd")
    minted_coin: str | None = Field(default=None, alias="mintedCoin")
    underlying_tokens: list[str] = Field(alias="underlyingTokens")
    url: str

    def numeric_values(self) -> list[float]:
        return [
            v
            for v in (
                self.tvl_usd,
                self.apy_base,
                self.apy_base_borrow,
                self.total_supply_usd,
                self.total_borrow_usd,
            )
            if v is not None
        ]

    def to_dict(self) -> dict[str, Any]:
        """Serialize with public field names, omitting fields this row doesn't carry."""
        return self.model_dump(by_alias=True, exclude_none=True)
