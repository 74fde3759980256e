from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

ZERO_BD = Decimal(0)


class Entity(BaseModel):
    """
    Base for everything persisted in the entity store.

    An entity is identified by (entity type, id). The entity type is the class
    name, so renaming a class changes its storage key.
    """

    model_config = ConfigDict(extra="forbid")

    id: str

    @classmethod
    def entity_type(cls) -> str:
        return cls.__name__


# -----------------------------------------------------------------------------
# Reference data
# -----------------------------------------------------------------------------


class Token(Entity):
    name: str
    symbol: str
    decimals: int
    # Only reserve tokens that have a pool carry this; set once on pool creation.
    pool_token: str | None = None


class PoolCollection(Entity):
    pool_type: int
    created_block_number: int


# -----------------------------------------------------------------------------
# Aggregates
# -----------------------------------------------------------------------------


class DexAmmProtocol(Entity):
    name: str = "Bancor V3"
    slug: str = "bancor-v3"
    schema_version: str = "1.2.1"
    subgraph_version: str = "1.0.0"
    methodology_version: str = "1.0.0"
    network: str = "MAINNET"
    type: str = "EXCHANGE"

    total_value_locked_usd: Decimal = ZERO_BD
    cumulative_volume_usd: Decimal = ZERO_BD
    cumulative_supply_side_revenue_usd: Decimal = ZERO_BD
    cumulative_protocol_side_revenue_usd: Decimal = ZERO_BD
    cumulative_total_revenue_usd: Decimal = ZERO_BD
    cumulative_unique_users: int = 0

    pool_ids: list[str] = Field(default_factory=list)
    network_fee_rate: Decimal = ZERO_BD
    withdrawal_fee_rate: Decimal = ZERO_BD


class LiquidityPool(Entity):
    protocol: str
    name: str
    symbol: str
    input_tokens: list[str]
    output_token: str
    reward_tokens: list[str] = Field(default_factory=list)
    fees: list[str] = Field(default_factory=list)
    created_timestamp: int
    created_block_number: int

    total_value_locked_usd: Decimal = ZERO_BD
    cumulative_volume_usd: Decimal = ZERO_BD
    input_token_balances: list[int] = Field(default_factory=lambda: [0])
    input_token_weights: list[Decimal] = Field(default_factory=lambda: [Decimal(1)])
    output_token_supply: int = 0
    output_token_price_usd: Decimal = ZERO_BD
    staked_output_token_amount: int = 0
    reward_token_emissions_amount: list[int] = Field(default_factory=lambda: [0])
    reward_token_emissions_usd: list[Decimal] = Field(default_factory=lambda: [ZERO_BD])

    cumulative_trading_fee_amount_usd: Decimal = ZERO_BD
    cumulative_withdrawal_fee_amount_usd: Decimal = ZERO_BD


# -----------------------------------------------------------------------------
# Event records (immutable once written)
# -----------------------------------------------------------------------------


class _EventRecord(Entity):
    hash: str
    log_index: int
    protocol: str
    block_number: int
    timestamp: int
    from_address: str
    to_address: str
    pool: str


class Swap(_EventRecord):
    token_in: str
    amount_in: int
    amount_in_usd: Decimal
    token_out: str
    amount_out: int
    amount_out_usd: Decimal
    trading_fee_amount: int
    trading_fee_amount_usd: Decimal


class Deposit(_EventRecord):
    input_tokens: list[str]
    input_token_amounts: list[int]
    output_token: str
    output_token_amount: int
    amount_usd: Decimal


class Withdraw(_EventRecord):
    input_tokens: list[str]
    input_token_amounts: list[int]
    output_token: str
    output_token_amount: int
    amount_usd: Decimal
    withdrawal_fee_amount: int
    withdrawal_fee_amount_usd: Decimal


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------


class Account(Entity):
    pass


class ActiveAccount(Entity):
    pass


class HourlyActiveAccount(ActiveAccount):
    """Hourly bucket marker, stored apart from the daily ones (both use "<address>-<index>" ids)."""


# -----------------------------------------------------------------------------
# Snapshots
# -----------------------------------------------------------------------------


class UsageMetricsDailySnapshot(Entity):
    protocol: str
    block_number: int
    timestamp: int
    daily_active_users: int = 0
    cumulative_unique_users: int = 0
    daily_transaction_count: int = 0
    daily_deposit_count: int = 0
    daily_withdraw_count: int = 0
    daily_swap_count: int = 0


class UsageMetricsHourlySnapshot(Entity):
    protocol: str
    block_number: int
    timestamp: int
    hourly_active_users: int = 0
    cumulative_unique_users: int = 0
    hourly_transaction_count: int = 0
    hourly_deposit_count: int = 0
    hourly_withdraw_count: int = 0
    hourly_swap_count: int = 0


class _LiquidityPoolSnapshot(Entity):
    protocol: str
    pool: str
    block_number: int
    timestamp: int
    total_value_locked_usd: Decimal = ZERO_BD
    cumulative_volume_usd: Decimal = ZERO_BD
    input_token_balances: list[int] = Field(default_factory=lambda: [0])
    input_token_weights: list[Decimal] = Field(default_factory=lambda: [ZERO_BD])
    output_token_supply: int = 0
    output_token_price_usd: Decimal = ZERO_BD
    staked_output_token_amount: int = 0
    reward_token_emissions_amount: list[int] = Field(default_factory=lambda: [0])
    reward_token_emissions_usd: list[Decimal] = Field(default_factory=lambda: [ZERO_BD])


class LiquidityPoolDailySnapshot(_LiquidityPoolSnapshot):
    daily_volume_usd: Decimal = ZERO_BD
    daily_volume_by_token_amount: list[int] = Field(default_factory=lambda: [0])
    daily_volume_by_token_usd: list[Decimal] = Field(default_factory=lambda: [ZERO_BD])


class LiquidityPoolHourlySnapshot(_LiquidityPoolSnapshot):
    hourly_volume_usd: Decimal = ZERO_BD
    hourly_volume_by_token_amount: list[int] = Field(default_factory=lambda: [0])
    hourly_volume_by_token_usd: list[Decimal] = Field(default_factory=lambda: [ZERO_BD])


class FinancialsDailySnapshot(Entity):
    protocol: str
    block_number: int = 0
    timestamp: int = 0
    total_value_locked_usd: Decimal = ZERO_BD
    protocol_controlled_value_usd: Decimal = ZERO_BD
    daily_volume_usd: Decimal = ZERO_BD
    daily_total_revenue_usd: Decimal = ZERO_BD
    daily_supply_side_revenue_usd: Decimal = ZERO_BD
    daily_protocol_side_revenue_usd: Decimal = ZERO_BD
    cumulative_volume_usd: Decimal = ZERO_BD
    cumulative_total_revenue_usd: Decimal = ZERO_BD
    cumulative_supply_side_revenue_usd: Decimal = ZERO_BD
    cumulative_protocol_side_revenue_usd: Decimal = ZERO_BD
