from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class ChainEvent:
    """
    Common envelope of every Bancor v3 log consumed by the indexer.

    Addresses and hashes are lowercase 0x-prefixed hex strings; amounts are raw
    integer token units; block_timestamp is unix seconds.
    """

    contract_address: str
    block_number: int
    block_timestamp: int
    transaction_hash: str
    log_index: int


# -----------------------------------------------------------------------------
# PoolTokenFactory / BancorNetwork / NetworkSettings
# -----------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class PoolTokenCreated(ChainEvent):
    pool_token: str
    token: str


@dataclass(frozen=True, kw_only=True)
class PoolCollectionAdded(ChainEvent):
    pool_type: int
    pool_collection: str


@dataclass(frozen=True, kw_only=True)
class NetworkFeePPMUpdated(ChainEvent):
    prev_fee_ppm: int
    new_fee_ppm: int


@dataclass(frozen=True, kw_only=True)
class WithdrawalFeePPMUpdated(ChainEvent):
    prev_fee_ppm: int
    new_fee_ppm: int


@dataclass(frozen=True, kw_only=True)
class TokensTraded(ChainEvent):
    source_token: str
    target_token: str
    trader: str
    source_amount: int
    target_amount: int
    target_fee_amount: int


# -----------------------------------------------------------------------------
# PoolCollection (only consumed from registered collections)
# -----------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class TokensDeposited(ChainEvent):
    provider: str
    token: str
    token_amount: int
    pool_token_amount: int


@dataclass(frozen=True, kw_only=True)
class TokensWithdrawn(ChainEvent):
    provider: str
    token: str
    token_amount: int
    pool_token_amount: int
    withdrawal_fee_amount: int


@dataclass(frozen=True, kw_only=True)
class TotalLiquidityUpdated(ChainEvent):
    pool: str
    staked_balance: int
    pool_token_supply: int


# -----------------------------------------------------------------------------
# BNTPool (governance token variants, same semantics)
# -----------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class BntTokensDeposited(ChainEvent):
    provider: str
    bnt_amount: int
    pool_token_amount: int


@dataclass(frozen=True, kw_only=True)
class BntTokensWithdrawn(ChainEvent):
    provider: str
    bnt_amount: int
    pool_token_amount: int
    withdrawal_fee_amount: int


@dataclass(frozen=True, kw_only=True)
class BntTotalLiquidityUpdated(ChainEvent):
    staked_balance: int
    pool_token_supply: int


# -----------------------------------------------------------------------------
# StandardRewards
# -----------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class ProgramCreated(ChainEvent):
    pool: str
    program_id: int
    rewards_token: str
    total_rewards: int
    start_time: int
    end_time: int


POOL_COLLECTION_EVENTS: tuple[type[ChainEvent], ...] = (
    TokensDeposited,
    TokensWithdrawn,
    TotalLiquidityUpdated,
)
