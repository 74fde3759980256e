from __future__ import annotations

import logging
from dataclasses import dataclass

from bancor_indexer.app.application.services.aggregators import ProtocolAggregator
from bancor_indexer.app.application.services.snapshots import Snapshotter
from bancor_indexer.app.application.services.token_registry import TokenRegistry
from bancor_indexer.app.application.services.usage import UsageTracker
from bancor_indexer.app.application.services.valuation import ValuationService
from bancor_indexer.app.domain.addresses import ProtocolAddresses
from bancor_indexer.app.domain.bucketing import SECONDS_PER_DAY, event_record_id
from bancor_indexer.app.domain.entities import (
    Deposit,
    LiquidityPool,
    PoolCollection,
    Swap,
    Token,
    Withdraw,
)
from bancor_indexer.app.domain.events import (
    BntTokensDeposited,
    BntTokensWithdrawn,
    BntTotalLiquidityUpdated,
    ChainEvent,
    NetworkFeePPMUpdated,
    PoolCollectionAdded,
    PoolTokenCreated,
    ProgramCreated,
    TokensDeposited,
    TokensTraded,
    TokensWithdrawn,
    TotalLiquidityUpdated,
    WithdrawalFeePPMUpdated,
)
from bancor_indexer.app.domain.ports.out import EntityStore
from bancor_indexer.app.domain.revenue import EventType, attribute_revenue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _LiquidityMove:
    """Deposit or withdrawal, after the token/pool lookups have succeeded."""

    event: ChainEvent
    account: str
    reserve_token: Token
    reserve_token_amount: int
    pool_token: Token
    pool_token_amount: int


class EventHandlers:
    """
    One coroutine per Bancor v3 event kind.

    Each handler looks up every entity it depends on before its first write, so
    an event with a missing reference is skipped without leaving partial state.
    Nothing here raises on missing data or failed lookups; it logs and moves on.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        addresses: ProtocolAddresses,
        tokens: TokenRegistry,
        valuation: ValuationService,
        aggregator: ProtocolAggregator,
        usage: UsageTracker,
        snapshots: Snapshotter,
    ) -> None:
        self._store = store
        self._addresses = addresses
        self._tokens = tokens
        self._valuation = valuation
        self._aggregator = aggregator
        self._usage = usage
        self._snapshots = snapshots

    # -------------------------------------------------------------------------
    # Pools, tokens, configuration
    # -------------------------------------------------------------------------

    async def handle_pool_token_created(self, event: PoolTokenCreated) -> None:
        pool_token_id = event.pool_token
        reserve_token_id = event.token

        if await self._tokens.find(pool_token_id) is not None:
            logger.warning("[handle_pool_token_created] pool token %s already exists", pool_token_id)
            return

        reserve_token = await self._tokens.find(reserve_token_id)
        if reserve_token is not None and reserve_token.pool_token not in (None, pool_token_id):
            logger.warning(
                "[handle_pool_token_created] reserve token %s already linked to pool token %s",
                reserve_token_id,
                reserve_token.pool_token,
            )
            return

        pool_token = await self._tokens.build_token(pool_token_id)
        if reserve_token is None:
            reserve_token = await self._tokens.build_token(reserve_token_id)
        reserve_token.pool_token = pool_token_id

        await self._store.save(pool_token)
        await self._store.save(reserve_token)

        await self._aggregator.create_liquidity_pool(
            reserve_token=reserve_token,
            pool_token=pool_token,
            block_timestamp=event.block_timestamp,
            block_number=event.block_number,
        )
        logger.info(
            "Created liquidity pool %s for reserve token %s (%s)",
            pool_token_id,
            reserve_token_id,
            reserve_token.symbol,
        )

    async def handle_pool_collection_added(self, event: PoolCollectionAdded) -> None:
        if await self._store.find(PoolCollection, event.pool_collection) is not None:
            return
        await self._store.create(
            PoolCollection,
            event.pool_collection,
            pool_type=event.pool_type,
            created_block_number=event.block_number,
        )
        logger.info("Registered pool collection %s (type=%s)", event.pool_collection, event.pool_type)

    async def handle_network_fee_ppm_updated(self, event: NetworkFeePPMUpdated) -> None:
        await self._aggregator.set_network_fee_ppm(event.new_fee_ppm)

    async def handle_withdrawal_fee_ppm_updated(self, event: WithdrawalFeePPMUpdated) -> None:
        await self._aggregator.set_withdrawal_fee_ppm(event.new_fee_ppm)

    # -------------------------------------------------------------------------
    # Trades
    # -------------------------------------------------------------------------

    async def handle_tokens_traded(self, event: TokensTraded) -> None:
        caller = "handle_tokens_traded"

        source_token = await self._tokens.find(event.source_token)
        if source_token is None:
            logger.warning("[%s] source token %s not found", caller, event.source_token)
            return
        target_token = await self._tokens.find(event.target_token)
        if target_token is None:
            logger.warning("[%s] target token %s not found", caller, event.target_token)
            return
        if source_token.pool_token is None:
            logger.warning("[%s] reserve token %s has no pool token", caller, source_token.id)
            return
        pool = await self._store.find(LiquidityPool, source_token.pool_token)
        if pool is None:
            logger.warning("[%s] liquidity pool %s not found", caller, source_token.pool_token)
            return
        protocol = await self._aggregator.load_protocol(caller=caller)
        if protocol is None:
            return

        block = event.block_number
        amount_in_usd = await self._valuation.value_in_reference(source_token.id, event.source_amount, block)
        amount_out_usd = await self._valuation.value_in_reference(target_token.id, event.target_amount, block)
        fee_usd = await self._valuation.value_in_reference(target_token.id, event.target_fee_amount, block)

        swap = Swap(
            id=event_record_id("swap", event.transaction_hash, event.log_index),
            hash=event.transaction_hash,
            log_index=event.log_index,
            protocol=protocol.id,
            block_number=block,
            timestamp=event.block_timestamp,
            from_address=event.trader,
            to_address=pool.id,
            pool=pool.id,
            token_in=source_token.id,
            amount_in=event.source_amount,
            amount_in_usd=amount_in_usd,
            token_out=target_token.id,
            amount_out=event.target_amount,
            amount_out_usd=amount_out_usd,
            trading_fee_amount=event.target_fee_amount,
            trading_fee_amount_usd=fee_usd,
        )
        await self._store.save(swap)

        split = attribute_revenue(EventType.SWAP, fee_usd, protocol.network_fee_rate)
        await self._aggregator.record_trade(pool.id, volume_usd=amount_in_usd, trading_fee_usd=fee_usd)
        await self._aggregator.record_revenue(split)

        await self._usage.track(
            account_id=event.trader,
            event_type=EventType.SWAP,
            block_number=block,
            block_timestamp=event.block_timestamp,
        )
        await self._snapshots.snapshot_liquidity_pool(pool.id, block_number=block, block_timestamp=event.block_timestamp)
        await self._snapshots.update_liquidity_pool_volume(
            pool.id,
            amount=event.source_amount,
            amount_usd=amount_in_usd,
            block_number=block,
            block_timestamp=event.block_timestamp,
        )
        await self._snapshots.snapshot_financials(block_number=block, block_timestamp=event.block_timestamp)
        await self._snapshots.update_financials_revenue(split, block_number=block, block_timestamp=event.block_timestamp)

    # -------------------------------------------------------------------------
    # Deposits
    # -------------------------------------------------------------------------

    async def handle_tokens_deposited(self, event: TokensDeposited) -> None:
        move = await self._resolve_move(
            event,
            caller="handle_tokens_deposited",
            account=event.provider,
            reserve_token_id=event.token,
            reserve_token_amount=event.token_amount,
            pool_token_amount=event.pool_token_amount,
        )
        if move is not None:
            await self._deposit(move)

    async def handle_bnt_tokens_deposited(self, event: BntTokensDeposited) -> None:
        move = await self._resolve_move(
            event,
            caller="handle_bnt_tokens_deposited",
            account=event.provider,
            reserve_token_id=self._addresses.bnt,
            reserve_token_amount=event.bnt_amount,
            pool_token_amount=event.pool_token_amount,
            pool_token_id=self._addresses.bnbnt,
        )
        if move is not None:
            await self._deposit(move)

    async def _deposit(self, move: _LiquidityMove) -> None:
        event = move.event
        block = event.block_number
        amount_usd = await self._valuation.value_in_reference(move.reserve_token.id, move.reserve_token_amount, block)

        deposit = Deposit(
            id=event_record_id("deposit", event.transaction_hash, event.log_index),
            hash=event.transaction_hash,
            log_index=event.log_index,
            protocol=self._aggregator.protocol_id,
            block_number=block,
            timestamp=event.block_timestamp,
            from_address=move.account,
            to_address=move.pool_token.id,
            pool=move.pool_token.id,
            input_tokens=[move.reserve_token.id],
            input_token_amounts=[move.reserve_token_amount],
            output_token=move.pool_token.id,
            output_token_amount=move.pool_token_amount,
            amount_usd=amount_usd,
        )
        await self._store.save(deposit)

        await self._usage.track(
            account_id=move.account,
            event_type=EventType.DEPOSIT,
            block_number=block,
            block_timestamp=event.block_timestamp,
        )
        await self._snapshots.snapshot_liquidity_pool(
            move.pool_token.id, block_number=block, block_timestamp=event.block_timestamp
        )
        await self._snapshots.snapshot_financials(block_number=block, block_timestamp=event.block_timestamp)

    # -------------------------------------------------------------------------
    # Withdrawals
    # -------------------------------------------------------------------------

    async def handle_tokens_withdrawn(self, event: TokensWithdrawn) -> None:
        move = await self._resolve_move(
            event,
            caller="handle_tokens_withdrawn",
            account=event.provider,
            reserve_token_id=event.token,
            reserve_token_amount=event.token_amount,
            pool_token_amount=event.pool_token_amount,
        )
        if move is not None:
            await self._withdraw(move, event.withdrawal_fee_amount)

    async def handle_bnt_tokens_withdrawn(self, event: BntTokensWithdrawn) -> None:
        move = await self._resolve_move(
            event,
            caller="handle_bnt_tokens_withdrawn",
            account=event.provider,
            reserve_token_id=self._addresses.bnt,
            reserve_token_amount=event.bnt_amount,
            pool_token_amount=event.pool_token_amount,
            pool_token_id=self._addresses.bnbnt,
        )
        if move is not None:
            await self._withdraw(move, event.withdrawal_fee_amount)

    async def _withdraw(self, move: _LiquidityMove, withdrawal_fee_amount: int) -> None:
        event = move.event
        block = event.block_number
        reserve_id = move.reserve_token.id
        amount_usd = await self._valuation.value_in_reference(reserve_id, move.reserve_token_amount, block)
        fee_usd = await self._valuation.value_in_reference(reserve_id, withdrawal_fee_amount, block)

        withdraw = Withdraw(
            id=event_record_id("withdraw", event.transaction_hash, event.log_index),
            hash=event.transaction_hash,
            log_index=event.log_index,
            protocol=self._aggregator.protocol_id,
            block_number=block,
            timestamp=event.block_timestamp,
            from_address=move.pool_token.id,
            to_address=move.account,
            pool=move.pool_token.id,
            input_tokens=[reserve_id],
            input_token_amounts=[move.reserve_token_amount],
            output_token=move.pool_token.id,
            output_token_amount=move.pool_token_amount,
            amount_usd=amount_usd,
            withdrawal_fee_amount=withdrawal_fee_amount,
            withdrawal_fee_amount_usd=fee_usd,
        )
        await self._store.save(withdraw)

        split = attribute_revenue(EventType.WITHDRAW, fee_usd)
        await self._aggregator.record_withdrawal_fee(move.pool_token.id, withdrawal_fee_usd=fee_usd)
        await self._aggregator.record_revenue(split)

        await self._usage.track(
            account_id=move.account,
            event_type=EventType.WITHDRAW,
            block_number=block,
            block_timestamp=event.block_timestamp,
        )
        await self._snapshots.snapshot_liquidity_pool(
            move.pool_token.id, block_number=block, block_timestamp=event.block_timestamp
        )
        await self._snapshots.snapshot_financials(block_number=block, block_timestamp=event.block_timestamp)
        await self._snapshots.update_financials_revenue(split, block_number=block, block_timestamp=event.block_timestamp)

    async def _resolve_move(
        self,
        event: ChainEvent,
        *,
        caller: str,
        account: str,
        reserve_token_id: str,
        reserve_token_amount: int,
        pool_token_amount: int,
        pool_token_id: str | None = None,
    ) -> _LiquidityMove | None:
        if pool_token_id is None:
            resolved = await self._tokens.resolve_pool(reserve_token_id, caller=caller)
        else:
            resolved = await self._tokens.resolve_pool_by_pool_token(
                reserve_token_id, pool_token_id, caller=caller
            )
        if resolved is None:
            return None
        if await self._aggregator.load_protocol(caller=caller) is None:
            return None

        reserve_token, pool_token, _ = resolved
        return _LiquidityMove(
            event=event,
            account=account,
            reserve_token=reserve_token,
            reserve_token_amount=reserve_token_amount,
            pool_token=pool_token,
            pool_token_amount=pool_token_amount,
        )

    # -------------------------------------------------------------------------
    # Liquidity
    # -------------------------------------------------------------------------

    async def handle_total_liquidity_updated(self, event: TotalLiquidityUpdated) -> None:
        caller = "handle_total_liquidity_updated"
        resolved = await self._tokens.resolve_pool(event.pool, caller=caller)
        if resolved is None:
            return
        reserve_token, pool_token, pool = resolved
        await self._update_liquidity(
            pool,
            caller=caller,
            reserve_token_id=reserve_token.id,
            pool_token_decimals=pool_token.decimals,
            staked_balance=event.staked_balance,
            pool_token_supply=event.pool_token_supply,
            block_number=event.block_number,
        )

    async def handle_bnt_total_liquidity_updated(self, event: BntTotalLiquidityUpdated) -> None:
        caller = "handle_bnt_total_liquidity_updated"
        resolved = await self._tokens.resolve_pool_by_pool_token(
            self._addresses.bnt, self._addresses.bnbnt, caller=caller
        )
        if resolved is None:
            return
        _, pool_token, pool = resolved
        await self._update_liquidity(
            pool,
            caller=caller,
            reserve_token_id=self._addresses.bnt,
            pool_token_decimals=pool_token.decimals,
            staked_balance=event.staked_balance,
            pool_token_supply=event.pool_token_supply,
            block_number=event.block_number,
        )

    async def _update_liquidity(
        self,
        pool: LiquidityPool,
        *,
        caller: str,
        reserve_token_id: str,
        pool_token_decimals: int,
        staked_balance: int,
        pool_token_supply: int,
        block_number: int,
    ) -> None:
        if await self._aggregator.load_protocol(caller=caller) is None:
            return

        value_locked_usd = await self._valuation.value_in_reference(reserve_token_id, staked_balance, block_number)
        one_share = 10**pool_token_decimals
        reserve_per_share = await self._valuation.underlying_amount(reserve_token_id, one_share, block_number)
        share_price_usd = await self._valuation.value_in_reference(reserve_token_id, reserve_per_share, block_number)

        await self._aggregator.update_liquidity(
            pool.id,
            staked_balance=staked_balance,
            pool_token_supply=pool_token_supply,
            value_locked_usd=value_locked_usd,
            output_token_price_usd=share_price_usd,
        )

    # -------------------------------------------------------------------------
    # Rewards
    # -------------------------------------------------------------------------

    async def handle_program_created(self, event: ProgramCreated) -> None:
        caller = "handle_program_created"
        resolved = await self._tokens.resolve_pool(event.pool, caller=caller)
        if resolved is None:
            return
        _, _, pool = resolved

        duration = event.end_time - event.start_time
        if duration <= 0:
            logger.warning(
                "[%s] program %s on %s has non-positive duration (%s..%s)",
                caller,
                event.program_id,
                event.pool,
                event.start_time,
                event.end_time,
            )
            return

        reward_rate = event.total_rewards // duration
        daily_amount = reward_rate * SECONDS_PER_DAY
        daily_amount_usd = await self._valuation.value_in_reference(
            event.rewards_token, daily_amount, event.block_number
        )
        await self._aggregator.set_reward_emissions(
            pool.id,
            rewards_token=event.rewards_token,
            daily_amount=daily_amount,
            daily_amount_usd=daily_amount_usd,
        )
