from __future__ import annotations

import logging
from decimal import Decimal

from bancor_indexer.app.domain.entities import DexAmmProtocol, LiquidityPool, Token
from bancor_indexer.app.domain.ports.out import EntityStore
from bancor_indexer.app.domain.revenue import RevenueSplit

logger = logging.getLogger(__name__)

PPM = Decimal(1_000_000)


class ProtocolAggregator:
    """
    Cumulative metrics of the protocol singleton and its liquidity pools.

    Every method loads what it mutates from the store and saves it before
    returning; nothing is cached between calls.

    Protocol TVL is kept equal to the sum of pool TVLs by applying the change
    of a pool's TVL (`apply_value_locked_delta`), never by recomputing it.
    """

    def __init__(self, store: EntityStore, *, protocol_id: str) -> None:
        self._store = store
        self._protocol_id = protocol_id

    @property
    def protocol_id(self) -> str:
        return self._protocol_id

    async def get_or_create_protocol(self) -> DexAmmProtocol:
        protocol = await self._store.find(DexAmmProtocol, self._protocol_id)
        if protocol is None:
            protocol = await self._store.create(DexAmmProtocol, self._protocol_id)
        return protocol

    async def load_protocol(self, *, caller: str) -> DexAmmProtocol | None:
        protocol = await self._store.find(DexAmmProtocol, self._protocol_id)
        if protocol is None:
            logger.error("[%s] protocol %s not found, this SHOULD NOT happen", caller, self._protocol_id)
        return protocol

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    async def set_network_fee_ppm(self, fee_ppm: int) -> DexAmmProtocol:
        protocol = await self.get_or_create_protocol()
        protocol.network_fee_rate = Decimal(fee_ppm) / PPM
        await self._store.save(protocol)
        return protocol

    async def set_withdrawal_fee_ppm(self, fee_ppm: int) -> DexAmmProtocol:
        protocol = await self.get_or_create_protocol()
        protocol.withdrawal_fee_rate = Decimal(fee_ppm) / PPM
        await self._store.save(protocol)
        return protocol

    # -------------------------------------------------------------------------
    # Pools
    # -------------------------------------------------------------------------

    async def create_liquidity_pool(
        self,
        *,
        reserve_token: Token,
        pool_token: Token,
        block_timestamp: int,
        block_number: int,
    ) -> LiquidityPool:
        protocol = await self.get_or_create_protocol()

        pool = LiquidityPool(
            id=pool_token.id,
            protocol=protocol.id,
            name=pool_token.name,
            symbol=pool_token.symbol,
            input_tokens=[reserve_token.id],
            output_token=pool_token.id,
            created_timestamp=block_timestamp,
            created_block_number=block_number,
        )
        await self._store.save(pool)

        if pool.id not in protocol.pool_ids:
            protocol.pool_ids = [*protocol.pool_ids, pool.id]
            await self._store.save(protocol)

        return pool

    async def record_trade(
        self,
        pool_id: str,
        *,
        volume_usd: Decimal,
        trading_fee_usd: Decimal,
    ) -> None:
        pool = await self._store.find(LiquidityPool, pool_id)
        if pool is None:
            logger.warning("[record_trade] liquidity pool %s not found", pool_id)
            return
        pool.cumulative_volume_usd += volume_usd
        pool.cumulative_trading_fee_amount_usd += trading_fee_usd
        await self._store.save(pool)

        protocol = await self.load_protocol(caller="record_trade")
        if protocol is None:
            return
        protocol.cumulative_volume_usd += volume_usd
        await self._store.save(protocol)

    async def record_withdrawal_fee(self, pool_id: str, *, withdrawal_fee_usd: Decimal) -> None:
        pool = await self._store.find(LiquidityPool, pool_id)
        if pool is None:
            logger.warning("[record_withdrawal_fee] liquidity pool %s not found", pool_id)
            return
        pool.cumulative_withdrawal_fee_amount_usd += withdrawal_fee_usd
        await self._store.save(pool)

    async def update_liquidity(
        self,
        pool_id: str,
        *,
        staked_balance: int,
        pool_token_supply: int,
        value_locked_usd: Decimal,
        output_token_price_usd: Decimal,
    ) -> None:
        pool = await self._store.find(LiquidityPool, pool_id)
        if pool is None:
            logger.warning("[update_liquidity] liquidity pool %s not found", pool_id)
            return

        # Must be read before the pool is overwritten.
        prev_value_locked_usd = pool.total_value_locked_usd

        pool.input_token_balances = [staked_balance]
        pool.total_value_locked_usd = value_locked_usd
        pool.output_token_supply = pool_token_supply
        pool.output_token_price_usd = output_token_price_usd
        await self._store.save(pool)

        await self.apply_value_locked_delta(prev_value_locked_usd, value_locked_usd)

    async def apply_value_locked_delta(self, prev_usd: Decimal, curr_usd: Decimal) -> None:
        protocol = await self.load_protocol(caller="apply_value_locked_delta")
        if protocol is None:
            return
        protocol.total_value_locked_usd = protocol.total_value_locked_usd + curr_usd - prev_usd
        await self._store.save(protocol)

    async def set_reward_emissions(
        self,
        pool_id: str,
        *,
        rewards_token: str,
        daily_amount: int,
        daily_amount_usd: Decimal,
    ) -> None:
        # One active program per pool: a new program replaces the previous rate.
        pool = await self._store.find(LiquidityPool, pool_id)
        if pool is None:
            logger.warning("[set_reward_emissions] liquidity pool %s not found", pool_id)
            return
        pool.reward_tokens = [rewards_token]
        pool.reward_token_emissions_amount = [daily_amount]
        pool.reward_token_emissions_usd = [daily_amount_usd]
        await self._store.save(pool)

    # -------------------------------------------------------------------------
    # Revenue
    # -------------------------------------------------------------------------

    async def record_revenue(self, split: RevenueSplit) -> None:
        protocol = await self.load_protocol(caller="record_revenue")
        if protocol is None:
            return
        protocol.cumulative_total_revenue_usd += split.total
        protocol.cumulative_protocol_side_revenue_usd += split.protocol_side
        protocol.cumulative_supply_side_revenue_usd += split.supply_side
        await self._store.save(protocol)
