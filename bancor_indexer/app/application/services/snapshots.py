from __future__ import annotations

import logging
from decimal import Decimal

from bancor_indexer.app.application.services.valuation import ValuationService
from bancor_indexer.app.domain.bucketing import day_index, hour_index, snapshot_id
from bancor_indexer.app.domain.entities import (
    DexAmmProtocol,
    FinancialsDailySnapshot,
    LiquidityPool,
    LiquidityPoolDailySnapshot,
    LiquidityPoolHourlySnapshot,
)
from bancor_indexer.app.domain.ports.out import EntityStore
from bancor_indexer.app.domain.revenue import RevenueSplit

logger = logging.getLogger(__name__)

ZERO_BD = Decimal(0)


class Snapshotter:
    """
    Daily/hourly snapshot records for pools and daily financials for the protocol.

    Snapshots are created on first touch within a bucket and then updated in two
    ways: per-bucket deltas (volume, revenue) are added, instantaneous values
    (TVL, supply, price, cumulative totals) are copied from the live aggregate.
    """

    def __init__(
        self,
        store: EntityStore,
        valuation: ValuationService,
        *,
        protocol_id: str,
        bnt_address: str,
        bnbnt_address: str,
    ) -> None:
        self._store = store
        self._valuation = valuation
        self._protocol_id = protocol_id
        self._bnt = bnt_address
        self._bnbnt = bnbnt_address

    # -------------------------------------------------------------------------
    # Liquidity pools
    # -------------------------------------------------------------------------

    async def _pool_daily(self, pool_id: str, block_number: int, block_timestamp: int) -> LiquidityPoolDailySnapshot:
        sid = snapshot_id(pool_id, day_index(block_timestamp))
        snapshot = await self._store.find(LiquidityPoolDailySnapshot, sid)
        if snapshot is None:
            snapshot = await self._store.create(
                LiquidityPoolDailySnapshot,
                sid,
                protocol=self._protocol_id,
                pool=pool_id,
                block_number=block_number,
                timestamp=block_timestamp,
            )
        return snapshot

    async def _pool_hourly(self, pool_id: str, block_number: int, block_timestamp: int) -> LiquidityPoolHourlySnapshot:
        sid = snapshot_id(pool_id, hour_index(block_timestamp))
        snapshot = await self._store.find(LiquidityPoolHourlySnapshot, sid)
        if snapshot is None:
            snapshot = await self._store.create(
                LiquidityPoolHourlySnapshot,
                sid,
                protocol=self._protocol_id,
                pool=pool_id,
                block_number=block_number,
                timestamp=block_timestamp,
            )
        return snapshot

    async def snapshot_liquidity_pool(self, pool_id: str, *, block_number: int, block_timestamp: int) -> None:
        pool = await self._store.find(LiquidityPool, pool_id)
        if pool is None:
            logger.warning("[snapshot_liquidity_pool] liquidity pool %s not found", pool_id)
            return

        daily = await self._pool_daily(pool_id, block_number, block_timestamp)
        hourly = await self._pool_hourly(pool_id, block_number, block_timestamp)

        for snapshot in (daily, hourly):
            snapshot.total_value_locked_usd = pool.total_value_locked_usd
            snapshot.cumulative_volume_usd = pool.cumulative_volume_usd
            snapshot.input_token_balances = [pool.input_token_balances[0]]
            snapshot.input_token_weights = [pool.input_token_weights[0]]
            snapshot.output_token_supply = pool.output_token_supply
            snapshot.output_token_price_usd = pool.output_token_price_usd
            snapshot.staked_output_token_amount = pool.staked_output_token_amount
            snapshot.reward_token_emissions_amount = [pool.reward_token_emissions_amount[0]]
            snapshot.reward_token_emissions_usd = list(pool.reward_token_emissions_usd)
            await self._store.save(snapshot)

    async def update_liquidity_pool_volume(
        self,
        pool_id: str,
        *,
        amount: int,
        amount_usd: Decimal,
        block_number: int,
        block_timestamp: int,
    ) -> None:
        daily = await self._pool_daily(pool_id, block_number, block_timestamp)
        daily.daily_volume_by_token_amount = [daily.daily_volume_by_token_amount[0] + amount]
        daily.daily_volume_by_token_usd = [daily.daily_volume_by_token_usd[0] + amount_usd]
        daily.daily_volume_usd = daily.daily_volume_by_token_usd[0]
        await self._store.save(daily)

        hourly = await self._pool_hourly(pool_id, block_number, block_timestamp)
        hourly.hourly_volume_by_token_amount = [hourly.hourly_volume_by_token_amount[0] + amount]
        hourly.hourly_volume_by_token_usd = [hourly.hourly_volume_by_token_usd[0] + amount_usd]
        hourly.hourly_volume_usd = hourly.hourly_volume_by_token_usd[0]
        await self._store.save(hourly)

    # -------------------------------------------------------------------------
    # Financials
    # -------------------------------------------------------------------------

    async def _financials_daily(self, block_timestamp: int) -> FinancialsDailySnapshot:
        sid = snapshot_id(self._protocol_id, day_index(block_timestamp))
        snapshot = await self._store.find(FinancialsDailySnapshot, sid)
        if snapshot is None:
            snapshot = await self._store.create(FinancialsDailySnapshot, sid, protocol=self._protocol_id)
        return snapshot

    async def snapshot_financials(self, *, block_number: int, block_timestamp: int) -> None:
        protocol = await self._store.find(DexAmmProtocol, self._protocol_id)
        if protocol is None:
            logger.warning("[snapshot_financials] protocol not found")
            return

        snapshot = await self._financials_daily(block_timestamp)
        snapshot.timestamp = block_timestamp
        snapshot.block_number = block_number
        snapshot.total_value_locked_usd = protocol.total_value_locked_usd
        snapshot.cumulative_total_revenue_usd = protocol.cumulative_total_revenue_usd
        snapshot.cumulative_protocol_side_revenue_usd = protocol.cumulative_protocol_side_revenue_usd
        snapshot.cumulative_supply_side_revenue_usd = protocol.cumulative_supply_side_revenue_usd

        # Audit pass: volume is summed over pools rather than read from the protocol.
        cumulative_volume_usd = ZERO_BD
        daily_volume_usd = ZERO_BD
        summed_value_locked_usd = ZERO_BD
        day = day_index(block_timestamp)
        for pool_id in protocol.pool_ids:
            pool = await self._store.find(LiquidityPool, pool_id)
            if pool is None:
                logger.warning("[snapshot_financials] liquidity pool %s not found", pool_id)
                continue
            cumulative_volume_usd += pool.cumulative_volume_usd
            summed_value_locked_usd += pool.total_value_locked_usd

            pool_snapshot_id = snapshot_id(pool_id, day)
            pool_snapshot = await self._store.find(LiquidityPoolDailySnapshot, pool_snapshot_id)
            if pool_snapshot is None:
                logger.debug("[snapshot_financials] liquidity pool daily snapshot %s not found", pool_snapshot_id)
                continue
            daily_volume_usd += pool_snapshot.daily_volume_usd

        if summed_value_locked_usd != protocol.total_value_locked_usd:
            logger.warning(
                "[snapshot_financials] protocol TVL %s differs from sum of pool TVLs %s",
                protocol.total_value_locked_usd,
                summed_value_locked_usd,
            )

        snapshot.cumulative_volume_usd = cumulative_volume_usd
        snapshot.daily_volume_usd = daily_volume_usd
        await self._store.save(snapshot)

        # protocol controlled value = BNT held through bnBNT, valued in DAI
        bnt_pool = await self._store.find(LiquidityPool, self._bnbnt)
        if bnt_pool is None:
            logger.warning("[snapshot_financials] bnBNT liquidity pool not found")
            return

        bnt_amount = await self._valuation.underlying_amount(self._bnt, bnt_pool.output_token_supply, block_number)
        snapshot.protocol_controlled_value_usd = await self._valuation.value_in_reference(
            self._bnt, bnt_amount, block_number
        )
        await self._store.save(snapshot)

    async def update_financials_revenue(
        self,
        split: RevenueSplit,
        *,
        block_number: int,
        block_timestamp: int,
    ) -> None:
        snapshot = await self._financials_daily(block_timestamp)
        snapshot.timestamp = block_timestamp
        snapshot.block_number = block_number
        snapshot.daily_total_revenue_usd += split.total
        snapshot.daily_protocol_side_revenue_usd += split.protocol_side
        snapshot.daily_supply_side_revenue_usd += split.supply_side
        await self._store.save(snapshot)
