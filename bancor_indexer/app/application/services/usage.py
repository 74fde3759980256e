from __future__ import annotations

import logging

from bancor_indexer.app.domain.bucketing import (
    active_account_id,
    day_index,
    hour_index,
    snapshot_id,
)
from bancor_indexer.app.domain.entities import (
    Account,
    ActiveAccount,
    DexAmmProtocol,
    HourlyActiveAccount,
    UsageMetricsDailySnapshot,
    UsageMetricsHourlySnapshot,
)
from bancor_indexer.app.domain.ports.out import EntityStore
from bancor_indexer.app.domain.revenue import EventType

logger = logging.getLogger(__name__)


class UsageTracker:
    """Unique/active account counts and per-event-type counters, daily and hourly."""

    def __init__(self, store: EntityStore, *, protocol_id: str) -> None:
        self._store = store
        self._protocol_id = protocol_id

    async def track(
        self,
        *,
        account_id: str,
        event_type: EventType,
        block_number: int,
        block_timestamp: int,
    ) -> None:
        protocol = await self._store.find(DexAmmProtocol, self._protocol_id)
        if protocol is None:
            logger.error("[track] protocol not found, this SHOULD NOT happen")
            return

        account = await self._store.find(Account, account_id)
        if account is None:
            await self._store.create(Account, account_id)
            protocol.cumulative_unique_users += 1
            await self._store.save(protocol)

        await self._track_daily(protocol, account_id, event_type, block_number, block_timestamp)
        await self._track_hourly(protocol, account_id, event_type, block_number, block_timestamp)

    async def _mark_active(self, model: type[ActiveAccount], account_id: str, index: int) -> bool:
        """Record the account as active in a bucket; True if it was not already."""
        marker_id = active_account_id(account_id, index)
        if await self._store.find(model, marker_id) is not None:
            return False
        await self._store.create(model, marker_id)
        return True

    async def _track_daily(
        self,
        protocol: DexAmmProtocol,
        account_id: str,
        event_type: EventType,
        block_number: int,
        block_timestamp: int,
    ) -> None:
        index = day_index(block_timestamp)
        sid = snapshot_id(protocol.id, index)
        snapshot = await self._store.find(UsageMetricsDailySnapshot, sid)
        if snapshot is None:
            snapshot = await self._store.create(
                UsageMetricsDailySnapshot,
                sid,
                protocol=protocol.id,
                block_number=block_number,
                timestamp=block_timestamp,
            )

        if await self._mark_active(ActiveAccount, account_id, index):
            snapshot.daily_active_users += 1

        snapshot.cumulative_unique_users = protocol.cumulative_unique_users
        snapshot.daily_transaction_count += 1
        if event_type is EventType.DEPOSIT:
            snapshot.daily_deposit_count += 1
        elif event_type is EventType.WITHDRAW:
            snapshot.daily_withdraw_count += 1
        elif event_type is EventType.SWAP:
            snapshot.daily_swap_count += 1

        snapshot.block_number = block_number
        snapshot.timestamp = block_timestamp
        await self._store.save(snapshot)

    async def _track_hourly(
        self,
        protocol: DexAmmProtocol,
        account_id: str,
        event_type: EventType,
        block_number: int,
        block_timestamp: int,
    ) -> None:
        index = hour_index(block_timestamp)
        sid = snapshot_id(protocol.id, index)
        snapshot = await self._store.find(UsageMetricsHourlySnapshot, sid)
        if snapshot is None:
            snapshot = await self._store.create(
                UsageMetricsHourlySnapshot,
                sid,
                protocol=protocol.id,
                block_number=block_number,
                timestamp=block_timestamp,
            )

        if await self._mark_active(HourlyActiveAccount, account_id, index):
            snapshot.hourly_active_users += 1

        snapshot.cumulative_unique_users = protocol.cumulative_unique_users
        snapshot.hourly_transaction_count += 1
        if event_type is EventType.DEPOSIT:
            snapshot.hourly_deposit_count += 1
        elif event_type is EventType.WITHDRAW:
            snapshot.hourly_withdraw_count += 1
        elif event_type is EventType.SWAP:
            snapshot.hourly_swap_count += 1

        snapshot.block_number = block_number
        snapshot.timestamp = block_timestamp
        await self._store.save(snapshot)
