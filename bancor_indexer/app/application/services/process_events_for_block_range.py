from __future__ import annotations

import logging
from dataclasses import dataclass

from bancor_indexer.app.application.services.router import EventRouter
from bancor_indexer.app.domain.entities import PoolCollection
from bancor_indexer.app.domain.events import POOL_COLLECTION_EVENTS, ChainEvent
from bancor_indexer.app.domain.ports.out import ChainEventSource, EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockRange:
    from_block: int
    to_block: int

    def validate(self) -> None:
        if self.from_block < 0 or self.to_block < 0:
            raise ValueError("Block numbers must be non-negative")
        if self.from_block > self.to_block:
            raise ValueError("from_block must be <= to_block")


@dataclass
class ProcessingStats:
    processed: int = 0
    skipped: int = 0
    failed: int = 0


async def _from_registered_source(store: EntityStore, event: ChainEvent) -> bool:
    # Pool-collection logs only count once the collection was added to the network.
    if not isinstance(event, POOL_COLLECTION_EVENTS):
        return True
    return await store.find(PoolCollection, event.contract_address) is not None


async def process_events_for_block_range(
    *,
    source: ChainEventSource,
    router: EventRouter,
    store: EntityStore,
    chain_id: int,
    block_range: BlockRange,
) -> ProcessingStats:
    """
    Feed every event of a block range through the router, strictly one at a time.

    A handler that raises does not stop the stream: the error is logged with the
    event position and processing continues with the next event.
    """
    block_range.validate()
    stats = ProcessingStats()

    logger.info(
        "Starting Bancor v3 event processing",
        extra={
            "chain_id": chain_id,
            "from_block": block_range.from_block,
            "to_block": block_range.to_block,
        },
    )

    async for event in source.iter_events(
        chain_id=chain_id,
        from_block=block_range.from_block,
        to_block=block_range.to_block,
    ):
        if not await _from_registered_source(store, event):
            logger.debug(
                "Skipping %s from unregistered pool collection %s",
                type(event).__name__,
                event.contract_address,
            )
            stats.skipped += 1
            continue

        try:
            handled = await router.dispatch(event)
        except Exception:
            logger.exception(
                "Handler for %s failed at block %s log %s",
                type(event).__name__,
                event.block_number,
                event.log_index,
            )
            stats.failed += 1
            continue

        if handled:
            stats.processed += 1
        else:
            stats.skipped += 1

    logger.info(
        "Finished Bancor v3 event processing (processed=%s skipped=%s failed=%s)",
        stats.processed,
        stats.skipped,
        stats.failed,
    )
    return stats
