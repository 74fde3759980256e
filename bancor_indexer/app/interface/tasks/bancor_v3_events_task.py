from __future__ import annotations

import logging

from bancor_indexer.app.application.services.block_bounds import resolve_event_block_bounds
from bancor_indexer.app.application.services.process_events_for_block_range import (
    BlockRange,
    ProcessingStats,
    process_events_for_block_range,
)
from bancor_indexer.app.infrastructure.db.engine import create_app_async_engine
from bancor_indexer.app.infrastructure.factories.bancor_v3_event_processor_factory import (
    bancor_v3_event_pipeline_factory,
)

logger = logging.getLogger(__name__)


async def process_bancor_v3_events_task(
    *,
    chain_id: int,
    from_block: int | str,
    to_block: int | str,
    backend: str = "sqlalchemy",
) -> ProcessingStats:
    """
    Task: derive Bancor v3 analytics entities for a given chain and block range.

    - selects Bancor v3 logs from analytics.evm_events (topic0 set filter in adapter),
    - decodes them into typed events and feeds them through the event router in order,
    - writes derived entities to subgraph.entities (or keeps them in memory for
      backend="memory").
    """
    engine = create_app_async_engine()
    try:
        pipeline = bancor_v3_event_pipeline_factory(backend=backend, engine=engine)

        resolved_from_block, resolved_to_block = await resolve_event_block_bounds(
            engine=engine,
            chain_id=chain_id,
            from_block=from_block,
            to_block=to_block,
            topic0s=pipeline.topic0s,
        )

        return await process_events_for_block_range(
            source=pipeline.source,
            router=pipeline.router,
            store=pipeline.store,
            chain_id=chain_id,
            block_range=BlockRange(
                from_block=resolved_from_block,
                to_block=resolved_to_block,
            ),
        )
    finally:
        await engine.dispose()


async def dry_run_bancor_v3_events_task(
    *,
    chain_id: int,
    from_block: int | str,
    to_block: int | str,
) -> ProcessingStats:
    """Same as process_bancor_v3_events_task, but derived entities are never persisted."""
    stats = await process_bancor_v3_events_task(
        chain_id=chain_id,
        from_block=from_block,
        to_block=to_block,
        backend="memory",
    )
    logger.info("Dry run finished: %s", stats)
    return stats
