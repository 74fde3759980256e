from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncEngine

from bancor_indexer.app.domain.entities import Entity
from bancor_indexer.app.domain.ports.out import EntityStore
from bancor_indexer.app.infrastructure.db.models.subgraph.entities import SubgraphEntitiesDB

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class SqlAlchemyEntityStore(EntityStore):
    """
    Entity store adapter backed by subgraph.entities (PostgreSQL JSONB).

    Every call runs in its own transaction; `save` is an upsert on
    (entity_type, entity_id) that replaces the whole payload.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._table = SubgraphEntitiesDB.__table__

    async def find(self, model: type[E], entity_id: str) -> E | None:
        stmt = select(self._table.c.data).where(
            self._table.c.entity_type == model.entity_type(),
            self._table.c.entity_id == entity_id,
        )
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            data = result.scalar_one_or_none()

        if data is None:
            return None
        return model.model_validate(data)

    async def create(self, model: type[E], entity_id: str, **defaults: Any) -> E:
        entity = model(id=entity_id, **defaults)
        await self.save(entity)
        return entity

    async def save(self, entity: Entity) -> None:
        block = getattr(entity, "block_number", None)
        row = {
            "entity_type": entity.entity_type(),
            "entity_id": entity.id,
            "data": entity.model_dump(mode="json"),
            "updated_block": block if isinstance(block, int) else None,
            "updated_at": datetime.now(timezone.utc),
        }

        stmt = pg_insert(self._table).values(row)
        stmt = stmt.on_conflict_do_update(
            index_elements=["entity_type", "entity_id"],
            set_={
                "data": stmt.excluded.data,
                "updated_block": stmt.excluded.updated_block,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        async with self._engine.begin() as conn:
            await conn.execute(stmt)

        logger.debug("Saved %s %s", row["entity_type"], row["entity_id"])
