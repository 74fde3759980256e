from __future__ import annotations

from typing import Any, Iterator, TypeVar

from bancor_indexer.app.domain.entities import Entity
from bancor_indexer.app.domain.ports.out import EntityStore

E = TypeVar("E", bound=Entity)


class InMemoryEntityStore(EntityStore):
    """
    Dict-backed entity store.

    Entities are kept as their JSON dump and re-validated on every read, so a
    caller mutating a loaded entity never changes the stored copy until it
    calls `save`. Used for dry runs and tests.
    """

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], dict[str, Any]] = {}

    async def find(self, model: type[E], entity_id: str) -> E | None:
        row = self._rows.get((model.entity_type(), entity_id))
        if row is None:
            return None
        return model.model_validate(row)

    async def create(self, model: type[E], entity_id: str, **defaults: Any) -> E:
        entity = model(id=entity_id, **defaults)
        await self.save(entity)
        return entity

    async def save(self, entity: Entity) -> None:
        self._rows[(entity.entity_type(), entity.id)] = entity.model_dump(mode="json")

    # ---------------------------------------------------------------------
    # Inspection helpers (not part of the port)
    # ---------------------------------------------------------------------

    def all(self, model: type[E]) -> Iterator[E]:
        name = model.entity_type()
        for (entity_type, _), row in self._rows.items():
            if entity_type == name:
                yield model.model_validate(row)

    def count(self, model: type[E] | None = None) -> int:
        if model is None:
            return len(self._rows)
        name = model.entity_type()
        return sum(1 for entity_type, _ in self._rows if entity_type == name)
