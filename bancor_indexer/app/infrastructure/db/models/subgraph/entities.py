from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    PrimaryKeyConstraint,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from bancor_indexer.app.infrastructure.db.db_base import BaseDB


class SubgraphEntitiesDB(BaseDB):
    """
    Key-value store for the derived Bancor v3 entities.

    One row = one entity (token, pool, protocol, event record, snapshot ...),
    keyed by (entity_type, entity_id). The payload is the JSON dump of the
    pydantic entity; decimals are stored as strings to keep full precision.
    """

    __tablename__ = "entities"
    __table_args__ = (
        PrimaryKeyConstraint("entity_type", "entity_id"),
        # Snapshot listings by type in block order
        Index(
            "ix_subgraph_entities_type_block",
            "entity_type",
            "updated_block",
        ),
        {"schema": "subgraph"},
    )

    entity_type: Mapped[str] = mapped_column(Text, nullable=False)
    entity_id: Mapped[str] = mapped_column(Text, nullable=False)

    data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)

    # Block of the event that last wrote the row, when the entity carries one
    updated_block: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
