from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from bancor_indexer.app.domain.events import ChainEvent
from bancor_indexer.app.domain.ports.out import ChainEventSource, EvmEventDecoder

logger = logging.getLogger(__name__)


class SqlAlchemyEvmLogEventSource(ChainEventSource):
    """
    Event source adapter: streams Bancor v3 logs from analytics.evm_events.

    Strategy:
    - SQL filters candidate rows by (chain_id, block range, topic0 set).
    - Rows are paged with a (block_number, log_index) keyset, so no connection
      is held open while the handlers run.
    - Python decodes each row with the EvmEventDecoder; rows it does not
      recognise are dropped.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        decoder: EvmEventDecoder,
        topic0s_as_sql_filter: Sequence[bytes],
        batch_size: int = 10_000,
    ) -> None:
        self._engine = engine
        self._decoder = decoder
        self._topic0s = list(topic0s_as_sql_filter)
        self._batch_size = batch_size

    async def iter_events(
        self,
        *,
        chain_id: int,
        from_block: int,
        to_block: int,
    ) -> AsyncIterator[ChainEvent]:
        select_sql = text(
            """
            SELECT
                e.block_number,
                b.timestamp AS block_timestamp,
                e.transaction_hash,
                e.log_index,
                e.contract_address,
                e.topic0,
                e.topic1,
                e.topic2,
                e.topic3,
                e.data
            FROM analytics.evm_events e
            JOIN analytics.blocks b
              ON b.chain_id = e.chain_id
             AND b.block_number = e.block_number
            WHERE e.chain_id = :chain_id
              AND e.block_number BETWEEN :from_block AND :to_block
              AND e.topic0 = ANY(:topic0s)
              AND (e.block_number, e.log_index) > (:after_block, :after_log_index)
            ORDER BY e.block_number, e.log_index
            LIMIT :limit
            """
        )

        after_block, after_log_index = from_block - 1, -1
        undecoded = 0

        while True:
            async with self._engine.connect() as conn:
                result = await conn.execute(
                    select_sql,
                    {
                        "chain_id": chain_id,
                        "from_block": from_block,
                        "to_block": to_block,
                        "topic0s": self._topic0s,
                        "after_block": after_block,
                        "after_log_index": after_log_index,
                        "limit": self._batch_size,
                    },
                )
                batch = result.mappings().all()

            if not batch:
                break

            for r in batch:
                event = self._decode_row(r)
                if event is None:
                    undecoded += 1
                    continue
                yield event

            last = batch[-1]
            after_block, after_log_index = int(last["block_number"]), int(last["log_index"])

            if len(batch) < self._batch_size:
                break

        if undecoded:
            logger.info(
                "Dropped %s logs that did not decode as Bancor v3 events",
                undecoded,
                extra={"chain_id": chain_id, "from_block": from_block, "to_block": to_block},
            )

    def _decode_row(self, r: Any) -> ChainEvent | None:
        return self._decoder.decode(
            contract_address=bytes(r["contract_address"]),
            block_number=int(r["block_number"]),
            block_timestamp=_as_unix_seconds(r["block_timestamp"]),
            transaction_hash=bytes(r["transaction_hash"]),
            log_index=int(r["log_index"]),
            topic0=_as_bytes(r["topic0"]),
            topic1=_as_bytes(r["topic1"]),
            topic2=_as_bytes(r["topic2"]),
            topic3=_as_bytes(r["topic3"]),
            data=bytes(r["data"] or b""),
        )


def _as_bytes(value: Any) -> bytes | None:
    if value is None:
        return None
    return bytes(value)


def _as_unix_seconds(value: datetime | int) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp())
    return int(value)
