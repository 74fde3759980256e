from __future__ import annotations

from typing import Literal, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine


BlockSelector = int | str
_EARLIEST: Literal["earliest"] = "earliest"
_LATEST: Literal["latest"] = "latest"


def parse_block_selector(value: BlockSelector) -> BlockSelector:
    """Turn CLI input into an int when it is numeric, keep keywords as-is."""
    if isinstance(value, int):
        return value
    stripped = value.strip()
    if stripped.isdigit():
        return int(stripped)
    return stripped.lower()


async def resolve_event_block_bounds(
    *,
    engine: AsyncEngine,
    chain_id: int,
    from_block: BlockSelector,
    to_block: BlockSelector,
    topic0s: Sequence[bytes],
) -> tuple[int, int]:
    """
    Resolve from_block / to_block against the Bancor v3 logs present in analytics.evm_events.

    - ints are returned as-is,
    - "earliest" / "" -> first block holding one of `topic0s`,
    - "latest" / ""   -> last block holding one of `topic0s`.
    """
    from_block = parse_block_selector(from_block)
    to_block = parse_block_selector(to_block)

    if isinstance(from_block, int) and isinstance(to_block, int):
        return from_block, to_block

    sql = text(
        """
        SELECT
            MIN(block_number) AS min_block,
            MAX(block_number) AS max_block
        FROM analytics.evm_events
        WHERE chain_id = :chain_id
          AND topic0 = ANY(:topic0s)
        """
    )

    async with engine.connect() as conn:
        result = await conn.execute(sql, {"chain_id": chain_id, "topic0s": list(topic0s)})
        row = result.one_or_none()

    if row is None or row.min_block is None or row.max_block is None:
        raise RuntimeError(f"No Bancor v3 events found in analytics.evm_events for chain_id={chain_id}")

    if isinstance(from_block, int):
        fb = from_block
    elif from_block in ("", _EARLIEST):
        fb = int(row.min_block)
    else:
        raise ValueError(f"Unsupported from_block value: {from_block!r}")

    if isinstance(to_block, int):
        tb = to_block
    elif to_block in ("", _LATEST):
        tb = int(row.max_block)
    else:
        raise ValueError(f"Unsupported to_block value: {to_block!r}")

    return fb, tb
