import asyncio

from eth_utils import keccak
from sqlalchemy import text

from bancor_indexer.app.infrastructure.db.engine import create_app_async_engine
from bancor_indexer.app.infrastructure.decoders.bancor_v3.abi import (
    ALL_EVENT_ABIS,
    event_signature,
)


def build_signature_rows() -> list[dict]:
    rows: dict[bytes, dict] = {}
    for evt in ALL_EVENT_ABIS:
        sig = event_signature(evt)  # "TokensTraded(bytes32,address,...)"
        topic0 = keccak(text=sig)  # bytes(32)
        rows[topic0] = {
            "topic0": topic0,
            "event_name": evt["name"],
            "event_signature": sig,
        }
    return list(rows.values())


async def seed_event_signatures() -> None:
    """Register the Bancor v3 event signatures so the log indexer labels their topic0."""
    insert_sql = text(
        """
        INSERT INTO analytics.event_signatures (topic0, event_name, event_signature)
        VALUES (:topic0, :event_name, :event_signature)
        ON CONFLICT (topic0) DO NOTHING
        """
    )

    engine = create_app_async_engine()
    try:
        async with engine.begin() as conn:
            await conn.execute(insert_sql, build_signature_rows())
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_event_signatures())
