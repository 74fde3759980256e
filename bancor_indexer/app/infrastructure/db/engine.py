from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from bancor_indexer.app.config import settings


def create_app_async_engine(*, echo: bool | None = None) -> AsyncEngine:
    """
    AsyncEngine shared by the event source and the SQL entity store.

    `echo` overrides SQL_ECHO for a single run.
    """
    return create_async_engine(
        settings.database_url,  # postgresql+asyncpg://...
        echo=settings.sql_echo if echo is None else echo,
        pool_size=settings.db_pool_size,
        pool_pre_ping=True,
    )
