"""SQLAlchemy async engine creation and lifecycle helpers.

Server databases (``postgresql+asyncpg://``) get a regular connection
pool. In-memory SQLite (``sqlite+aiosqlite:///:memory:``) only exists
per connection, so it is served from a pool of exactly one connection
that is never closed. Sessions wait for it in turn: a session never sees
another one's open transaction on the same connection.
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from .models import Base

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def create_engine(
    url: str,
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> AsyncEngine:
    """Create and return a new SQLAlchemy :class:`AsyncEngine`.

    Args:
        url: Database connection URL, e.g. ``postgresql+asyncpg://...`` or
            ``sqlite+aiosqlite:///facilitator.db``.
        pool_size: Number of persistent connections to keep in the pool.
        max_overflow: Maximum additional connections beyond *pool_size*.
        pool_timeout: Seconds to wait for a pooled connection.
        pool_recycle: Seconds after which a connection is recycled.
        echo: If ``True``, log all emitted SQL statements.

    Returns:
        A configured :class:`AsyncEngine` instance.
    """
    kwargs: dict = {}
    backend = make_url(url).get_backend_name()
    if _is_memory_sqlite(url):
        kwargs.update(
            poolclass=AsyncAdaptedQueuePool,
            pool_size=1,
            max_overflow=0,
            pool_timeout=pool_timeout,
            connect_args={"check_same_thread": False},
        )
    elif backend != "sqlite":
        kwargs.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
        )

    engine = create_async_engine(url, echo=echo, **kwargs)
    logger.info("Created async engine for %s", url.split("@")[-1])
    return engine


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables defined in the ORM metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created / verified.")


async def dispose(engine: AsyncEngine) -> None:
    """Dispose of *engine* and release all pooled connections."""
    await engine.dispose()
    logger.info("Engine disposed.")
