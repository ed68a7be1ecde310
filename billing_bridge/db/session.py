"""
Database session management.

WHY: Async database sessions are required for FastAPI's async/await pattern.
Using a context manager ensures proper connection cleanup and transaction management.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from billing_bridge.core.config import settings


def engine_options(url: str) -> Dict[str, Any]:
    """
    Pool options for the configured database.

    WHY: pool_pre_ping recycles stale connections on long-running servers.
    SQLite (local development, tests) does not take pool sizing arguments.
    """
    if url.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DEBUG,
    **engine_options(settings.async_database_url),
)

# Create session factory
# WHY: expire_on_commit=False lets handlers read records after commit.
# autoflush=False keeps writes explicit: RecordStore.save flushes.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    WHY: Each request gets its own session. Route handlers commit explicitly
    once all writes for the request succeeded; anything left uncommitted is
    rolled back when an exception escapes.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
