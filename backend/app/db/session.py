"""
Database session configuration.

One async engine per process over the shared relational store. Services
receive an AsyncSession and commit their own units of work; the request
dependency only guarantees that an unfinished transaction is rolled back.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from backend.app.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

# Instances stay readable after commit; lifecycle services re-read with populate_existing
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


def utcnow() -> datetime:
    """Timezone-aware current time used for every lifecycle timestamp."""
    return datetime.now(timezone.utc)


async def get_db():
    """
    FastAPI dependency for database sessions.

    Anything left uncommitted when the request ends (an exception between
    two writes, a timeout) is rolled back, never committed implicitly.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
