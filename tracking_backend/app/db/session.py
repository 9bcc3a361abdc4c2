"""
Database session configuration.

Builds the async engine for the configured URL: pooled asyncpg for
PostgreSQL, with SQLite (aiosqlite) accepted for local runs and tests.
"""

from typing import Any, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from tracking_backend.app.core.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """Engine keyword arguments for a database URL."""
    options: Dict[str, Any] = {"echo": settings.db_echo}
    if make_url(database_url).get_backend_name() == "sqlite":
        # SQLite has no connection pool sizing
        return options

    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Declarative base for tracking models
Base = declarative_base()


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async session; uncommitted work is rolled back on close.
    """
    async with AsyncSessionLocal() as session:
        yield session
