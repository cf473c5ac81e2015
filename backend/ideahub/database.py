"""
IdeaHub Backend — Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory and the transactional scope
       every store operation runs in.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling. Stores receive the
       session factory explicitly and open one short transaction per
       operation through `session_scope()`.
Who:   Used by the SQL stores (ideahub.stores) and the health check.

Transaction granularity:
    Each store call is one transaction: the rate-limit increment commits even
    when the request later fails, and a slow request never holds a counter
    row lock for its whole duration. All idea mutations are single-row, so
    "one call = one transaction" is also the atomicity the API promises.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ideahub.config import settings


def _engine_options() -> Dict[str, Any]:
    """Pool options only apply to server databases; SQLite manages its own pool."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


engine: AsyncEngine = create_async_engine(settings.database_url, **_engine_options())

# expire_on_commit=False: rows stay readable after the scope commits and closes
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """
    Run one unit of work: commit on success, roll back on any error, always close.

    Example:
        async with session_scope(self._session_factory) as session:
            session.add(idea)
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency returning the process-wide session factory."""
    return async_session_factory


async def dispose_engine() -> None:
    """Close every pooled connection. Called from the lifespan shutdown path."""
    await engine.dispose()
