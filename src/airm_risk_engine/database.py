"""Primary database engine, session factory, and declarative base.

Key exports:
- Base                  — declarative base holding the shared metadata
- AirmModel             — abstract model with UUID id and UTC timestamps
- init_database(...)    — create the async engine and session factory at startup
- close_database()      — dispose the engine at shutdown
- get_session_factory() — session factory for components that open their own
                          sessions (the chunked import store opens one per chunk)
- get_db_session()      — FastAPI dependency yielding a request-scoped session
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime

from sqlalchemy import DateTime, Uuid
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from airm_risk_engine.observability import get_logger

logger = get_logger(__name__)

# Module-level engine and session factory — initialized by init_database()
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base holding the shared metadata."""


class AirmModel(Base):
    """Abstract base for all AIRM tables.

    Provides a UUID primary key plus created_at/updated_at columns so each
    model only declares its own fields.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


def init_database(database_url: str, pool_size: int = 10, max_overflow: int = 5) -> None:
    """Initialize the primary database engine and session factory.

    Must be called once at application startup before any repository is used.

    Args:
        database_url: SQLAlchemy async connection URL.
        pool_size: Connection pool size.
        max_overflow: Max overflow connections above pool_size.
    """
    global _engine, _session_factory  # noqa: PLW0603

    logger.info("Initializing database engine", pool_size=pool_size, max_overflow=max_overflow)

    _engine = create_async_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        echo=False,
    )
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def close_database() -> None:
    """Dispose the primary database engine."""
    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        logger.info("Disposing database engine")
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the initialized session factory.

    Returns:
        The async session factory.

    Raises:
        RuntimeError: If init_database() has not been called yet.
    """
    if _session_factory is None:
        raise RuntimeError(
            "Database has not been initialized. Call init_database() in the application lifespan handler."
        )
    return _session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a request-scoped session.

    Commits on success and rolls back on any exception.

    Yields:
        AsyncSession: A session bound to the primary database.
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
