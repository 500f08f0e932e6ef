"""SQLAlchemy base configuration and session management."""

from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import JSON, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.config import get_settings

settings = get_settings()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def get_engine(url: str | None = None):
    """Create a new async engine (use for the current event loop)."""
    return create_async_engine(
        url or settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        echo=settings.debug,
    )


def get_session_factory(engine=None):
    """Create a session factory for the given engine."""
    if engine is None:
        engine = get_engine()
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Default engine and session factory for FastAPI (single event loop)
engine = get_engine()
async_session_factory = get_session_factory(engine)


@asynccontextmanager
async def get_task_session():
    """
    Get a database session for use in Celery tasks.

    Creates a fresh engine and session factory to avoid event loop issues.
    """
    task_engine = get_engine()
    task_session_factory = get_session_factory(task_engine)
    async with task_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
    await task_engine.dispose()


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


def dialect_insert(session: AsyncSession, model):
    """
    Build an INSERT supporting ON CONFLICT for the session's dialect.

    PostgreSQL in production, SQLite in tests. Both expose the same
    ``on_conflict_do_update`` / ``excluded`` API.
    """
    if session.get_bind().dialect.name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        from sqlalchemy.dialects.postgresql import insert
    return insert(model)

