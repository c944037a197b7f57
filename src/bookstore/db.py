"""
SQLAlchemy 2.0 Database Configuration

Async engine, session factory and declarative base for the relational store.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from bookstore.deadlines import DATABASE, store_deadline
from bookstore.settings import settings

# ==========================================
# SQLAlchemy 2.0 Declarative Base
# ==========================================


class Base(DeclarativeBase):
    """Base class for all database models using SQLAlchemy 2.0 declarative mapping."""

    pass


class TimestampMixin:
    """Adds created_at and updated_at timestamps to models."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


# ==========================================
# Engine and Session Management
# ==========================================

_async_engine: AsyncEngine | None = None
_async_session_maker: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for_url(url: str, **kwargs: Any) -> AsyncEngine:
    """
    Create an async engine for ``url``.

    SQLite connections get foreign key enforcement switched on, the ledger
    relies on it to refuse entries that point at a deleted plan.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {}).setdefault("check_same_thread", False)
    else:
        kwargs.setdefault("pool_size", settings.database.pool_size)
        kwargs.setdefault("max_overflow", settings.database.max_overflow)
        kwargs.setdefault("pool_timeout", settings.database.pool_timeout)

    engine = create_async_engine(
        url,
        echo=settings.database.echo,
        pool_pre_ping=settings.database.pool_pre_ping,
        **kwargs,
    )
    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def get_async_engine() -> AsyncEngine:
    """Get or create the asynchronous engine."""
    global _async_engine
    if _async_engine is None:
        _async_engine = create_engine_for_url(settings.database_url)
    return _async_engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory bound to the global engine."""
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            bind=get_async_engine(),
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
    return _async_session_maker


async def get_async_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency for getting an async database session."""
    async with get_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def transaction(
    session: AsyncSession, operation: str, timeout: float | None
) -> AsyncIterator[AsyncSession]:
    """
    Run a unit of work that commits on success and rolls back on any error.

    The whole block, commit included, is bounded by ``timeout``.
    """
    try:
        async with store_deadline(DATABASE, timeout, operation):
            yield session
            await session.commit()
    except Exception:
        await session.rollback()
        raise


# ==========================================
# Database Initialization
# ==========================================


async def create_all_tables_async(engine: AsyncEngine | None = None) -> None:
    """Create all tables in the database asynchronously."""
    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    global _async_engine, _async_session_maker
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _async_session_maker = None


__all__ = [
    "Base",
    "TimestampMixin",
    "create_engine_for_url",
    "get_async_engine",
    "get_session_maker",
    "get_async_session",
    "transaction",
    "create_all_tables_async",
    "dispose_engine",
]
