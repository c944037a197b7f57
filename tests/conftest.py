"""
Global pytest configuration and fixtures for the bookstore API tests.

Relational tests run against SQLite through aiosqlite, Redis tests against
fakeredis. Nothing here needs a running server.
"""

import os
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal

# Keep tests off any developer .env database or Redis
os.environ.setdefault("ENVIRONMENT", "test")

import fakeredis
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from bookstore.auth.core import UserIdentity, UserRole
from bookstore.auth.session_store import SessionStore
from bookstore.commerce.models import SubscriptionPlan
from bookstore.commerce.plan_service import PlanService
from bookstore.commerce.subscription_service import SubscriptionService
from bookstore.db import Base, create_engine_for_url


class FrozenClock:
    """Controllable UTC clock for ledger tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


# ========================================
# Database
# ========================================


async def _create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest_asyncio.fixture
async def async_db_engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with a fresh schema per test."""
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await _create_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def async_db_session(async_db_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    session_maker = async_sessionmaker(
        async_db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def file_db_session_maker(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """
    File backed SQLite database for tests that need several connections.

    Each session gets its own connection, so writers really do contend.
    """
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'ledger.sqlite'}")
    await _create_schema(engine)
    try:
        yield async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
    finally:
        await engine.dispose()


# ========================================
# Redis
# ========================================


@pytest_asyncio.fixture
async def redis_client() -> AsyncIterator[fakeredis.aioredis.FakeRedis]:
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest.fixture
def session_store(redis_client) -> SessionStore:
    return SessionStore(redis_client, namespace="bookstore-test", ttl_seconds=60, timeout=1.0)


# ========================================
# Identities
# ========================================


@pytest.fixture
def admin_identity() -> UserIdentity:
    return UserIdentity(
        user_id="admin-1",
        email="admin@bookstore.io",
        first_name="Ada",
        last_name="Admin",
        role=UserRole.ADMIN,
    )


@pytest.fixture
def customer_identity() -> UserIdentity:
    return UserIdentity(
        user_id="customer-1",
        email="reader@bookstore.io",
        first_name="Rita",
        last_name="Reader",
        role=UserRole.CUSTOMER,
    )


# ========================================
# Services
# ========================================


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def plan_service(async_db_session: AsyncSession, clock: FrozenClock) -> PlanService:
    return PlanService(async_db_session, clock=clock)


@pytest.fixture
def subscription_service(
    async_db_session: AsyncSession, clock: FrozenClock
) -> SubscriptionService:
    return SubscriptionService(async_db_session, billing_period=timedelta(days=30), clock=clock)


@pytest_asyncio.fixture
async def economic_plan(plan_service: PlanService) -> SubscriptionPlan:
    return await plan_service.create_plan(
        {"name": "Economic", "booksPerMonth": 5, "pricePerMonth": Decimal("5")}
    )


@pytest_asyncio.fixture
async def premium_plan(plan_service: PlanService) -> SubscriptionPlan:
    return await plan_service.create_plan(
        {"name": "Premium", "booksPerMonth": 10, "pricePerMonth": Decimal("7.5")}
    )
