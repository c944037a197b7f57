"""
Tests for store deadlines and the translation of store failures.
"""

import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from bookstore.deadlines import DATABASE, REDIS, store_deadline
from bookstore.exceptions import BookstoreError, TransientError

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


async def test_block_within_deadline_passes_through():
    async with store_deadline(REDIS, 1.0, "noop"):
        result = 42
    assert result == 42


async def test_timeout_becomes_transient_error():
    with pytest.raises(TransientError) as exc_info:
        async with store_deadline(DATABASE, 0.01, "slow.query"):
            await asyncio.sleep(1)

    error = exc_info.value
    assert error.status_code == 503
    assert error.error_code == "STORE_UNAVAILABLE"
    assert error.context == {"store": "database", "operation": "slow.query"}


async def test_none_timeout_is_unbounded():
    async with store_deadline(REDIS, None):
        await asyncio.sleep(0)


async def test_redis_connection_error_becomes_transient_error():
    with pytest.raises(TransientError, match="redis is unavailable") as exc_info:
        async with store_deadline(REDIS, 1.0, "session.get"):
            raise RedisConnectionError("connection refused")
    assert isinstance(exc_info.value.__cause__, RedisConnectionError)


async def test_database_operational_error_becomes_transient_error():
    with pytest.raises(TransientError, match="database is unavailable"):
        async with store_deadline(DATABASE, 1.0):
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))


async def test_domain_errors_are_not_translated():
    with pytest.raises(BookstoreError) as exc_info:
        async with store_deadline(DATABASE, 1.0):
            raise BookstoreError("boom", "BOOM")
    assert not isinstance(exc_info.value, TransientError)
