"""
Tests for the pooled Redis client manager.
"""

import fakeredis
import pytest

from bookstore.redis_client import RedisClientManager, get_redis_client, redis_manager

pytestmark = pytest.mark.unit


@pytest.fixture
def manager():
    mgr = RedisClientManager()
    saved = (mgr._pool, mgr._client)
    mgr._pool, mgr._client = None, None
    yield mgr
    mgr._pool, mgr._client = saved


def test_manager_is_singleton():
    assert RedisClientManager() is redis_manager


def test_client_before_initialize_raises(manager):
    with pytest.raises(RuntimeError, match="not initialized"):
        manager.get_client()


@pytest.mark.asyncio
async def test_health_check_uninitialized(manager):
    assert (await manager.health_check())["status"] == "unhealthy"


@pytest.mark.asyncio
async def test_health_check_and_dependency_with_client(manager):
    manager._client = fakeredis.aioredis.FakeRedis(decode_responses=True)

    assert await manager.health_check() == {"status": "healthy"}

    dependency = get_redis_client()
    assert await anext(dependency) is manager._client
    await dependency.aclose()
