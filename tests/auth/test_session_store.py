"""
Unit tests for SessionStore using fakeredis.aioredis to avoid real Redis.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bookstore.auth.core import UserRole
from bookstore.auth.session_store import SessionStore
from bookstore.exceptions import TransientError

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


class TestSessionLifecycle:
    async def test_create_then_get_returns_identity(self, session_store, customer_identity):
        session = await session_store.create(customer_identity)

        assert session.session_id
        assert session.identity() == customer_identity
        assert await session_store.get_by_id(session.session_id) == customer_identity

    async def test_each_session_gets_a_fresh_id(self, session_store, customer_identity):
        first = await session_store.create(customer_identity)
        second = await session_store.create(customer_identity)
        assert first.session_id != second.session_id

    async def test_key_is_namespaced(self, session_store, redis_client, customer_identity):
        session = await session_store.create(customer_identity)

        key = f"bookstore-test:session:{session.session_id}"
        assert session_store.key_for(session.session_id) == key
        stored = json.loads(await redis_client.get(key))
        assert stored["user_id"] == "customer-1"
        assert stored["role"] == "customer"

    async def test_ttl_is_set_on_create(self, session_store, redis_client, customer_identity):
        session = await session_store.create(customer_identity)
        ttl = await redis_client.ttl(session_store.key_for(session.session_id))
        assert 0 < ttl <= 60

    async def test_unknown_id_returns_none(self, session_store):
        assert await session_store.get_by_id("missing") is None

    async def test_delete_removes_session(self, session_store, customer_identity):
        session = await session_store.create(customer_identity)

        await session_store.delete(session.session_id)

        assert await session_store.get_by_id(session.session_id) is None

    async def test_delete_is_idempotent(self, session_store):
        await session_store.delete("never-existed")
        await session_store.delete("never-existed")

    async def test_rejects_non_positive_ttl(self, redis_client):
        with pytest.raises(ValueError):
            SessionStore(redis_client, ttl_seconds=0)


class TestSessionExpiry:
    @pytest.mark.slow
    async def test_session_expires_after_ttl(self, redis_client, customer_identity):
        store = SessionStore(redis_client, namespace="bookstore-test", ttl_seconds=1)
        session = await store.create(customer_identity)

        await asyncio.sleep(1.3)

        assert await store.get_by_id(session.session_id) is None

    @pytest.mark.slow
    async def test_refresh_extends_lifetime(self, redis_client, customer_identity):
        store = SessionStore(redis_client, namespace="bookstore-test", ttl_seconds=1)
        session = await store.create(customer_identity)

        await asyncio.sleep(0.6)
        await store.refresh(session.session_id, customer_identity)
        await asyncio.sleep(0.6)

        # Past the first expiry, inside the refreshed one
        assert await store.get_by_id(session.session_id) == customer_identity

    async def test_refresh_replaces_snapshot(self, session_store, customer_identity):
        session = await session_store.create(customer_identity)
        promoted = customer_identity.model_copy(update={"role": UserRole.ADMIN})

        await session_store.refresh(session.session_id, promoted)

        identity = await session_store.get_by_id(session.session_id)
        assert identity is not None and identity.is_admin

    async def test_refresh_of_absent_session_recreates_it(self, session_store, customer_identity):
        await session_store.refresh("restored", customer_identity)
        assert await session_store.get_by_id("restored") == customer_identity


class TestCorruptPayloads:
    @pytest.mark.parametrize(
        "payload",
        [
            "not json at all",
            "{",
            json.dumps(["a", "list"]),
            json.dumps({"user_id": "u1"}),
            json.dumps(
                {
                    "user_id": "u1",
                    "email": "u1@bookstore.io",
                    "first_name": "U",
                    "last_name": "One",
                    "role": "superuser",
                }
            ),
            json.dumps(
                {
                    "user_id": "u1",
                    "email": "u1@bookstore.io",
                    "first_name": "U",
                    "last_name": "One",
                    "role": "customer",
                    "password_hash": "leaked",
                }
            ),
        ],
    )
    async def test_unreadable_payload_is_treated_as_absent(
        self, session_store, redis_client, payload
    ):
        await redis_client.set(session_store.key_for("corrupt"), payload)
        assert await session_store.get_by_id("corrupt") is None

    async def test_non_utf8_payload_is_treated_as_absent(self, session_store, redis_client):
        await redis_client.set(session_store.key_for("binary"), b"\xff\xfe{")

        assert await session_store.get_by_id("binary") is None

    async def test_decode_failure_from_client_is_treated_as_absent(self):
        redis = AsyncMock()
        redis.get.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        store = SessionStore(redis, namespace="bookstore-test", ttl_seconds=60, timeout=1.0)

        assert await store.get_by_id("binary") is None


class TestStoreFailures:
    async def test_connection_error_is_transient(self, customer_identity):
        redis = AsyncMock()
        redis.get.side_effect = RedisConnectionError("connection refused")
        redis.setex.side_effect = RedisConnectionError("connection refused")
        store = SessionStore(redis, namespace="bookstore-test", ttl_seconds=60)

        with pytest.raises(TransientError):
            await store.get_by_id("any")
        with pytest.raises(TransientError):
            await store.create(customer_identity)

    async def test_slow_redis_hits_deadline(self):
        async def hang(*args, **kwargs):
            await asyncio.sleep(1)

        redis = AsyncMock()
        redis.delete.side_effect = hang
        store = SessionStore(redis, namespace="bookstore-test", ttl_seconds=60, timeout=0.05)

        with pytest.raises(TransientError) as exc_info:
            await store.delete("any")
        assert exc_info.value.context["operation"] == "session.delete"
