"""
Redis-backed login session store.

A session maps an opaque id to a JSON snapshot of the user's public profile.
Expiry is delegated entirely to Redis key TTLs; this module never compares
timestamps itself.
"""

import uuid

import structlog
from pydantic import ValidationError as PydanticValidationError
from redis.asyncio import Redis

from bookstore.auth.core import UserIdentity, UserSession
from bookstore.deadlines import REDIS, store_deadline
from bookstore.settings import settings

logger = structlog.get_logger(__name__)


class SessionStore:
    """Create, read, refresh and delete login sessions."""

    def __init__(
        self,
        redis: Redis,
        namespace: str | None = None,
        ttl_seconds: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self.redis = redis
        self.namespace = namespace or settings.app_name
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session.ttl
        self.timeout = timeout if timeout is not None else settings.session.store_timeout_seconds
        if self.ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

    def key_for(self, session_id: str) -> str:
        """Namespaced Redis key for a session."""
        return f"{self.namespace}:session:{session_id}"

    async def create(self, identity: UserIdentity) -> UserSession:
        """
        Creates a user session which will expire after the configured TTL.

        Args:
            identity: Profile of the user who just logged in

        Returns:
            The identity joined with the new session id

        Raises:
            TransientError: If Redis is unavailable or too slow
        """
        session_id = str(uuid.uuid4())

        async with store_deadline(REDIS, self.timeout, "session.create"):
            await self.redis.setex(
                self.key_for(session_id), self.ttl_seconds, identity.model_dump_json()
            )

        logger.info("session.created", session_id=session_id, user_id=identity.user_id)
        return UserSession(session_id=session_id, **identity.model_dump())

    async def get_by_id(self, session_id: str) -> UserIdentity | None:
        """
        Look up the identity stored for ``session_id``.

        Missing, expired and unreadable sessions all come back as None.
        """
        try:
            async with store_deadline(REDIS, self.timeout, "session.get"):
                payload = await self.redis.get(self.key_for(session_id))
        except UnicodeDecodeError:
            # Raised by the client while decoding the reply, before we see it
            logger.warning("session.payload_rejected", session_id=session_id, reason="not_utf8")
            return None

        if payload is None:
            return None

        try:
            return UserIdentity.model_validate_json(payload)
        except PydanticValidationError as e:
            logger.warning(
                "session.payload_rejected", session_id=session_id, errors=e.error_count()
            )
            return None

    async def refresh(self, session_id: str, identity: UserIdentity) -> None:
        """Replace the stored identity and restart the TTL in one write."""
        async with store_deadline(REDIS, self.timeout, "session.refresh"):
            await self.redis.setex(
                self.key_for(session_id), self.ttl_seconds, identity.model_dump_json()
            )

        logger.debug("session.refreshed", session_id=session_id)

    async def delete(self, session_id: str) -> None:
        """Remove a session. Deleting an absent session is not an error."""
        async with store_deadline(REDIS, self.timeout, "session.delete"):
            removed = await self.redis.delete(self.key_for(session_id))

        if removed:
            logger.info("session.deleted", session_id=session_id)
