"""
Authentication dependencies for FastAPI routes.

The bearer token is the opaque session id; it is resolved to an identity
through the session store on every request.
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from redis.asyncio import Redis

from bookstore.auth.core import UserIdentity
from bookstore.auth.session_store import SessionStore
from bookstore.redis_client import get_redis_client

logger = structlog.get_logger(__name__)

# Security scheme for bearer token
security = HTTPBearer(auto_error=False)


def get_session_store(redis: Annotated[Redis, Depends(get_redis_client)]) -> SessionStore:
    """Dependency to get a SessionStore on the pooled Redis client."""
    return SessionStore(redis)


async def get_current_session_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Extract the session id from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def get_current_identity(
    session_id: Annotated[str, Depends(get_current_session_id)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> UserIdentity:
    """Resolve the request's session to the stored identity."""
    identity = await store.get_by_id(session_id)
    if identity is None or not identity.active:
        logger.info("auth.session_rejected", session_id=session_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


async def require_customer(
    identity: Annotated[UserIdentity, Depends(get_current_identity)],
) -> UserIdentity:
    """Require any authenticated user."""
    return identity


async def require_admin(
    identity: Annotated[UserIdentity, Depends(get_current_identity)],
) -> UserIdentity:
    """Require admin role."""
    if not identity.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return identity
