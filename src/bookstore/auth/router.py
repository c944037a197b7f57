"""
Session routes.

Login lives with the user service; this router only ends sessions.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from bookstore.auth.core import UserIdentity
from bookstore.auth.dependencies import (
    get_current_identity,
    get_current_session_id,
    get_session_store,
)
from bookstore.auth.session_store import SessionStore
from bookstore.logging import log_audit_event

router = APIRouter(prefix="/session", tags=["Auth"])


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session_id: Annotated[str, Depends(get_current_session_id)],
    identity: Annotated[UserIdentity, Depends(get_current_identity)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> Response:
    """End the current session."""
    await store.delete(session_id)
    log_audit_event("session.logout", user_id=identity.user_id, resource_type="session")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
