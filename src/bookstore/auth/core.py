"""
Identity models shared by the session store and the request boundary.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRole(str, Enum):
    """Roles an authenticated user can hold."""

    ADMIN = "admin"
    CUSTOMER = "customer"


class UserIdentity(BaseModel):
    """Public profile of an authenticated user.

    Stored in the session at login time. It is a copy, not a live view of the
    user row: role or profile changes only show up after the session is
    refreshed.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user_id: str = Field(min_length=1, max_length=64)
    email: EmailStr
    first_name: str
    last_name: str
    role: UserRole
    active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserSession(UserIdentity):
    """Identity joined with the session id it is stored under."""

    session_id: str

    def identity(self) -> UserIdentity:
        """Strip the session id, leaving the stored identity snapshot."""
        return UserIdentity.model_validate(self.model_dump(exclude={"session_id"}))
