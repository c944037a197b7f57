"""
Tests for the identity snapshot stored in sessions.
"""

import pytest
from pydantic import ValidationError

from bookstore.auth.core import UserIdentity, UserRole, UserSession

pytestmark = pytest.mark.unit


def _profile(**overrides):
    profile = {
        "user_id": "u1",
        "email": "u1@bookstore.io",
        "first_name": "U",
        "last_name": "One",
        "role": "customer",
    }
    profile.update(overrides)
    return profile


def test_role_from_string():
    identity = UserIdentity(**_profile(role="admin"))
    assert identity.role is UserRole.ADMIN
    assert identity.is_admin


@pytest.mark.parametrize(
    "overrides",
    [
        {"role": "superuser"},
        {"email": "not-an-email"},
        {"user_id": ""},
        {"user_id": "u" * 65},
        {"password_hash": "secret"},
    ],
)
def test_rejects_invalid_profiles(overrides):
    with pytest.raises(ValidationError):
        UserIdentity(**_profile(**overrides))


def test_session_identity_drops_session_id():
    session = UserSession(session_id="s1", **_profile())
    identity = session.identity()

    assert type(identity) is UserIdentity
    assert identity.user_id == "u1"
    assert "session_id" not in identity.model_dump()


def test_user_id_fits_ledger_column():
    identity = UserIdentity(**_profile(user_id="u" * 64))
    assert len(identity.user_id) == 64
