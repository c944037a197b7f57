"""
Authentication state for the bookstore API.

Login sessions live in Redis under ``<app>:session:<id>`` and hold a
snapshot of the user's public profile taken at login time.
"""

from bookstore.auth.core import UserIdentity, UserRole, UserSession
from bookstore.auth.session_store import SessionStore

__all__ = ["SessionStore", "UserIdentity", "UserRole", "UserSession"]
