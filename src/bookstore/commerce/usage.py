"""
Usage tracking collaborator for subscription credits.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class UsageTracker(Protocol):
    """Counts books a customer has taken out under their subscription."""

    async def books_used(self, customer_id: str, since: datetime) -> int:
        """Books used by ``customer_id`` since ``since``."""
        ...


class NoUsageTracker:
    """Tracker for deployments without rental history: nothing is used."""

    async def books_used(self, customer_id: str, since: datetime) -> int:
        return 0
