"""
Subscription commerce: plan catalog and the customer subscription ledger.
"""

from bookstore.commerce.plan_service import PlanService
from bookstore.commerce.subscription_service import SubscriptionService
from bookstore.commerce.usage import NoUsageTracker, UsageTracker

__all__ = [
    "PlanService",
    "SubscriptionService",
    "UsageTracker",
    "NoUsageTracker",
]
