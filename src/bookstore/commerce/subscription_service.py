"""
Subscription ledger.

Tracks which plan each customer is subscribed to. A customer holds at most
one active subscription; the unique constraint on ``customer_id`` settles
concurrent subscribe calls for the same customer.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.commerce.models import (
    SubscriptionCredits,
    SubscriptionPlanTable,
    UserSubscription,
    UserSubscriptionTable,
)
from bookstore.commerce.usage import NoUsageTracker, UsageTracker
from bookstore.db import transaction
from bookstore.deadlines import DATABASE, store_deadline
from bookstore.exceptions import ConflictError, NotFoundError
from bookstore.logging import log_audit_event
from bookstore.settings import settings

logger = structlog.get_logger(__name__)

ALREADY_SUBSCRIBED = "You are already subscribed to a plan."
NOT_SUBSCRIBED = "You are not subscribed to a plan."


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class SubscriptionService:
    """Customer subscriptions and their monthly book credits."""

    def __init__(
        self,
        db: AsyncSession,
        billing_period: timedelta | None = None,
        usage_tracker: UsageTracker | None = None,
        timeout: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.billing_period = billing_period or timedelta(
            days=settings.subscription.billing_period_days
        )
        self.usage_tracker = usage_tracker or NoUsageTracker()
        self.timeout = (
            timeout if timeout is not None else settings.subscription.store_timeout_seconds
        )
        self.clock = clock

    async def subscribe_customer(self, customer_id: str, plan_id: int) -> UserSubscription:
        """
        Subscribe a customer to a plan.

        Args:
            customer_id: Identity of the subscribing customer
            plan_id: Plan to subscribe to

        Returns:
            The new ledger entry

        Raises:
            NotFoundError: If the plan does not exist
            ConflictError: If the customer already holds an active subscription
        """
        now = self.clock()
        try:
            async with transaction(self.db, "subscription.subscribe", self.timeout):
                # Shared lock keeps the plan from being deleted underneath us
                plan = await self.db.scalar(
                    select(SubscriptionPlanTable)
                    .where(SubscriptionPlanTable.id == plan_id)
                    .with_for_update(read=True)
                )
                if plan is None:
                    raise NotFoundError(
                        "Subscription plan not found.",
                        resource_type="subscription_plan",
                        resource_id=plan_id,
                    )

                if await self._find_active(customer_id, now) is not None:
                    raise ConflictError(
                        ALREADY_SUBSCRIBED,
                        context={"customer_id": customer_id},
                        recovery_hint="Unsubscribe before choosing another plan",
                    )

                await self.db.execute(
                    delete(UserSubscriptionTable).where(
                        UserSubscriptionTable.customer_id == customer_id,
                        ~UserSubscriptionTable.active_at(now),
                    )
                    .execution_options(synchronize_session="fetch")
                )

                entry = UserSubscriptionTable(
                    customer_id=customer_id,
                    plan_id=plan_id,
                    subscribed_at=now,
                    expires_at=now + self.billing_period,
                )
                self.db.add(entry)
                await self.db.flush()
                subscription = self._to_model(entry)
        except IntegrityError as e:
            logger.info("subscription.subscribe_raced", customer_id=customer_id, plan_id=plan_id)
            if not await self._plan_exists(plan_id):
                raise NotFoundError(
                    "Subscription plan not found.",
                    resource_type="subscription_plan",
                    resource_id=plan_id,
                ) from e
            raise ConflictError(
                ALREADY_SUBSCRIBED, context={"customer_id": customer_id}
            ) from e

        log_audit_event(
            "subscription.created",
            user_id=customer_id,
            resource_type="subscription_plan",
            resource_id=str(plan_id),
            expires_at=subscription.expires_at.isoformat(),
        )
        return subscription

    async def unsubscribe_customer(self, customer_id: str) -> None:
        """
        Remove the customer's active subscription.

        Raises:
            ConflictError: If the customer holds no active subscription
        """
        now = self.clock()
        async with transaction(self.db, "subscription.unsubscribe", self.timeout):
            # Single conditional DELETE: of two racing calls only one removes a row
            removed = await self.db.scalars(
                delete(UserSubscriptionTable)
                .where(
                    UserSubscriptionTable.customer_id == customer_id,
                    UserSubscriptionTable.active_at(now),
                )
                .returning(UserSubscriptionTable.id)
                .execution_options(synchronize_session="fetch")
            )
            if not removed.all():
                raise ConflictError(NOT_SUBSCRIBED, context={"customer_id": customer_id})

        log_audit_event(
            "subscription.cancelled", user_id=customer_id, resource_type="subscription"
        )

    async def get_active_subscription(self, customer_id: str) -> UserSubscription | None:
        """The customer's active ledger entry, if any."""
        async with store_deadline(DATABASE, self.timeout, "subscription.get"):
            entry = await self._find_active(customer_id, self.clock())
        return self._to_model(entry) if entry is not None else None

    async def credits_for(self, customer_id: str) -> SubscriptionCredits:
        """
        Monthly book allowance for a subscribed customer.

        Raises:
            ConflictError: If the customer holds no active subscription
        """
        now = self.clock()
        async with store_deadline(DATABASE, self.timeout, "subscription.credits"):
            row = (
                await self.db.execute(
                    select(
                        SubscriptionPlanTable.books_per_month,
                        UserSubscriptionTable.subscribed_at,
                    )
                    .join(
                        UserSubscriptionTable,
                        UserSubscriptionTable.plan_id == SubscriptionPlanTable.id,
                    )
                    .where(
                        UserSubscriptionTable.customer_id == customer_id,
                        UserSubscriptionTable.active_at(now),
                    )
                )
            ).one_or_none()

        if row is None:
            raise ConflictError(NOT_SUBSCRIBED, context={"customer_id": customer_id})

        limit, subscribed_at = row
        used = await self.usage_tracker.books_used(customer_id, _aware(subscribed_at))
        return SubscriptionCredits(limit=limit, used=used)

    async def _find_active(self, customer_id: str, now: datetime) -> UserSubscriptionTable | None:
        result = await self.db.execute(
            select(UserSubscriptionTable)
            .where(
                UserSubscriptionTable.customer_id == customer_id,
                UserSubscriptionTable.active_at(now),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _plan_exists(self, plan_id: int) -> bool:
        async with store_deadline(DATABASE, self.timeout, "subscription.plan_exists"):
            found = await self.db.scalar(
                select(SubscriptionPlanTable.id).where(SubscriptionPlanTable.id == plan_id)
            )
        return found is not None

    @staticmethod
    def _to_model(entry: UserSubscriptionTable) -> UserSubscription:
        return UserSubscription(
            customer_id=entry.customer_id,
            plan_id=entry.plan_id,
            subscribed_at=_aware(entry.subscribed_at),
            expires_at=_aware(entry.expires_at),
        )
