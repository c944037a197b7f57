"""
Subscription plan catalog.

CRUD over plan definitions. Deleting a plan is guarded: it is refused while
any customer holds an active subscription to it.
"""

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.commerce.models import (
    SubscriptionPlan,
    SubscriptionPlanCreateRequest,
    SubscriptionPlanTable,
    SubscriptionPlanUpdateRequest,
    UserSubscriptionTable,
)
from bookstore.db import transaction
from bookstore.deadlines import DATABASE, store_deadline
from bookstore.exceptions import NotFoundError, PlanInUseError, ValidationError
from bookstore.settings import settings

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _coerce[M: BaseModel](model: type[M], data: M | Mapping[str, Any]) -> M:
    """Validate raw input into ``model``, reporting failures as ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Validation failed.",
            errors=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e


def _is_duplicate_name(error: IntegrityError) -> bool:
    detail = str(error.orig)
    return "uq_subscription_plan_name" in detail or "subscription_plan.name" in detail


class PlanService:
    """Catalog of subscription plans."""

    def __init__(
        self,
        db: AsyncSession,
        timeout: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.timeout = (
            timeout if timeout is not None else settings.subscription.store_timeout_seconds
        )
        self.clock = clock

    async def list_plans(self) -> list[SubscriptionPlan]:
        """All plans in the order they were created."""
        stmt = (
            select(SubscriptionPlanTable)
            .order_by(SubscriptionPlanTable.id)
            .execution_options(populate_existing=True)
        )
        async with store_deadline(DATABASE, self.timeout, "plan.list"):
            result = await self.db.execute(stmt)
            plans = result.scalars().all()
        return [SubscriptionPlan.model_validate(plan) for plan in plans]

    async def get_plan(self, plan_id: int) -> SubscriptionPlan:
        """
        Get a plan by id.

        Raises:
            NotFoundError: If no plan has this id
        """
        async with store_deadline(DATABASE, self.timeout, "plan.get"):
            plan = await self._load(plan_id)
        return SubscriptionPlan.model_validate(plan)

    async def create_plan(
        self, plan_data: SubscriptionPlanCreateRequest | Mapping[str, Any]
    ) -> SubscriptionPlan:
        """
        Create a plan.

        Args:
            plan_data: Name, monthly book allowance and monthly price

        Returns:
            The stored plan

        Raises:
            ValidationError: If a field is out of range or the name is taken
        """
        request = _coerce(SubscriptionPlanCreateRequest, plan_data)
        plan = SubscriptionPlanTable(**request.model_dump())

        try:
            async with transaction(self.db, "plan.create", self.timeout):
                self.db.add(plan)
                await self.db.flush()
                created = SubscriptionPlan.model_validate(plan)
        except IntegrityError as e:
            raise self._constraint_error(request.name, e) from e

        logger.info("plan.created", plan_id=created.id, name=created.name)
        return created

    async def edit_plan(
        self, plan_id: int, patch: SubscriptionPlanUpdateRequest | Mapping[str, Any]
    ) -> SubscriptionPlan:
        """
        Apply a partial update to a plan.

        Raises:
            NotFoundError: If no plan has this id
            ValidationError: If a field is out of range or the name is taken
        """
        request = _coerce(SubscriptionPlanUpdateRequest, patch)
        updates = request.model_dump(exclude_unset=True)

        try:
            async with transaction(self.db, "plan.edit", self.timeout):
                plan = await self._load(plan_id, for_update=True)
                for field, value in updates.items():
                    setattr(plan, field, value)
                await self.db.flush()
                updated = SubscriptionPlan.model_validate(plan)
        except IntegrityError as e:
            raise self._constraint_error(updates.get("name"), e) from e

        logger.info("plan.updated", plan_id=plan_id, fields=sorted(updates))
        return updated

    async def delete_plan(self, plan_id: int) -> None:
        """
        Delete a plan nobody is subscribed to.

        The plan row is locked, active subscribers are counted and the plan is
        deleted in one transaction. A subscription that still lands after the
        count trips the foreign key and is reported the same way.

        Raises:
            NotFoundError: If no plan has this id
            PlanInUseError: If customers hold an active subscription to it
        """
        now = self.clock()
        try:
            async with transaction(self.db, "plan.delete", self.timeout):
                plan = await self._load(plan_id, for_update=True)

                active = await self._count_active(plan_id, now)
                if active > 0:
                    logger.info("plan.delete_blocked", plan_id=plan_id, active_subscribers=active)
                    raise PlanInUseError(plan_id, active)

                # Only lapsed entries can remain at this point
                await self.db.execute(
                    delete(UserSubscriptionTable).where(
                        UserSubscriptionTable.plan_id == plan_id,
                        ~UserSubscriptionTable.active_at(now),
                    )
                    .execution_options(synchronize_session="fetch")
                )
                await self.db.delete(plan)
                await self.db.flush()
        except IntegrityError as e:
            active = await self.count_active_subscribers(plan_id)
            logger.info("plan.delete_raced", plan_id=plan_id, active_subscribers=active)
            raise PlanInUseError(plan_id, max(active, 1)) from e

        logger.info("plan.deleted", plan_id=plan_id)

    async def count_active_subscribers(self, plan_id: int) -> int:
        """Number of customers currently subscribed to a plan."""
        async with store_deadline(DATABASE, self.timeout, "plan.count_subscribers"):
            return await self._count_active(plan_id, self.clock())

    async def _load(self, plan_id: int, for_update: bool = False) -> SubscriptionPlanTable:
        stmt = (
            select(SubscriptionPlanTable)
            .where(SubscriptionPlanTable.id == plan_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt)
        plan = result.scalar_one_or_none()
        if plan is None:
            raise NotFoundError(
                "Subscription plan not found.",
                resource_type="subscription_plan",
                resource_id=plan_id,
            )
        return plan

    async def _count_active(self, plan_id: int, now: datetime) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(UserSubscriptionTable)
            .where(
                UserSubscriptionTable.plan_id == plan_id,
                UserSubscriptionTable.active_at(now),
            )
        )
        return int(result.scalar_one())

    @staticmethod
    def _constraint_error(name: str | None, error: IntegrityError) -> ValidationError:
        if name is not None and _is_duplicate_name(error):
            return ValidationError(
                f"A subscription plan named '{name}' already exists.",
                errors=[{"loc": ["name"], "msg": "already exists", "type": "unique"}],
            )
        return ValidationError("Validation failed.")
