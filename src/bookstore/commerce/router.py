"""
Subscription plan and subscription routes.

Plan management is admin only; listing plans is public and the subscribe
calls act on the authenticated customer.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.auth.core import UserIdentity
from bookstore.auth.dependencies import require_admin, require_customer
from bookstore.commerce.models import (
    SubscribeRequest,
    SubscriptionCredits,
    SubscriptionPlan,
    UserSubscription,
)
from bookstore.commerce.plan_service import PlanService
from bookstore.commerce.subscription_service import SubscriptionService
from bookstore.db import get_async_session
from bookstore.logging import log_audit_event

router = APIRouter(prefix="/subscription-plans", tags=["Subscriptions"])


def get_plan_service(db: Annotated[AsyncSession, Depends(get_async_session)]) -> PlanService:
    return PlanService(db)


def get_subscription_service(
    db: Annotated[AsyncSession, Depends(get_async_session)],
) -> SubscriptionService:
    return SubscriptionService(db)


# ========================================
# Plan catalog
# ========================================


@router.get("", response_model=list[SubscriptionPlan])
async def list_plans(
    service: Annotated[PlanService, Depends(get_plan_service)],
) -> list[SubscriptionPlan]:
    """List all subscription plans."""
    return await service.list_plans()


@router.post("", response_model=SubscriptionPlan, status_code=status.HTTP_201_CREATED)
async def create_plan(
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[PlanService, Depends(get_plan_service)],
    admin: Annotated[UserIdentity, Depends(require_admin)],
) -> SubscriptionPlan:
    """Create a subscription plan."""
    plan = await service.create_plan(payload)
    log_audit_event(
        "plan.created",
        user_id=admin.user_id,
        resource_type="subscription_plan",
        resource_id=str(plan.id),
    )
    return plan


# ========================================
# Customer subscription
# ========================================


@router.post("/subscribe", response_model=UserSubscription)
async def subscribe(
    request: SubscribeRequest,
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
    customer: Annotated[UserIdentity, Depends(require_customer)],
) -> UserSubscription:
    """Subscribe the current customer to a plan."""
    return await service.subscribe_customer(customer.user_id, request.plan_id)


@router.post("/unsubscribe")
async def unsubscribe(
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
    customer: Annotated[UserIdentity, Depends(require_customer)],
) -> dict[str, str]:
    """Cancel the current customer's subscription."""
    await service.unsubscribe_customer(customer.user_id)
    return {"message": "Unsubscribed successfully."}


@router.get("/credits", response_model=SubscriptionCredits)
async def get_credits(
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
    customer: Annotated[UserIdentity, Depends(require_customer)],
) -> SubscriptionCredits:
    """Monthly book allowance of the current customer."""
    return await service.credits_for(customer.user_id)


# ========================================
# Single plan
# ========================================


@router.get("/{plan_id}", response_model=SubscriptionPlan)
async def get_plan(
    plan_id: int,
    service: Annotated[PlanService, Depends(get_plan_service)],
) -> SubscriptionPlan:
    """Get a subscription plan."""
    return await service.get_plan(plan_id)


@router.patch("/{plan_id}", response_model=SubscriptionPlan)
async def edit_plan(
    plan_id: int,
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[PlanService, Depends(get_plan_service)],
    admin: Annotated[UserIdentity, Depends(require_admin)],
) -> SubscriptionPlan:
    """Update fields of a subscription plan."""
    plan = await service.edit_plan(plan_id, payload)
    log_audit_event(
        "plan.updated",
        user_id=admin.user_id,
        resource_type="subscription_plan",
        resource_id=str(plan_id),
    )
    return plan


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: int,
    service: Annotated[PlanService, Depends(get_plan_service)],
    admin: Annotated[UserIdentity, Depends(require_admin)],
) -> Response:
    """Delete a subscription plan nobody is subscribed to."""
    await service.delete_plan(plan_id)
    log_audit_event(
        "plan.deleted",
        user_id=admin.user_id,
        resource_type="subscription_plan",
        resource_id=str(plan_id),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
