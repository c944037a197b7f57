"""
Subscription plan and ledger models.

SQLAlchemy tables for the relational store plus the Pydantic models used at
the service and API boundary. API payloads use camelCase aliases
(``booksPerMonth``) and accept snake_case as well.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    computed_field,
    model_validator,
)
from pydantic.alias_generators import to_camel
from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ColumnElement,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from bookstore.db import Base, TimestampMixin

# SQLite only autoincrements INTEGER PRIMARY KEY columns
_BigIntId = BigInteger().with_variant(Integer, "sqlite")

SMALLINT_MAX = 32767

Money = Annotated[
    Decimal,
    Field(ge=0, max_digits=10, decimal_places=2),
    PlainSerializer(float, return_type=float, when_used="json"),
]


# ============================================================
# SQLAlchemy tables
# ============================================================


class SubscriptionPlanTable(TimestampMixin, Base):
    """Plan definitions managed by administrators."""

    __tablename__ = "subscription_plan"

    id: Mapped[int] = mapped_column(_BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    books_per_month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    price_per_month: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("name", name="uq_subscription_plan_name"),
        CheckConstraint("books_per_month >= 0", name="ck_subscription_plan_books_per_month"),
        CheckConstraint("price_per_month >= 0", name="ck_subscription_plan_price_per_month"),
    )


class UserSubscriptionTable(Base):
    """
    Ledger of customer subscriptions.

    A customer owns at most one row. The row is active until ``expires_at``;
    unsubscribing deletes it. Lapsed rows are purged when the customer
    subscribes again or when their plan is deleted.
    """

    __tablename__ = "user_subscription"

    id: Mapped[int] = mapped_column(_BigIntId, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    plan_id: Mapped[int] = mapped_column(
        _BigIntId,
        ForeignKey("subscription_plan.id", ondelete="RESTRICT"),
        nullable=False,
    )
    subscribed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("customer_id", name="uq_user_subscription_customer"),
        Index("ix_user_subscription_plan_expires", "plan_id", "expires_at"),
    )

    @classmethod
    def active_at(cls, now: datetime) -> ColumnElement[bool]:
        """Predicate selecting entries still active at ``now``."""
        return cls.expires_at > now


# ============================================================
# Pydantic models
# ============================================================


class CommerceModel(BaseModel):
    """Base model with camelCase aliases for API payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class SubscriptionPlanCreateRequest(CommerceModel):
    """Input for creating a plan."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    books_per_month: int = Field(ge=0, le=SMALLINT_MAX)
    price_per_month: Money


class SubscriptionPlanUpdateRequest(CommerceModel):
    """Partial update of a plan. Omitted fields are left untouched."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=255)
    books_per_month: int | None = Field(None, ge=0, le=SMALLINT_MAX)
    price_per_month: Money | None = None

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        """A supplied field may not be cleared."""
        if isinstance(data, dict):
            nulls = sorted(key for key, value in data.items() if value is None)
            if nulls:
                raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return data


class SubscriptionPlan(CommerceModel):
    """Plan as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    books_per_month: int
    price_per_month: Money
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserSubscription(CommerceModel):
    """A customer's active ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    customer_id: str
    plan_id: int
    subscribed_at: datetime
    expires_at: datetime


class SubscribeRequest(CommerceModel):
    """Body of the subscribe call."""

    plan_id: int


class SubscriptionCredits(CommerceModel):
    """Monthly book allowance of a subscribed customer."""

    limit: int
    used: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)
