"""create_subscription_tables

Revision ID: 4c1e9a7b2d30
Revises:
Create Date: 2026-10-01 12:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "4c1e9a7b2d30"
down_revision = None
branch_labels = None
depends_on = None

_id_type = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    """Create the plan catalog and the subscription ledger."""
    op.create_table(
        "subscription_plan",
        sa.Column("id", _id_type, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("books_per_month", sa.SmallInteger(), nullable=False),
        sa.Column("price_per_month", sa.Numeric(10, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("name", name="uq_subscription_plan_name"),
        sa.CheckConstraint("books_per_month >= 0", name="ck_subscription_plan_books_per_month"),
        sa.CheckConstraint("price_per_month >= 0", name="ck_subscription_plan_price_per_month"),
    )

    op.create_table(
        "user_subscription",
        sa.Column("id", _id_type, primary_key=True, autoincrement=True),
        sa.Column("customer_id", sa.String(length=64), nullable=False),
        sa.Column(
            "plan_id",
            _id_type,
            sa.ForeignKey("subscription_plan.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("subscribed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("customer_id", name="uq_user_subscription_customer"),
    )
    op.create_index(
        "ix_user_subscription_plan_expires",
        "user_subscription",
        ["plan_id", "expires_at"],
    )


def downgrade() -> None:
    """Drop the subscription tables."""
    op.drop_index("ix_user_subscription_plan_expires", table_name="user_subscription")
    op.drop_table("user_subscription")
    op.drop_table("subscription_plan")
