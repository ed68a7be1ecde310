"""Initial billing schema.

Revision ID: 001
Revises:
Create Date: 2026-10-18

WHAT: Creates users, customers, products, prices and subscriptions.

WHY: These are the collections the webhook receiver and the session
endpoints read and write. A missing table is reported as a 500
("could not find collection ...") until this migration has run.

HOW: Stripe ids are indexed but not unique: webhook upserts look rows up by
Stripe id and take the first match, so a duplicate left by two concurrent
deliveries does not break later lookups. customers.user_id is unique (one
Stripe customer per user).
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create the billing tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("billing_key", sa.String(length=36), nullable=False),
        # Billing profile, written by subscription webhooks
        sa.Column("billing_address", sa.JSON(), nullable=True),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_billing_key", "users", ["billing_key"], unique=True)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_customers_id", "customers", ["id"])
    op.create_index("ix_customers_user_id", "customers", ["user_id"], unique=True)
    op.create_index("ix_customers_stripe_customer_id", "customers", ["stripe_customer_id"])

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.String(length=255), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_products_id", "products", ["id"])
    op.create_index("ix_products_product_id", "products", ["product_id"])

    op.create_table(
        "prices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("price_id", sa.String(length=255), nullable=False),
        sa.Column("product_id", sa.String(length=255), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("nickname", sa.String(length=255), nullable=True),
        sa.Column("type", sa.String(length=32), nullable=True),
        sa.Column("unit_amount", sa.BigInteger(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("interval", sa.String(length=16), nullable=True),
        sa.Column("interval_count", sa.Integer(), nullable=True),
        sa.Column("trial_period_days", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_prices_id", "prices", ["id"])
    op.create_index("ix_prices_price_id", "prices", ["price_id"])
    op.create_index("ix_prices_product_id", "prices", ["product_id"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("subscription_id", sa.String(length=255), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("price_id", sa.String(length=255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False, server_default=sa.false()),
        # ISO-8601 UTC strings converted from Stripe's Unix timestamps
        sa.Column("cancel_at", sa.String(length=32), nullable=True),
        sa.Column("canceled_at", sa.String(length=32), nullable=True),
        sa.Column("current_period_start", sa.String(length=32), nullable=True),
        sa.Column("current_period_end", sa.String(length=32), nullable=True),
        sa.Column("created", sa.String(length=32), nullable=True),
        sa.Column("ended_at", sa.String(length=32), nullable=True),
        sa.Column("trial_start", sa.String(length=32), nullable=True),
        sa.Column("trial_end", sa.String(length=32), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_subscriptions_id", "subscriptions", ["id"])
    op.create_index("ix_subscriptions_subscription_id", "subscriptions", ["subscription_id"])
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])


def downgrade() -> None:
    """Drop the billing tables in dependency order."""
    op.drop_table("subscriptions")
    op.drop_table("prices")
    op.drop_table("products")
    op.drop_table("customers")
    op.drop_table("users")
