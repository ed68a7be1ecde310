"""
Customer mapping model.

WHY: Links a local user to exactly one Stripe customer (cus_xxx). The row is
created lazily the first time the user opens a checkout or portal session,
and subscription webhooks use it to find which user a Stripe customer is.
"""

from sqlalchemy import Column, Integer, String, ForeignKey

from billing_bridge.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Customer(Base, PrimaryKeyMixin, TimestampMixin):
    """CustomerMapping: {user_id, stripe_customer_id}, one row per user."""

    __tablename__ = "customers"
    __collection__ = "customer"

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    stripe_customer_id = Column(
        String(255),
        nullable=False,
        index=True,
        doc="Stripe customer ID (cus_xxx)",
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Customer(user_id={self.user_id}, stripe_customer_id={self.stripe_customer_id})>"
