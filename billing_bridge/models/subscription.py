"""
Subscription model for tracking Stripe subscriptions per user.

WHY: Subscriptions are the source of truth for what a user is paying for.
Stripe webhooks keep the rows in sync:
1. customer.subscription.created/updated/deleted upsert the row
2. checkout.session.completed upserts it again from the embedded object
3. Deletion only changes status fields, rows are never removed

ARCHITECTURE:
- user_id is always resolved through the customers table, never taken from
  event metadata
- Stripe timestamps are stored as ISO-8601 UTC strings exactly as converted
  from the event (a zero timestamp becomes the epoch)
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    JSON,
    ForeignKey,
)

from billing_bridge.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Subscription(Base, PrimaryKeyMixin, TimestampMixin):
    """Stripe subscription, keyed by subscription_id (sub_xxx)."""

    __tablename__ = "subscriptions"
    __collection__ = "subscription"

    subscription_id = Column(
        String(255),
        nullable=False,
        index=True,
        doc="Stripe subscription ID (sub_xxx)",
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    metadata_ = Column("metadata", JSON, nullable=True)
    status = Column(String(32), nullable=True)
    price_id = Column(String(255), nullable=True, doc="Price of the first line item")
    quantity = Column(Integer, nullable=True)

    # Cancellation
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    cancel_at = Column(String(32), nullable=True)
    canceled_at = Column(String(32), nullable=True)

    # Billing period
    current_period_start = Column(String(32), nullable=True)
    current_period_end = Column(String(32), nullable=True)

    # Lifecycle
    created = Column(String(32), nullable=True, doc="Creation time of the first line item")
    ended_at = Column(String(32), nullable=True)

    # Trial
    trial_start = Column(String(32), nullable=True)
    trial_end = Column(String(32), nullable=True)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Subscription(subscription_id={self.subscription_id}, "
            f"user_id={self.user_id}, status={self.status})>"
        )

