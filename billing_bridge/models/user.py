"""
User model.

WHY: Users are the authenticated identities that start checkout and portal
sessions. Billing only owns two columns on this table (billing_address and
payment_method), which are written by subscription webhooks.
"""

import uuid

from sqlalchemy import Column, String, Boolean, JSON

from billing_bridge.models.base import Base, TimestampMixin, PrimaryKeyMixin


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    User model representing an account that can be billed.

    The billing profile columns mirror Stripe's default payment method:
    - billing_address: address of the customer attached to the payment method
    - payment_method: payment method type (card, sepa_debit, ...)
    """

    __tablename__ = "users"
    __collection__ = "user"

    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # WHY: inactive users keep their billing history but cannot authenticate
    is_active = Column(Boolean, default=True, nullable=False)

    # Random per-user key for Stripe idempotency keys; ids repeat across databases
    billing_key = Column(
        String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4())
    )

    # Billing profile (UserBillingProfile)
    billing_address = Column(JSON, nullable=True)
    payment_method = Column(String(64), nullable=True)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<User(id={self.id}, email={self.email})>"
