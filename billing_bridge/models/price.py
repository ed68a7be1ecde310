"""
Price model.

WHY: Local copy of Stripe prices. Checkout requests reference a price by its
Stripe id and type, so the frontend reads them from here. Rows are upserted
by price.* webhooks.
"""

import enum

from sqlalchemy import Column, String, Boolean, BigInteger, Integer, JSON

from billing_bridge.models.base import Base, TimestampMixin, PrimaryKeyMixin


class PriceType(str, enum.Enum):
    """Stripe price types."""

    ONE_TIME = "one_time"
    RECURRING = "recurring"


class Price(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Stripe price, keyed by price_id (price_xxx).

    interval, interval_count and trial_period_days are only populated for
    recurring prices.
    """

    __tablename__ = "prices"
    __collection__ = "price"

    price_id = Column(String(255), nullable=False, index=True, doc="Stripe price ID (price_xxx)")
    product_id = Column(String(255), nullable=True, index=True, doc="Stripe product ID (prod_xxx)")
    active = Column(Boolean, nullable=False, default=False)
    currency = Column(String(8), nullable=True)
    nickname = Column(String(255), nullable=True)
    type = Column(String(32), nullable=True, doc="one_time or recurring")
    unit_amount = Column(BigInteger, nullable=True, doc="Amount in the smallest currency unit")
    metadata_ = Column("metadata", JSON, nullable=True)

    # Recurring only
    interval = Column(String(16), nullable=True)
    interval_count = Column(Integer, nullable=True)
    trial_period_days = Column(Integer, nullable=True)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Price(price_id={self.price_id}, product_id={self.product_id}, type={self.type})>"
