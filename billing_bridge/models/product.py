"""
Product model.

WHY: Local copy of the Stripe product catalogue so the frontend can list
plans without calling Stripe. Rows are upserted by product.* webhooks.
"""

from sqlalchemy import Column, String, Boolean, Text, JSON

from billing_bridge.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Product(Base, PrimaryKeyMixin, TimestampMixin):
    """Stripe product, keyed by product_id (prod_xxx)."""

    __tablename__ = "products"
    __collection__ = "product"

    # Not unique: lookups take the first match if a race ever inserts twice
    product_id = Column(String(255), nullable=False, index=True, doc="Stripe product ID (prod_xxx)")
    active = Column(Boolean, nullable=False, default=False)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=False, default="")
    metadata_ = Column("metadata", JSON, nullable=True)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Product(product_id={self.product_id}, name={self.name})>"
