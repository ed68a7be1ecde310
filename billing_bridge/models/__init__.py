"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation, and gives the billing services one registry to
look collections up by name.
"""

from billing_bridge.models.base import Base, TimestampMixin, PrimaryKeyMixin
from billing_bridge.models.user import User
from billing_bridge.models.customer import Customer
from billing_bridge.models.product import Product
from billing_bridge.models.price import Price, PriceType
from billing_bridge.models.subscription import Subscription

# Collection name -> model class
COLLECTIONS = {
    model.__collection__: model
    for model in (User, Customer, Product, Price, Subscription)
}

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "User",
    "Customer",
    "Product",
    "Price",
    "PriceType",
    "Subscription",
    "COLLECTIONS",
]
