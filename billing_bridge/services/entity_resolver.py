"""
Entity resolution between Stripe ids and local records.

WHAT: Looks up local records by collection, field and value.

WHY: Webhooks and checkout requests reference each other's entities by
Stripe id (customer, subscription, price, product) or by local user id.
Every lookup goes straight to storage: deliveries are infrequent enough
that caching would only add staleness.
"""

from typing import Any, Optional

from billing_bridge.dao.base import RecordStore
from billing_bridge.models import COLLECTIONS, Customer, Price, Product, Subscription, User
from billing_bridge.models.base import Base


class EntityResolver:
    """Find-first lookups over the billing collections."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def find(self, collection: str, field_name: str, value: Any) -> Optional[Base]:
        """
        Return the first record in `collection` whose field equals value, or None.

        Raises:
            KeyError: If the collection name is unknown
        """
        return await self.store.find_first(COLLECTIONS[collection], field_name, value)

    async def customer_by_user(self, user_id: int) -> Optional[Customer]:
        return await self.find("customer", "user_id", user_id)

    async def customer_by_external_id(self, stripe_customer_id: str) -> Optional[Customer]:
        return await self.find("customer", "stripe_customer_id", stripe_customer_id)

    async def subscription_by_external_id(self, subscription_id: str) -> Optional[Subscription]:
        return await self.find("subscription", "subscription_id", subscription_id)

    async def product_by_external_id(self, product_id: str) -> Optional[Product]:
        return await self.find("product", "product_id", product_id)

    async def price_by_external_id(self, price_id: str) -> Optional[Price]:
        return await self.find("price", "price_id", price_id)

    async def user_by_id(self, user_id: int) -> Optional[User]:
        return await self.store.get_by_id(User, user_id)
