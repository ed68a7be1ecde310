"""
Upsert engine for Stripe-backed records.

WHAT: Writes products, prices, subscriptions and user billing profiles from
parsed webhook payloads.

WHY: Stripe redelivers events on any non-2xx response and may deliver the
same event more than once, so every write is an upsert keyed by the Stripe
id: the first sighting creates the row, later ones update it in place. Rows
are never deleted here; deletion events only change status fields.

HOW: For each entity:
1. Resolve cross references (subscription customer -> local user)
2. Check the collection exists (SchemaMissingError otherwise)
3. Find the existing record by Stripe id (first match) or build a new one
4. Set every mapped field and save

Validation happens before the first write, so a rejected event leaves no
partial state. Concurrent deliveries for the same id can both miss the
lookup and insert twice; the lookups tolerate that by taking the first row.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from billing_bridge.core.exceptions import ClientInputError, ValidationError
from billing_bridge.dao.base import RecordStore
from billing_bridge.models import Price, Product, Subscription, User
from billing_bridge.schemas.stripe_events import (
    PaymentMethodPayload,
    PricePayload,
    ProductPayload,
    SubscriptionPayload,
)
from billing_bridge.services.entity_resolver import EntityResolver

logger = logging.getLogger(__name__)

PayloadType = TypeVar("PayloadType", bound=BaseModel)


def to_iso8601(timestamp: Optional[int]) -> str:
    """
    Convert a Unix timestamp to an ISO-8601 UTC string.

    Absent and zero timestamps both become the epoch
    ("1970-01-01T00:00:00Z"); callers that need "unset" must check the
    payload, not the stored string.
    """
    moment = datetime.fromtimestamp(timestamp or 0, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_payload(payload_type: Type[PayloadType], data: dict) -> PayloadType:
    """
    Validate a raw Stripe object into its payload model.

    Raises:
        ClientInputError: If the object does not match the expected shape
    """
    try:
        return payload_type.model_validate(data)
    except PydanticValidationError as e:
        raise ClientInputError(
            message="failed to parse the stripe event",
            payload_type=payload_type.__name__,
            error_count=e.error_count(),
        )


class UpsertEngine:
    """Find-or-create-then-save for each reconciled entity."""

    def __init__(self, store: RecordStore, resolver: EntityResolver):
        self.store = store
        self.resolver = resolver

    # ========================================================================
    # Catalogue
    # ========================================================================

    async def upsert_product(self, product: ProductPayload) -> Product:
        """
        Create or update a product from product.created / product.updated.

        description is stored as "" when Stripe omits it.
        """
        model = await self.store.find_collection("product")
        record = await self.resolver.product_by_external_id(product.id)
        if record is None:
            record = self.store.new_record(model)

        record.product_id = product.id
        record.active = product.active
        record.name = product.name
        record.description = product.description or ""
        record.metadata_ = product.metadata

        await self.store.save(
            record,
            operation="upsert_product",
            external_id=product.id,
            failure_message="could not save product record",
        )
        logger.info(
            f"Upserted product {product.id}",
            extra={"product_id": product.id},
        )
        return record

    async def upsert_price(self, price: PricePayload) -> Price:
        """
        Create or update a price from price.created / price.updated.

        interval, interval_count and trial_period_days are only written
        when the payload carries a recurring block; otherwise they stay
        unset on create and untouched on update.
        """
        model = await self.store.find_collection("price")
        record = await self.resolver.price_by_external_id(price.id)
        if record is None:
            record = self.store.new_record(model)

        record.price_id = price.id
        record.product_id = price.product.id if price.product else None
        record.active = price.active
        record.currency = price.currency
        record.nickname = price.nickname
        record.type = price.type
        record.unit_amount = price.unit_amount
        record.metadata_ = price.metadata

        if price.recurring is not None:
            record.interval = price.recurring.interval
            record.interval_count = price.recurring.interval_count
            record.trial_period_days = price.recurring.trial_period_days

        await self.store.save(
            record,
            operation="upsert_price",
            external_id=price.id,
            failure_message="could not save price record",
        )
        logger.info(
            f"Upserted price {price.id}",
            extra={"price_id": price.id, "product_id": record.product_id},
        )
        return record

    # ========================================================================
    # Subscriptions
    # ========================================================================

    async def upsert_subscription(
        self,
        subscription: SubscriptionPayload,
        update_profile: bool = False,
    ) -> Subscription:
        """
        Create or update a subscription and attach it to the customer's user.

        Args:
            subscription: Parsed subscription object
            update_profile: Also copy the default payment method to the user

        Returns:
            The saved Subscription

        Raises:
            ValidationError: Missing customer, no priced line item, or no
                customer mapping for the Stripe customer (nothing is written)
            SchemaMissingError: If the customers or subscriptions table is missing
            PersistenceError: If a save fails
        """
        if subscription.customer is None:
            raise ValidationError(
                message="missing subscription customer",
                subscription_id=subscription.id,
            )
        item = subscription.first_item
        if item is None or item.price is None:
            raise ValidationError(
                message="subscription has no items",
                subscription_id=subscription.id,
            )

        await self.store.find_collection("customer")
        model = await self.store.find_collection("subscription")

        mapping = await self.resolver.customer_by_external_id(subscription.customer.id)
        if mapping is None:
            raise ValidationError(
                message="no customer",
                subscription_id=subscription.id,
                stripe_customer_id=subscription.customer.id,
            )
        user_id = mapping.user_id

        record = await self.resolver.subscription_by_external_id(subscription.id)
        if record is None:
            record = self.store.new_record(model)

        record.subscription_id = subscription.id
        record.user_id = user_id
        record.metadata_ = subscription.metadata
        record.status = subscription.status
        record.price_id = item.price.id
        record.quantity = item.quantity
        record.cancel_at_period_end = subscription.cancel_at_period_end
        record.cancel_at = to_iso8601(subscription.cancel_at)
        record.canceled_at = to_iso8601(subscription.canceled_at)
        record.current_period_start = to_iso8601(subscription.current_period_start)
        record.current_period_end = to_iso8601(subscription.current_period_end)
        record.created = to_iso8601(item.created)
        record.ended_at = to_iso8601(subscription.ended_at)
        record.trial_start = to_iso8601(subscription.trial_start)
        record.trial_end = to_iso8601(subscription.trial_end)

        await self.store.save(
            record,
            operation="upsert_subscription",
            external_id=subscription.id,
            failure_message="couldn't submit subscription update",
        )
        logger.info(
            f"Upserted subscription {subscription.id} for user {user_id}",
            extra={
                "subscription_id": subscription.id,
                "user_id": user_id,
                "status": subscription.status,
            },
        )

        if update_profile:
            await self.apply_billing_profile(user_id, subscription.default_payment_method)

        return record

    async def apply_billing_profile(
        self,
        user_id: int,
        payment_method: Optional[PaymentMethodPayload],
    ) -> Optional[User]:
        """
        Copy a subscription's default payment method onto the user.

        payment_method is always set from the payment method type;
        billing_address only when the payment method embeds a customer.
        Does nothing when there is no expanded payment method or the user
        no longer exists.

        Raises:
            PersistenceError: If the user save fails
        """
        if payment_method is None:
            return None

        user = await self.resolver.user_by_id(user_id)
        if user is None:
            logger.warning(
                f"Skipping billing profile update, user {user_id} not found",
                extra={"user_id": user_id},
            )
            return None

        if payment_method.customer is not None:
            user.billing_address = payment_method.customer.address
        user.payment_method = payment_method.type

        await self.store.save(
            user,
            operation="update_billing_profile",
            external_id=payment_method.id,
            failure_message="couldn't submit user update",
        )
        return user
