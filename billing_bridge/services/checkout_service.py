"""
Checkout and portal session orchestration.

WHAT: Starts Stripe Checkout and billing portal sessions for an
authenticated user, creating the user's Stripe customer on first use.

WHY: A user maps to exactly one Stripe customer. The mapping is created
lazily: the first checkout or portal request creates the Stripe customer
and stores {user_id, stripe_customer_id}; every later request reuses it.

HOW:
1. Look up the user's customer mapping
2. If absent, create the Stripe customer and save + commit the mapping
3. Ask the gateway for a checkout or portal session for that customer

The customer create and the mapping save are two separate systems. If the
save fails after Stripe created the customer, the remote customer is orphaned.
The create call carries an idempotency key derived from the user id so a
prompt retry gets the same customer back; the orphan is logged at ERROR so
an operator can reconcile anything older than Stripe's idempotency window.
"""

import logging
from typing import Any, Dict

from billing_bridge.core.config import BillingConfig
from billing_bridge.core.exceptions import PersistenceError
from billing_bridge.dao.base import RecordStore
from billing_bridge.models import Customer, User
from billing_bridge.schemas.checkout import CheckoutRequest
from billing_bridge.services.entity_resolver import EntityResolver
from billing_bridge.services.stripe_service import StripeGateway

logger = logging.getLogger(__name__)


class CheckoutService:
    """Session orchestration for one request."""

    def __init__(self, store: RecordStore, gateway: StripeGateway, config: BillingConfig):
        self.store = store
        self.gateway = gateway
        self.config = config
        self.resolver = EntityResolver(store)

    async def ensure_customer(self, user: User) -> Customer:
        """
        Return the user's customer mapping, creating it if needed.

        Raises:
            SchemaMissingError: If the customers table is missing
            RemoteCallError: If Stripe could not create the customer
            PersistenceError: If the mapping could not be saved
        """
        model = await self.store.find_collection("customer")

        mapping = await self.resolver.customer_by_user(user.id)
        if mapping is not None:
            return mapping

        remote_customer = await self.gateway.create_customer(
            user.email, user.id, user.billing_key
        )
        stripe_customer_id = remote_customer["id"]

        mapping = self.store.new_record(
            model,
            user_id=user.id,
            stripe_customer_id=stripe_customer_id,
        )
        try:
            await self.store.save(
                mapping,
                operation="create_customer_mapping",
                external_id=stripe_customer_id,
                failure_message="could not create new customer",
            )
            # Durable before the session call, which may still fail
            await self.store.commit()
        except PersistenceError as e:
            logger.error(
                f"Stripe customer {stripe_customer_id} created but mapping for "
                f"user {user.id} not saved",
                extra={"stripe_customer_id": stripe_customer_id, "user_id": user.id},
            )
            raise PersistenceError(
                message="could not create new customer",
                stripe_customer_id=stripe_customer_id,
                user_id=user.id,
            ) from e

        logger.info(
            f"Mapped user {user.id} to Stripe customer {stripe_customer_id}",
            extra={"stripe_customer_id": stripe_customer_id, "user_id": user.id},
        )
        return mapping

    async def create_checkout_session(
        self, user: User, request: CheckoutRequest
    ) -> Dict[str, Any]:
        """Create a Checkout Session for the requested price and quantity."""
        mapping = await self.ensure_customer(user)
        return await self.gateway.create_checkout_session(
            customer_id=mapping.stripe_customer_id,
            price_id=request.price_id,
            quantity=request.quantity,
            price_type=request.price_type,
        )

    async def create_portal_link(self, user: User) -> Dict[str, Any]:
        """Create a billing portal session for the user's Stripe customer."""
        mapping = await self.ensure_customer(user)
        return await self.gateway.create_portal_session(mapping.stripe_customer_id)
