"""
Stripe webhook processing.

WHAT: Verifies an inbound webhook, classifies its event type and hands the
payload to the upsert engine.

WHY: Stripe redelivers on any non-2xx response, so the outcome of process()
is the delivery contract: returning normally acknowledges the event, raising
asks Stripe to try again (or, for a bad signature or unknown type, tells it
the endpoint will never accept this delivery).

HOW:
1. Verify the signature over the raw body (nothing is trusted before this)
2. Classify the event type into an EventKind
3. Dispatch to the handler for that kind; every handled kind must have one
"""

import logging
from typing import Awaitable, Callable, Dict, Optional

from billing_bridge.core.exceptions import UnhandledEventError, ValidationError
from billing_bridge.dao.base import RecordStore
from billing_bridge.schemas.stripe_events import (
    CheckoutSessionPayload,
    PricePayload,
    ProductPayload,
    SubscriptionPayload,
)
from billing_bridge.services.entity_resolver import EntityResolver
from billing_bridge.services.event_classifier import (
    HANDLED_KINDS,
    EventKind,
    classify,
    updates_billing_profile,
)
from billing_bridge.services.stripe_service import StripeGateway
from billing_bridge.services.upsert_engine import UpsertEngine, parse_payload
from billing_bridge.services.webhook_signature import VerifiedEvent

logger = logging.getLogger(__name__)

Handler = Callable[[VerifiedEvent], Awaitable[None]]


class WebhookService:
    """Verify, classify and reconcile one webhook delivery."""

    def __init__(self, store: RecordStore, gateway: StripeGateway):
        self.store = store
        self.gateway = gateway
        self.engine = UpsertEngine(store, EntityResolver(store))

        self._handlers: Dict[EventKind, Handler] = {
            EventKind.PRODUCT: self._handle_product,
            EventKind.PRICE: self._handle_price,
            EventKind.SUBSCRIPTION: self._handle_subscription,
            EventKind.CHECKOUT_COMPLETION: self._handle_checkout_completion,
        }
        missing = HANDLED_KINDS - self._handlers.keys()
        if missing:
            raise RuntimeError(f"No webhook handler for {sorted(k.value for k in missing)}")

    async def process(self, payload: bytes, signature_header: Optional[str]) -> EventKind:
        """
        Handle one webhook delivery.

        Args:
            payload: Raw request body
            signature_header: Stripe-Signature header value

        Returns:
            The EventKind that was reconciled

        Raises:
            VerificationError: Signature missing or invalid
            ClientInputError: Body or data object could not be parsed
            UnhandledEventError: Event type is not reconciled here
            ValidationError: A required reference is missing
            SchemaMissingError: A local table is missing
            PersistenceError: A save failed
        """
        event = self.gateway.construct_event(payload, signature_header)
        kind = classify(event.type)

        logger.info(
            f"Received Stripe event {event.type}",
            extra={"event_id": event.id, "event_type": event.type, "kind": kind.value},
        )

        if kind is EventKind.UNHANDLED:
            raise UnhandledEventError(event_id=event.id, event_type=event.type)

        await self._handlers[kind](event)
        return kind

    # ========================================================================
    # Handlers
    # ========================================================================

    async def _handle_product(self, event: VerifiedEvent) -> None:
        await self.engine.upsert_product(parse_payload(ProductPayload, event.data))

    async def _handle_price(self, event: VerifiedEvent) -> None:
        await self.engine.upsert_price(parse_payload(PricePayload, event.data))

    async def _handle_subscription(self, event: VerifiedEvent) -> None:
        subscription = parse_payload(SubscriptionPayload, event.data)
        await self.engine.upsert_subscription(
            subscription,
            update_profile=updates_billing_profile(event.type),
        )

    async def _handle_checkout_completion(self, event: VerifiedEvent) -> None:
        """
        Reconcile a completed checkout.

        Subscription checkouts carry the (expanded) subscription, which is
        upserted exactly like customer.subscription.created. Other modes are
        acknowledged without local changes.
        """
        session = parse_payload(CheckoutSessionPayload, event.data)

        if session.mode != "subscription":
            logger.info(
                f"Checkout session {session.id} completed in {session.mode} mode, nothing to reconcile",
                extra={"checkout_session_id": session.id, "mode": session.mode},
            )
            return

        if session.subscription is None:
            raise ValidationError(
                message="missing checkout subscription",
                checkout_session_id=session.id,
            )
        if session.subscription.customer is None:
            raise ValidationError(
                message="missing checkout customer",
                checkout_session_id=session.id,
            )

        await self.engine.upsert_subscription(session.subscription, update_profile=True)
