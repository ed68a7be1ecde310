"""
Stripe gateway for customer, checkout and portal calls.

WHAT: A thin wrapper over the Stripe Python SDK exposing the four remote
operations the billing bridge needs: create customer, create checkout
session, create billing portal session and verify a webhook event.

WHY: Keeping every SDK call in one class means:
1. Stripe failures are converted to RemoteCallError in one place
2. The caller never sees transport details (they are logged here)
3. Tests patch the SDK or swap the gateway instead of hitting the network

HOW: The API key from BillingConfig is passed on each call as a request
option rather than set on the `stripe` module, so nothing process-wide is
mutated after startup. The SDK is blocking, so every remote call runs in the
threadpool and the event loop keeps serving other requests meanwhile. SDK
results are returned as plain dicts.
"""

import logging
from typing import Any, Dict, Optional

import stripe
from fastapi.concurrency import run_in_threadpool

from billing_bridge.core.config import BillingConfig
from billing_bridge.core.exceptions import RemoteCallError, ValidationError
from billing_bridge.models.price import PriceType
from billing_bridge.services.webhook_signature import VerifiedEvent, verify_event

logger = logging.getLogger(__name__)


CHECKOUT_MODES: Dict[PriceType, str] = {
    PriceType.RECURRING: "subscription",
    PriceType.ONE_TIME: "payment",
}


def _to_plain(obj: Any) -> Dict[str, Any]:
    """Convert an SDK StripeObject (or an already plain mapping) to a dict."""
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)


class StripeGateway:
    """
    Remote billing operations.

    Each method either returns the Stripe object as a dict or raises
    RemoteCallError with a short message that is safe to show the caller.
    """

    def __init__(self, config: BillingConfig):
        self.config = config

    def _request_options(self, **extra: Any) -> Dict[str, Any]:
        options: Dict[str, Any] = {"api_key": self.config.api_key}
        if self.config.api_version:
            options["stripe_version"] = self.config.api_version
        options.update(extra)
        return options

    # ========================================================================
    # Customers
    # ========================================================================

    async def create_customer(
        self,
        email: Optional[str],
        user_id: int,
        billing_key: str,
    ) -> Dict[str, Any]:
        """
        Create a Stripe customer for a local user.

        WHY: The idempotency key is derived from the user's random billing
        key, so a retry after the local mapping failed to save gets the same
        customer back (within Stripe's idempotency window) instead of a
        second one. Auto-increment ids repeat across databases sharing one
        Stripe account and are not used for the key.

        Args:
            email: User email, shown on receipts
            user_id: Local user id, stored in customer metadata
            billing_key: Per-user random key, unique across deployments

        Returns:
            Customer object as a dict

        Raises:
            RemoteCallError: If the Stripe call fails
        """
        try:
            customer = await run_in_threadpool(
                stripe.Customer.create,
                email=email,
                metadata={"pocketbaseUUID": str(user_id)},
                **self._request_options(idempotency_key=f"customer-create-{billing_key}"),
            )
        except stripe.StripeError as e:
            logger.error(
                f"Stripe customer error: {e}",
                extra={"user_id": user_id},
            )
            raise RemoteCallError(
                message="could not create Stripe customer",
                stripe_error=str(e),
                user_id=user_id,
            )

        logger.info(
            f"Created Stripe customer {customer['id']} for user {user_id}",
            extra={"stripe_customer_id": customer["id"], "user_id": user_id},
        )
        return _to_plain(customer)

    # ========================================================================
    # Sessions
    # ========================================================================

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        quantity: int,
        price_type: PriceType,
    ) -> Dict[str, Any]:
        """
        Create a hosted Checkout Session for one price.

        Recurring prices open a subscription checkout (with empty
        subscription metadata); one-time prices open a payment checkout.

        Raises:
            ValidationError: If the price type has no checkout mode
            RemoteCallError: If the Stripe call fails
        """
        mode = CHECKOUT_MODES.get(price_type)
        if mode is None:
            raise ValidationError(message="invalid price type", price_type=str(price_type))

        params: Dict[str, Any] = {
            "customer": customer_id,
            "payment_method_types": ["card"],
            "billing_address_collection": "required",
            "customer_update": {"address": "auto"},
            "line_items": [{"price": price_id, "quantity": quantity}],
            "mode": mode,
            "allow_promotion_codes": True,
            "success_url": self.config.success_url,
            "cancel_url": self.config.cancel_url,
        }
        if mode == "subscription":
            params["subscription_data"] = {"metadata": {}}

        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.create, **params, **self._request_options()
            )
        except stripe.StripeError as e:
            logger.error(
                f"Stripe checkout session error: {e}",
                extra={"stripe_customer_id": customer_id, "price_id": price_id},
            )
            raise RemoteCallError(
                message="could not create new session",
                stripe_error=str(e),
                price_id=price_id,
            )

        logger.info(
            f"Created checkout session {session['id']}",
            extra={
                "checkout_session_id": session["id"],
                "stripe_customer_id": customer_id,
                "price_id": price_id,
                "mode": mode,
            },
        )
        return _to_plain(session)

    async def create_portal_session(self, customer_id: str) -> Dict[str, Any]:
        """
        Create a billing portal session returning to the configured URL.

        Raises:
            RemoteCallError: If the Stripe call fails
        """
        try:
            session = await run_in_threadpool(
                stripe.billing_portal.Session.create,
                customer=customer_id,
                return_url=self.config.billing_return_url,
                **self._request_options(),
            )
        except stripe.StripeError as e:
            logger.error(
                f"Stripe portal error: {e}",
                extra={"stripe_customer_id": customer_id},
            )
            raise RemoteCallError(
                message="could not create new session",
                stripe_error=str(e),
            )

        logger.info(
            f"Created billing portal session for customer {customer_id}",
            extra={"stripe_customer_id": customer_id},
        )
        return _to_plain(session)

    # ========================================================================
    # Webhooks
    # ========================================================================

    def construct_event(self, payload: bytes, signature_header: Optional[str]) -> VerifiedEvent:
        """Verify a webhook body against the configured endpoint secret."""
        return verify_event(
            payload,
            signature_header,
            self.config.webhook_secret,
            self.config.webhook_tolerance,
        )
