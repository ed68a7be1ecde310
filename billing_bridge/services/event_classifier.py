"""
Webhook event classification.

WHAT: Maps a Stripe event type string to the kind of local entity it
reconciles.

WHY: The set of handled events is closed. Modelling it as an enum plus one
static table means the webhook service can check at construction time that
every kind has a handler, instead of growing an if/elif chain on strings.
"""

import enum
from typing import Dict


class EventKind(str, enum.Enum):
    """Entity kinds a webhook event can reconcile."""

    PRODUCT = "product"
    PRICE = "price"
    SUBSCRIPTION = "subscription"
    CHECKOUT_COMPLETION = "checkout_completion"
    UNHANDLED = "unhandled"


SUBSCRIPTION_CREATED = "customer.subscription.created"

EVENT_KINDS: Dict[str, EventKind] = {
    "product.created": EventKind.PRODUCT,
    "product.updated": EventKind.PRODUCT,
    "price.created": EventKind.PRICE,
    "price.updated": EventKind.PRICE,
    SUBSCRIPTION_CREATED: EventKind.SUBSCRIPTION,
    "customer.subscription.updated": EventKind.SUBSCRIPTION,
    "customer.subscription.deleted": EventKind.SUBSCRIPTION,
    "checkout.session.completed": EventKind.CHECKOUT_COMPLETION,
}

HANDLED_KINDS = frozenset(EventKind) - {EventKind.UNHANDLED}


def classify(event_type: str) -> EventKind:
    """Return the entity kind for an event type, UNHANDLED if unknown."""
    return EVENT_KINDS.get(event_type, EventKind.UNHANDLED)


def updates_billing_profile(event_type: str) -> bool:
    """
    Whether a subscription event also copies the default payment method to the user.

    Only the creation event does; later updates leave the profile alone.
    """
    return event_type == SUBSCRIPTION_CREATED
