"""
Business logic services package.

WHY: Services contain business logic separated from API routes and data access,
following the three-layer architecture (API → Service → DAO).
"""

from billing_bridge.services.checkout_service import CheckoutService
from billing_bridge.services.entity_resolver import EntityResolver
from billing_bridge.services.event_classifier import EventKind, classify
from billing_bridge.services.stripe_service import StripeGateway
from billing_bridge.services.upsert_engine import UpsertEngine
from billing_bridge.services.webhook_service import WebhookService
from billing_bridge.services.webhook_signature import VerifiedEvent, verify_event

__all__ = [
    "CheckoutService",
    "EntityResolver",
    "EventKind",
    "classify",
    "StripeGateway",
    "UpsertEngine",
    "WebhookService",
    "VerifiedEvent",
    "verify_event",
]
