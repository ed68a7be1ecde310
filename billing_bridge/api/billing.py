"""
Billing API endpoints.

WHAT:
1. POST /create-checkout-session - Start a Stripe Checkout for one price
2. POST /create-portal-link - Start a Stripe billing portal session
3. POST /stripe - Receive Stripe webhooks

WHY: The frontend redirects users to Stripe-hosted checkout and portal
pages; Stripe reports the results back through the webhook, which keeps
the local product, price and subscription tables in sync.

Every failure is answered with `{"failure": "<reason>"}` by the
application exception handlers.

SECURITY (OWASP):
- A02: Webhook signature verified over the raw body before anything is read
- A07: Session endpoints require a user token (webhook is signed instead)
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import ClientDisconnect

from billing_bridge.core.deps import (
    get_checkout_service,
    get_current_user,
    get_webhook_service,
    resolve_auth_user,
)
from billing_bridge.core.exceptions import ClientInputError
from billing_bridge.db.session import get_db
from billing_bridge.models.user import User
from billing_bridge.schemas.checkout import CheckoutRequest, WebhookResponse
from billing_bridge.services.checkout_service import CheckoutService
from billing_bridge.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Billing"])


async def read_body(request: Request, failure_message: str = "could not read request body") -> bytes:
    """
    Read the raw request body.

    Args:
        request: Incoming request
        failure_message: Reason reported if the body cannot be read

    Raises:
        ClientInputError: If the client went away mid-body
    """
    try:
        return await request.body()
    except ClientDisconnect:
        raise ClientInputError(message=failure_message)


# ============================================================================
# Sessions
# ============================================================================


@router.post(
    "/create-checkout-session",
    summary="Create checkout session",
    description="Creates a Stripe Checkout session for a price and quantity.",
)
async def create_checkout_session(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    service: CheckoutService = Depends(get_checkout_service),
) -> Dict[str, Any]:
    """
    Create a Stripe Checkout session.

    The body is validated before the token is resolved, so a malformed
    request is reported as such even without a valid token.

    Returns:
        The Stripe Checkout Session object
    """
    body = await read_body(request)
    checkout_request = CheckoutRequest.from_body(body)
    user = await resolve_auth_user(authorization, db)

    return await service.create_checkout_session(user, checkout_request)


@router.post(
    "/create-portal-link",
    summary="Create billing portal session",
    description="Creates a Stripe billing portal session for the current user.",
)
async def create_portal_link(
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
) -> Dict[str, Any]:
    """
    Create a Stripe billing portal session.

    Returns:
        The Stripe billing portal Session object
    """
    return await service.create_portal_link(current_user)


# ============================================================================
# Webhooks
# ============================================================================


@router.post(
    "/stripe",
    response_model=WebhookResponse,
    summary="Stripe webhook",
    description="Receives signed Stripe events and reconciles local billing records.",
)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    service: WebhookService = Depends(get_webhook_service),
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
):
    """
    Handle Stripe webhooks.

    WHY: Any non-2xx response makes Stripe redeliver the event later, so
    writes are committed before acknowledging and every failure propagates
    to the exception handlers instead of being swallowed.
    """
    # Raw body: the signature covers these exact bytes
    payload = await read_body(request, "failed to read request body")

    await service.process(payload, stripe_signature)
    await db.commit()

    return WebhookResponse()
