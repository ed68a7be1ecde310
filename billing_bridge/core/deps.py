"""
FastAPI dependencies for authentication and the billing services.

WHY: Dependencies provide reusable authentication and service wiring that
can be injected into route handlers, and overridden in tests
(app.dependency_overrides) without patching module globals.
"""

import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from billing_bridge.core.auth import verify_token
from billing_bridge.core.config import BillingConfig, settings
from billing_bridge.core.exceptions import AuthenticationError
from billing_bridge.dao.base import RecordStore
from billing_bridge.db.session import get_db
from billing_bridge.models.user import User
from billing_bridge.services.checkout_service import CheckoutService
from billing_bridge.services.stripe_service import StripeGateway
from billing_bridge.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


async def resolve_auth_user(authorization: Optional[str], db: AsyncSession) -> User:
    """
    Resolve an Authorization header value to an active user.

    Accepts the bare token or "Bearer <token>". Every failure (missing
    header, bad or expired token, unknown or inactive user) surfaces as the
    same AuthenticationError so callers cannot tell which part failed; the
    specific reason is logged.

    Raises:
        AuthenticationError: If the token does not resolve to an active user
    """
    token = (authorization or "").strip()
    if token.lower().startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError(reason="missing token")

    try:
        payload = verify_token(token)
    except AuthenticationError as e:
        # WHY: Expired and invalid tokens share one message on the wire
        raise AuthenticationError(reason=e.__class__.__name__)

    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise AuthenticationError(reason="missing user_id")

    user = await RecordStore(db).get_by_id(User, user_id)
    if user is None:
        raise AuthenticationError(reason="user not found", user_id=user_id)
    if not user.is_active:
        raise AuthenticationError(reason="user inactive", user_id=user_id)

    return user


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from the Authorization header.

    Usage:
        @router.post("/create-portal-link")
        async def portal(user: User = Depends(get_current_user)):
            ...
    """
    return await resolve_auth_user(authorization, db)


def get_billing_config() -> BillingConfig:
    """Billing configuration snapshot from settings."""
    return settings.billing_config()


def get_stripe_gateway(
    config: BillingConfig = Depends(get_billing_config),
) -> StripeGateway:
    return StripeGateway(config)


def get_checkout_service(
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    config: BillingConfig = Depends(get_billing_config),
) -> CheckoutService:
    return CheckoutService(RecordStore(db), gateway, config)


def get_webhook_service(
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> WebhookService:
    return WebhookService(RecordStore(db), gateway)
