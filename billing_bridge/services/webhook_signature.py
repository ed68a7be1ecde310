"""
Stripe webhook signature verification.

WHAT: Checks that a webhook body was signed by Stripe with our endpoint
secret and parses it into a VerifiedEvent.

WHY: Webhooks mutate local billing state, so nothing in the payload may be
trusted before the signature is checked. The check must run on the exact
bytes received: re-serialising the JSON would change the byte stream and
break the HMAC.

HOW: Stripe's scheme signs "{timestamp}.{body}" with HMAC-SHA256 and sends
`Stripe-Signature: t=...,v1=...[,v1=...]`. stripe.WebhookSignature compares
against every v1 signature in constant time and rejects timestamps outside
the tolerance window (replay protection). This module has no side effects.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from billing_bridge.core.exceptions import ClientInputError, VerificationError

DEFAULT_TOLERANCE = 300  # seconds, same as the Stripe SDKs


@dataclass(frozen=True)
class VerifiedEvent:
    """
    A webhook event whose signature has been checked.

    `data` is the raw `data.object` mapping; entity payloads are parsed from
    it by the upsert engine.
    """

    id: Optional[str]
    type: str
    data: Dict[str, Any]
    created: Optional[int] = None


def verify_event(
    payload: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE,
) -> VerifiedEvent:
    """
    Verify a webhook signature and parse the event.

    Args:
        payload: Raw request body, exactly as received
        signature_header: Stripe-Signature header value
        secret: Endpoint signing secret (whsec_xxx)
        tolerance: Maximum age of the signature timestamp in seconds

    Returns:
        VerifiedEvent with type and raw data object

    Raises:
        VerificationError: Missing/malformed header, mismatch, stale timestamp,
            unconfigured secret or a body that is not UTF-8
        ClientInputError: Signature valid but the body is not a Stripe event
    """
    if not secret:
        # An empty key would let anyone produce a "valid" HMAC
        raise VerificationError(reason="webhook secret not configured")
    if not signature_header:
        raise VerificationError(reason="missing Stripe-Signature header")

    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError:
        raise VerificationError(reason="body is not valid UTF-8")

    try:
        stripe.WebhookSignature.verify_header(body, signature_header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        raise VerificationError(reason=str(e))

    return parse_event(body)


def parse_event(body: str) -> VerifiedEvent:
    """
    Parse a verified webhook body.

    Raises:
        ClientInputError: If the body is not a JSON event with a type and data.object
    """
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ClientInputError(message="failed to parse the stripe event", error=str(e))

    if not isinstance(data, dict):
        raise ClientInputError(message="failed to parse the stripe event")

    event_type = data.get("type")
    event_data = data.get("data")
    data_object = event_data.get("object") if isinstance(event_data, dict) else None
    if not isinstance(event_type, str) or not isinstance(data_object, dict):
        raise ClientInputError(
            message="failed to parse the stripe event",
            event_id=data.get("id"),
        )

    created = data.get("created")
    return VerifiedEvent(
        id=data.get("id"),
        type=event_type,
        data=data_object,
        created=created if isinstance(created, int) else None,
    )
