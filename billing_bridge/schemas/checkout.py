"""
Checkout and webhook API schemas.

WHAT: Request parsing for POST /create-checkout-session and the response
models for the webhook receiver.

WHY: The checkout endpoint has a fixed set of failure reasons that existing
clients match on ("invalid price data", "invalid quantity", ...), checked in
a fixed order. The body is therefore read raw and validated explicitly rather
than through FastAPI's automatic body parsing, whose errors could not keep
those reasons.
"""

import json
from typing import Any

from pydantic import BaseModel

from billing_bridge.core.exceptions import ClientInputError, ValidationError
from billing_bridge.models.price import PriceType


class CheckoutRequest(BaseModel):
    """A validated checkout request."""

    price_id: str
    price_type: PriceType
    quantity: int

    @classmethod
    def from_body(cls, body: bytes) -> "CheckoutRequest":
        """
        Parse and validate a raw request body.

        Expected shape: {"price": {"id": str, "type": str}, "quantity": number}

        Raises:
            ClientInputError: If the body is not a JSON object
            ValidationError: If a field is missing or invalid
        """
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise ClientInputError(message="could not parse request body", error=str(e))
        if not isinstance(data, dict):
            raise ClientInputError(message="could not parse request body")

        price = data.get("price")
        if not isinstance(price, dict):
            raise ValidationError(message="invalid price data")

        quantity = _coerce_quantity(data.get("quantity"))

        price_type = price.get("type")
        if not isinstance(price_type, str) or not price_type:
            raise ValidationError(message="invalid price type")

        price_id = price.get("id")
        if not isinstance(price_id, str) or not price_id:
            raise ValidationError(message="invalid price id")

        try:
            price_type = PriceType(price_type)
        except ValueError:
            raise ValidationError(message="invalid price type", price_type=price_type)

        return cls(price_id=price_id, price_type=price_type, quantity=quantity)


def _coerce_quantity(value: Any) -> int:
    """
    Accept JSON numbers that are whole and non-negative.

    Strings are rejected even when numeric ("2"); booleans are rejected
    although Python treats them as ints.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(message="invalid quantity")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(message="invalid quantity", quantity=value)
    if value < 0:
        raise ValidationError(message="invalid quantity", quantity=value)
    return int(value)


class WebhookResponse(BaseModel):
    """Acknowledgement returned to Stripe."""

    success: str = "data was received"
