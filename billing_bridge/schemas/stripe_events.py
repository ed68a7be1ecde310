"""
Stripe webhook payload schemas.

WHAT: Pydantic models for the `data.object` of the webhook events we
reconcile (product, price, subscription, checkout session).

WHY: Parsing into typed models up front means the upsert code never deals
with missing keys or wrong types, and a malformed payload is rejected before
anything is written.

HOW: Stripe sends references either as a bare id ("cus_123") or, when
expanded, as the full object. `expand_reference` normalises the bare form
into `{"id": ...}` so both shapes validate into the same model. Unknown keys
are ignored so new Stripe API fields never break parsing.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def expand_reference(value: Any) -> Any:
    """Turn a bare Stripe id into the `{"id": ...}` object form."""
    if isinstance(value, str):
        return {"id": value}
    return value


class StripePayload(BaseModel):
    """Base for Stripe objects: unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")


# ============================================================================
# References
# ============================================================================


class CustomerRef(StripePayload):
    """Customer reference; address is only present when expanded."""

    id: str
    address: Optional[Dict[str, Any]] = None


class ProductRef(StripePayload):
    id: str


class PriceRef(StripePayload):
    id: str


# ============================================================================
# Product / Price
# ============================================================================


class ProductPayload(StripePayload):
    """product.created / product.updated"""

    id: str
    active: bool = False
    name: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class RecurringPayload(StripePayload):
    interval: Optional[str] = None
    interval_count: Optional[int] = None
    trial_period_days: Optional[int] = None


class PricePayload(StripePayload):
    """price.created / price.updated"""

    id: str
    product: Optional[ProductRef] = None
    active: bool = False
    currency: Optional[str] = None
    nickname: Optional[str] = None
    type: Optional[str] = None
    unit_amount: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    recurring: Optional[RecurringPayload] = None

    @field_validator("product", mode="before")
    @classmethod
    def _expand_product(cls, value: Any) -> Any:
        return expand_reference(value)


# ============================================================================
# Subscription
# ============================================================================


class SubscriptionItemPayload(StripePayload):
    price: Optional[PriceRef] = None
    quantity: Optional[int] = None
    created: Optional[int] = None

    @field_validator("price", mode="before")
    @classmethod
    def _expand_price(cls, value: Any) -> Any:
        return expand_reference(value)


class SubscriptionItemList(StripePayload):
    data: List[SubscriptionItemPayload] = Field(default_factory=list)


class PaymentMethodPayload(StripePayload):
    """Expanded default payment method of a subscription."""

    id: str
    type: Optional[str] = None
    customer: Optional[CustomerRef] = None

    @field_validator("customer", mode="before")
    @classmethod
    def _expand_customer(cls, value: Any) -> Any:
        return expand_reference(value)


class SubscriptionPayload(StripePayload):
    """customer.subscription.* and the subscription embedded in a checkout session."""

    id: str
    customer: Optional[CustomerRef] = None
    metadata: Optional[Dict[str, Any]] = None
    status: Optional[str] = None
    items: SubscriptionItemList = Field(default_factory=SubscriptionItemList)
    cancel_at_period_end: bool = False
    cancel_at: Optional[int] = None
    canceled_at: Optional[int] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    ended_at: Optional[int] = None
    trial_start: Optional[int] = None
    trial_end: Optional[int] = None
    default_payment_method: Optional[PaymentMethodPayload] = None

    @field_validator("customer", mode="before")
    @classmethod
    def _expand_customer(cls, value: Any) -> Any:
        return expand_reference(value)

    @field_validator("default_payment_method", mode="before")
    @classmethod
    def _drop_unexpanded_payment_method(cls, value: Any) -> Any:
        # A bare pm_xxx id carries neither type nor customer
        if isinstance(value, str):
            return None
        return value

    @property
    def first_item(self) -> Optional[SubscriptionItemPayload]:
        """First line item, which carries the price the subscription is billed at."""
        return self.items.data[0] if self.items.data else None


# ============================================================================
# Checkout
# ============================================================================


class CheckoutSessionPayload(StripePayload):
    """checkout.session.completed"""

    id: str
    mode: Optional[str] = None
    customer: Optional[CustomerRef] = None
    subscription: Optional[SubscriptionPayload] = None

    @field_validator("customer", "subscription", mode="before")
    @classmethod
    def _expand(cls, value: Any) -> Any:
        return expand_reference(value)
