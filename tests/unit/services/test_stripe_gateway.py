"""
Tests for StripeGateway.

WHY: The gateway is the only code that talks to Stripe. These tests pin the
exact parameters sent for each call and check that SDK failures become
RemoteCallError without leaking the Stripe error text.
"""

import asyncio
import time

import pytest
import stripe

from billing_bridge.core.exceptions import RemoteCallError
from billing_bridge.models.price import PriceType
from billing_bridge.services.stripe_service import StripeGateway


class TestCreateCustomer:
    @pytest.mark.asyncio
    async def test_parameters(self, stripe_api, billing_config):
        gateway = StripeGateway(billing_config)

        customer = await gateway.create_customer("user@example.com", 7, "0b1d6f0e-key")

        assert customer["id"] == "cus_new_123"
        kwargs = stripe_api.customer_create.call_args.kwargs
        assert kwargs["email"] == "user@example.com"
        assert kwargs["metadata"] == {"pocketbaseUUID": "7"}
        assert kwargs["idempotency_key"] == "customer-create-0b1d6f0e-key"
        assert kwargs["api_key"] == "sk_test_123"

    @pytest.mark.asyncio
    async def test_stripe_failure(self, stripe_api, billing_config):
        stripe_api.customer_create.side_effect = stripe.APIConnectionError("network down")
        gateway = StripeGateway(billing_config)

        with pytest.raises(RemoteCallError) as exc_info:
            await gateway.create_customer("user@example.com", 7, "0b1d6f0e-key")

        assert exc_info.value.message == "could not create Stripe customer"
        assert exc_info.value.to_dict() == {"failure": "could not create Stripe customer"}

    @pytest.mark.asyncio
    async def test_slow_call_does_not_block_event_loop(self, monkeypatch, billing_config):
        """
        WHY: The SDK blocks for the whole HTTP round trip. Other requests on
        the worker (webhooks included) must keep running meanwhile.
        """

        def slow_create(**kwargs):
            time.sleep(0.3)
            return {"id": "cus_slow", "object": "customer"}

        monkeypatch.setattr(stripe.Customer, "create", slow_create)
        gateway = StripeGateway(billing_config)
        ticks = []

        async def ticker():
            for _ in range(10):
                ticks.append(time.monotonic())
                await asyncio.sleep(0.03)

        customer, _ = await asyncio.gather(
            gateway.create_customer("user@example.com", 7, "0b1d6f0e-key"),
            ticker(),
        )

        gaps = [later - earlier for earlier, later in zip(ticks, ticks[1:])]
        assert customer["id"] == "cus_slow"
        assert max(gaps) < 0.2


class TestCreateCheckoutSession:
    @pytest.mark.asyncio
    async def test_one_time_is_payment_mode(self, stripe_api, billing_config):
        gateway = StripeGateway(billing_config)

        session = await gateway.create_checkout_session("cus_1", "price_1", 2, PriceType.ONE_TIME)

        assert session["id"] == "cs_test_123"
        kwargs = stripe_api.checkout_create.call_args.kwargs
        assert kwargs["mode"] == "payment"
        assert kwargs["customer"] == "cus_1"
        assert kwargs["line_items"] == [{"price": "price_1", "quantity": 2}]
        assert kwargs["payment_method_types"] == ["card"]
        assert kwargs["billing_address_collection"] == "required"
        assert kwargs["customer_update"] == {"address": "auto"}
        assert kwargs["allow_promotion_codes"] is True
        assert kwargs["success_url"] == "https://example.com/success"
        assert kwargs["cancel_url"] == "https://example.com/cancel"
        assert "subscription_data" not in kwargs

    @pytest.mark.asyncio
    async def test_recurring_is_subscription_mode(self, stripe_api, billing_config):
        gateway = StripeGateway(billing_config)

        await gateway.create_checkout_session("cus_1", "price_1", 1, PriceType.RECURRING)

        kwargs = stripe_api.checkout_create.call_args.kwargs
        assert kwargs["mode"] == "subscription"
        assert kwargs["subscription_data"] == {"metadata": {}}

    @pytest.mark.asyncio
    async def test_stripe_failure_is_generic(self, stripe_api, billing_config):
        stripe_api.checkout_create.side_effect = stripe.InvalidRequestError(
            "No such price: 'price_1'", param="line_items"
        )
        gateway = StripeGateway(billing_config)

        with pytest.raises(RemoteCallError) as exc_info:
            await gateway.create_checkout_session("cus_1", "price_1", 1, PriceType.ONE_TIME)

        assert exc_info.value.message == "could not create new session"
        assert "price_1" not in exc_info.value.message


class TestCreatePortalSession:
    @pytest.mark.asyncio
    async def test_return_url(self, stripe_api, billing_config):
        gateway = StripeGateway(billing_config)

        session = await gateway.create_portal_session("cus_1")

        assert session["url"].startswith("https://billing.stripe.com/")
        kwargs = stripe_api.portal_create.call_args.kwargs
        assert kwargs["customer"] == "cus_1"
        assert kwargs["return_url"] == "https://example.com/account"

    @pytest.mark.asyncio
    async def test_stripe_failure(self, stripe_api, billing_config):
        stripe_api.portal_create.side_effect = stripe.APIError("boom")
        gateway = StripeGateway(billing_config)

        with pytest.raises(RemoteCallError) as exc_info:
            await gateway.create_portal_session("cus_1")

        assert exc_info.value.message == "could not create new session"
