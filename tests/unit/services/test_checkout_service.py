"""
Tests for CheckoutService.

WHY: The customer mapping is created at most once per user:
1. A new user gets exactly one Stripe customer and one mapping
2. A mapped user reuses the stored Stripe customer id
3. A failed mapping save surfaces as "could not create new customer"
4. A failed session call keeps the already saved mapping
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from billing_bridge.core.exceptions import PersistenceError, RemoteCallError
from billing_bridge.dao.base import RecordStore
from billing_bridge.models import Base, Customer
from billing_bridge.models.price import PriceType
from billing_bridge.schemas.checkout import CheckoutRequest
from billing_bridge.services.checkout_service import CheckoutService
from billing_bridge.services.stripe_service import StripeGateway
from tests.factories import CustomerFactory, UserFactory


def _service(db_session: AsyncSession, billing_config) -> CheckoutService:
    return CheckoutService(RecordStore(db_session), StripeGateway(billing_config), billing_config)


def _request(price_type: PriceType = PriceType.ONE_TIME) -> CheckoutRequest:
    return CheckoutRequest(price_id="price_test", price_type=price_type, quantity=2)


class TestEnsureCustomer:
    @pytest.mark.asyncio
    async def test_new_user_creates_one_customer(
        self, db_session: AsyncSession, billing_config, stripe_api
    ):
        user = await UserFactory.create(db_session)
        service = _service(db_session, billing_config)

        mapping = await service.ensure_customer(user)
        again = await service.ensure_customer(user)

        assert mapping.stripe_customer_id == "cus_new_123"
        assert again.id == mapping.id
        assert stripe_api.customer_create.call_count == 1
        assert await RecordStore(db_session).count(Customer, user_id=user.id) == 1

    @pytest.mark.asyncio
    async def test_existing_mapping_reused(
        self, db_session: AsyncSession, billing_config, stripe_api
    ):
        user = await UserFactory.create(db_session)
        await CustomerFactory.create(db_session, user, stripe_customer_id="cus_existing_123")
        service = _service(db_session, billing_config)

        mapping = await service.ensure_customer(user)

        assert mapping.stripe_customer_id == "cus_existing_123"
        stripe_api.customer_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_mapping_save_failure(
        self, db_session: AsyncSession, billing_config, stripe_api, caplog
    ):
        user = await UserFactory.create(db_session)
        service = _service(db_session, billing_config)
        service.store.save = AsyncMock(
            side_effect=PersistenceError(message="could not create new customer")
        )

        with pytest.raises(PersistenceError) as exc_info:
            await service.ensure_customer(user)

        assert exc_info.value.message == "could not create new customer"
        assert exc_info.value.context["stripe_customer_id"] == "cus_new_123"
        assert "cus_new_123" in caplog.text

    @pytest.mark.asyncio
    async def test_idempotency_key_uses_billing_key(
        self, db_session: AsyncSession, billing_config, stripe_api
    ):
        user = await UserFactory.create(db_session)

        await _service(db_session, billing_config).ensure_customer(user)

        kwargs = stripe_api.customer_create.call_args.kwargs
        assert kwargs["idempotency_key"] == f"customer-create-{user.billing_key}"
        assert kwargs["metadata"] == {"pocketbaseUUID": str(user.id)}

    @pytest.mark.asyncio
    async def test_separate_databases_never_share_idempotency_key(
        self, billing_config, stripe_api
    ):
        """
        WHY: Staging, dev and CI often share one Stripe test account while
        each database numbers its users from 1. Reusing a key would return
        another environment's customer or fail for about a day.
        """
        user_ids = []
        for email in ("alice@staging.test", "bob@dev.test"):
            engine = create_async_engine(
                "sqlite+aiosqlite:///:memory:",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            async with async_sessionmaker(engine, expire_on_commit=False)() as session:
                user = await UserFactory.create(session, email=email)
                user_ids.append(user.id)
                await _service(session, billing_config).ensure_customer(user)
            await engine.dispose()

        keys = [
            call.kwargs["idempotency_key"]
            for call in stripe_api.customer_create.call_args_list
        ]
        assert user_ids[0] == user_ids[1]
        assert len(set(keys)) == 2


class TestSessions:
    @pytest.mark.asyncio
    async def test_checkout_uses_mapped_customer(
        self, db_session: AsyncSession, billing_config, stripe_api
    ):
        user = await UserFactory.create(db_session)
        service = _service(db_session, billing_config)

        session = await service.create_checkout_session(user, _request())

        assert session["id"] == "cs_test_123"
        assert stripe_api.checkout_create.call_args.kwargs["customer"] == "cus_new_123"

    @pytest.mark.asyncio
    async def test_mapping_kept_when_session_fails(
        self, db_session: AsyncSession, billing_config, stripe_api
    ):
        user = await UserFactory.create(db_session)
        user_id = user.id
        service = _service(db_session, billing_config)
        service.gateway.create_checkout_session = AsyncMock(
            side_effect=RemoteCallError(message="could not create new session")
        )

        with pytest.raises(RemoteCallError):
            await service.create_checkout_session(user, _request())
        await db_session.rollback()

        mapping = await RecordStore(db_session).find_first(Customer, "user_id", user_id)
        assert mapping is not None
        assert mapping.stripe_customer_id == "cus_new_123"

    @pytest.mark.asyncio
    async def test_portal_link(self, db_session: AsyncSession, billing_config, stripe_api):
        user = await UserFactory.create(db_session)
        await CustomerFactory.create(db_session, user, stripe_customer_id="cus_existing_123")
        service = _service(db_session, billing_config)

        session = await service.create_portal_link(user)

        assert session["id"] == "bps_test_123"
        assert stripe_api.portal_create.call_args.kwargs["customer"] == "cus_existing_123"
