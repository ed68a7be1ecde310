"""
Tests for RecordStore.

WHAT: Storage operations the billing services rely on.

WHY: The upsert engine depends on these guarantees:
1. find_first returns the oldest row when an external id is duplicated
2. A missing table is reported as SchemaMissingError, not a crash
3. A rejected write becomes PersistenceError carrying the caller's reason
"""

from datetime import timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from billing_bridge.core.exceptions import PersistenceError, SchemaMissingError
from billing_bridge.dao.base import RecordStore
from billing_bridge.models import Customer, Price, Product
from billing_bridge.models.base import utc_now
from tests.factories import ProductFactory, UserFactory


class TestFindCollection:
    @pytest.mark.asyncio
    async def test_known_collection(self, db_session: AsyncSession):
        store = RecordStore(db_session)
        assert await store.find_collection("product") is Product

    @pytest.mark.asyncio
    async def test_unknown_collection(self, db_session: AsyncSession):
        store = RecordStore(db_session)

        with pytest.raises(SchemaMissingError) as exc_info:
            await store.find_collection("invoice")

        assert exc_info.value.message == "could not find collection invoice"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_missing_table(self, db_session: AsyncSession):
        """
        WHY: Running against a database that has not been migrated must
        produce a clear operator-facing failure.
        """
        await db_session.run_sync(lambda s: Price.__table__.drop(s.connection()))
        store = RecordStore(db_session)

        with pytest.raises(SchemaMissingError) as exc_info:
            await store.find_collection("price")

        assert exc_info.value.message == "could not find collection price"


class TestFindFirst:
    @pytest.mark.asyncio
    async def test_returns_none_when_absent(self, db_session: AsyncSession):
        store = RecordStore(db_session)
        assert await store.find_first(Product, "product_id", "prod_missing") is None

    @pytest.mark.asyncio
    async def test_first_of_duplicates(self, db_session: AsyncSession):
        """
        WHY: Concurrent deliveries may insert the same Stripe id twice; later
        lookups must keep resolving to one deterministic row.
        """
        first = await ProductFactory.create(db_session, name="first")
        await ProductFactory.create(db_session, name="second")
        store = RecordStore(db_session)

        found = await store.find_first(Product, "product_id", "prod_test")

        assert found.id == first.id
        assert await store.count(Product, product_id="prod_test") == 2

    @pytest.mark.asyncio
    async def test_unknown_field(self, db_session: AsyncSession):
        store = RecordStore(db_session)

        with pytest.raises(AttributeError):
            await store.find_first(Product, "no_such_field", "x")


class TestSave:
    @pytest.mark.asyncio
    async def test_save_assigns_id(self, db_session: AsyncSession):
        store = RecordStore(db_session)
        product = store.new_record(Product, product_id="prod_new", description="")

        saved = await store.save(product, operation="test")

        assert saved.id is not None
        assert await store.get_by_id(Product, saved.id) is saved

    @pytest.mark.asyncio
    async def test_save_failure_raises_persistence_error(self, db_session: AsyncSession):
        user = await UserFactory.create(db_session)
        store = RecordStore(db_session)
        await store.save(
            store.new_record(Customer, user_id=user.id, stripe_customer_id="cus_1"),
            operation="test",
        )

        # customers.user_id is unique
        duplicate = store.new_record(Customer, user_id=user.id, stripe_customer_id="cus_2")
        with pytest.raises(PersistenceError) as exc_info:
            await store.save(
                duplicate,
                operation="create_customer_mapping",
                external_id="cus_2",
                failure_message="could not create new customer",
            )

        assert exc_info.value.message == "could not create new customer"
        assert exc_info.value.retryable is True
        assert exc_info.value.context["operation"] == "create_customer_mapping"


class TestTimestamps:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is timezone.utc

    @pytest.mark.asyncio
    async def test_saved_record_is_stamped(self, db_session: AsyncSession):
        store = RecordStore(db_session)
        before = utc_now()
        product = store.new_record(Product, product_id="prod_stamp", name="Stamped", description="")

        await store.save(product, operation="upsert_product", external_id="prod_stamp")

        assert product.created_at is not None
        created = product.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        assert created - before < timedelta(seconds=5)
