"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import os

# Settings are read at import time; tests never need a real database or
# Stripe account.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-with-enough-length-0123456789")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WHSEC", "whsec_test_secret")

from types import SimpleNamespace  # noqa: E402
from typing import AsyncGenerator  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import stripe  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from billing_bridge.core.config import BillingConfig  # noqa: E402
from billing_bridge.core.deps import get_billing_config  # noqa: E402
from billing_bridge.db.session import get_db  # noqa: E402
from billing_bridge.main import app  # noqa: E402
from billing_bridge.models import Base  # noqa: E402
from tests.factories import WEBHOOK_SECRET  # noqa: E402


# Test database URL
# WHY: Using SQLite for tests eliminates external database dependencies
# and makes tests faster.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state.
    StaticPool keeps one connection so the in-memory database created here
    is the one the session sees.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for the test
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def billing_config() -> BillingConfig:
    """Billing configuration used by every service under test."""
    return BillingConfig(
        api_key="sk_test_123",
        webhook_secret=WEBHOOK_SECRET,
        success_url="https://example.com/success",
        cancel_url="https://example.com/cancel",
        billing_return_url="https://example.com/account",
    )


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, billing_config: BillingConfig
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server, making tests faster and more reliable.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        """Override database dependency with test session."""
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_billing_config] = lambda: billing_config

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def stripe_api(monkeypatch) -> SimpleNamespace:
    """
    Replace the Stripe SDK calls used by the gateway.

    WHY: Tests must never reach the Stripe API. Each mock returns a plain
    dict shaped like the Stripe object; tests inspect call_args or set
    side_effect to simulate failures.
    """
    customer_create = MagicMock(
        return_value={"id": "cus_new_123", "object": "customer"}
    )
    checkout_create = MagicMock(
        return_value={
            "id": "cs_test_123",
            "object": "checkout.session",
            "url": "https://checkout.stripe.com/c/pay/cs_test_123",
        }
    )
    portal_create = MagicMock(
        return_value={
            "id": "bps_test_123",
            "object": "billing_portal.session",
            "url": "https://billing.stripe.com/p/session/bps_test_123",
        }
    )

    monkeypatch.setattr(stripe.Customer, "create", customer_create)
    monkeypatch.setattr(stripe.checkout.Session, "create", checkout_create)
    monkeypatch.setattr(stripe.billing_portal.Session, "create", portal_create)

    return SimpleNamespace(
        customer_create=customer_create,
        checkout_create=checkout_create,
        portal_create=portal_create,
    )
