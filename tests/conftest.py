"""
tests/conftest.py

Test fixtures for API integration and unit tests.
Includes the async client, fake users, a mocked database session and
dependency overrides.
"""

from collections.abc import AsyncGenerator, Generator
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from reportsonic.core.dependencies import get_current_user
from reportsonic.core.limiter import limiter
from reportsonic.database.enums import (
    AuthProvider,
    SubscriptionPlan,
    SubscriptionStatus,
    UserRole,
)
from reportsonic.database.models import User
from reportsonic.database.session import get_db
from reportsonic.main import app

limiter.enabled = False


# --- Core Test Fixtures ---


@pytest.fixture(scope="session")
def transport() -> ASGITransport:
    """Fixture for ASGI transport."""
    return ASGITransport(app=app)


@pytest_asyncio.fixture(scope="function")
async def async_client(transport: ASGITransport) -> AsyncGenerator[AsyncClient, None]:
    """Fixture for HTTP async client."""
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# --- Fake User Fixtures ---


def make_user(**overrides: Any) -> User:
    """Builds a detached User with every column populated."""
    now = datetime.now(timezone.utc)
    fields: dict[str, Any] = {
        "id": 1,
        "email": "user.test@example.com",
        "name": "Test User",
        "password": "fakehashedpassword",
        "image": None,
        "provider": AuthProvider.CREDENTIALS,
        "role": UserRole.USER,
        "subscription_plan": SubscriptionPlan.FREE,
        "subscription_status": SubscriptionStatus.ACTIVE,
        "stripe_customer_id": None,
        "stripe_subscription_id": None,
        "current_period_end": None,
        "monthly_cells_used": 0,
        "monthly_reports_used": 0,
        "total_cells_used": 0,
        "last_reset_date": now,
        "reset_token": None,
        "reset_token_expiry": None,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return User(**fields)


@pytest.fixture
def fake_user() -> User:
    """Fixture for a free-plan user."""
    return make_user()


@pytest.fixture
def fake_starter_user() -> User:
    """Fixture for a starter-plan user with a Stripe customer."""
    return make_user(
        id=2,
        email="starter.test@example.com",
        name="Starter User",
        subscription_plan=SubscriptionPlan.STARTER,
        stripe_customer_id="cus_starter",
    )


@pytest.fixture
def fake_superadmin_user() -> User:
    """Fixture for a superadmin."""
    return make_user(
        id=99,
        email="admin.test@example.com",
        name="Admin Test",
        role=UserRole.SUPERADMIN,
        subscription_plan=SubscriptionPlan.PROFESSIONAL,
    )


# --- Database Fixtures ---


def mock_result(value: Any = None, values: list[Any] | None = None) -> MagicMock:
    """Result stub answering the scalar accessors used by the services."""
    result = MagicMock()
    result.unique.return_value.scalar_one_or_none.return_value = value
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    result.scalars.return_value.all.return_value = values or []
    result.all.return_value = values or []
    return result


@pytest.fixture
def mock_db() -> AsyncMock:
    """AsyncSession stand-in; `add` and `delete` bookkeeping is synchronous on a real session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.execute = AsyncMock(return_value=mock_result())
    return db


# --- Dependency Override Fixtures ---


@pytest_asyncio.fixture
async def override_get_db() -> AsyncGenerator[None, None]:
    """Override for the database dependency."""

    async def _override() -> AsyncGenerator[AsyncMock, None]:
        yield AsyncMock()

    app.dependency_overrides[get_db] = _override
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def override_get_current_user(fake_user: User) -> Generator[User, None, None]:
    """Override for getting the current user as a free-plan user."""
    app.dependency_overrides[get_current_user] = lambda: fake_user
    yield fake_user
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def mock_current_starter_user(fake_starter_user: User) -> Generator[User, None, None]:
    app.dependency_overrides[get_current_user] = lambda: fake_starter_user
    yield fake_starter_user
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def mock_current_superadmin(fake_superadmin_user: User) -> Generator[User, None, None]:
    """Mock the current user as a superadmin."""
    app.dependency_overrides[get_current_user] = lambda: fake_superadmin_user
    yield fake_superadmin_user
    app.dependency_overrides.pop(get_current_user, None)


# --- Factory Fixtures ---


@pytest.fixture
def user_factory() -> Any:
    """Exposes make_user to test modules."""
    return make_user


@pytest.fixture
def result_factory() -> Any:
    """Exposes mock_result to test modules."""
    return mock_result
