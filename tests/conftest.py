"""Pytest fixtures for OrderDesk tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.app import app
from src.database.session import get_db
from src.middleware.rate_limit import limiter
from src.models.enums import Role
from src.modules.auth import AuthenticatedUser, get_current_user
from tests.fakes import FakeDatabase, make_order, make_user


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Each test starts with empty rate-limit counters."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase(make_order())


@pytest.fixture
def mock_db():
    """Create a mock AsyncSession."""
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.in_transaction = MagicMock(return_value=False)
    return session


@pytest.fixture
def current_user() -> AuthenticatedUser:
    return make_user(Role.OPERATOR)


@pytest_asyncio.fixture
async def async_client(mock_db, current_user) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient wired to the FastAPI app with auth and DB overridden."""

    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
