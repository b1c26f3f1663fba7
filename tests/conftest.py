"""
Test fixtures for the KV Bank API test suite.

This module provides shared fixtures used across all test files:

  - storage / repository: Fresh in-memory storage for each test, plus the
    repository wrapping it (for service-level tests)
  - app: An application built by create_app() around that storage
  - client: Async HTTP test client (unauthenticated)
  - admin_client: Test client logged in as the administrator
  - member_client: Test client for a member who signed up via the API
  - second_member_client: A second member for cross-user tests

Key design decisions:
  - MemoryStorage is used for speed and isolation. Each test gets a
    completely fresh store, so no state leaks between tests.
  - The application receives the storage through create_app(), exactly
    like production receives the configured adapter.
  - member_client signs up through the real endpoint, so it exercises the
    actual signup flow.
  - Environment variables are set before any kvbank import, because
    settings are read once and cached.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["ADMIN_DEFAULT_PASSWORD"] = "admin123"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from kvbank.main import create_app  # noqa: E402
from kvbank.models.account import AccountDraft, AccountType  # noqa: E402
from kvbank.services.account_repository import AccountRepository  # noqa: E402
from kvbank.storage.memory import MemoryStorage  # noqa: E402

ADMIN_PASSWORD = "admin123"
MEMBER_PASSWORD = "SecurePass123!"


@pytest_asyncio.fixture
async def storage():
    return MemoryStorage()


@pytest_asyncio.fixture
async def repository(storage):
    return AccountRepository(storage)


@pytest_asyncio.fixture
async def app(storage):
    return create_app(storage=storage)


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP test client with no credentials."""
    async with _client(app) as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_client(app):
    """Test client logged in with the default administrator credentials."""
    async with _client(app) as ac:
        response = await ac.post(
            "/auth/login", json={"identifier": "admin", "password": ADMIN_PASSWORD}
        )
        assert response.status_code == 200, f"Admin login failed: {response.text}"
        ac.headers["Authorization"] = f"Bearer {response.json()['token']}"
        yield ac


async def _signup(ac: AsyncClient, full_name: str, email: str) -> dict:
    response = await ac.post(
        "/auth/signup",
        json={"full_name": full_name, "email": email, "password": MEMBER_PASSWORD},
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    data = response.json()
    ac.headers["Authorization"] = f"Bearer {data['token']}"
    return data


@pytest_asyncio.fixture
async def member_client(app):
    """
    Test client for a signed-up member.

    The signup response is kept on `client.member` so tests can reach the
    member's account id and number.
    """
    async with _client(app) as ac:
        ac.member = await _signup(ac, "Test User", "testuser@example.com")
        yield ac


@pytest_asyncio.fixture
async def second_member_client(app):
    """A second member, for verifying that members can't reach each other's data."""
    async with _client(app) as ac:
        ac.member = await _signup(ac, "Second User", "seconduser@example.com")
        yield ac


@pytest.fixture
def make_draft():
    """Factory for valid AccountDraft objects; keyword arguments override fields."""

    def _make(**overrides) -> AccountDraft:
        fields = {
            "full_name": "Ana Torres",
            "email": "ana@example.com",
            "account_type": AccountType.CHECKING,
            "password": "secret-pass",
        }
        fields.update(overrides)
        return AccountDraft(**fields)

    return _make
