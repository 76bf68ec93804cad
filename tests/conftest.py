"""
CodeVault Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite) with the
       tables created from ORM metadata, so service tests run real SQL
       without a PostgreSQL server.

Fixture Hierarchy (all function-scoped):
    settings ─┬─ database ── db_session      (service tests)
              ├─ token_service ── auth_service
              ├─ snippet_service
              └─ app ── client ── register   (HTTP tests)
"""

from typing import AsyncGenerator, Awaitable, Callable, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from codevault.config import Settings
from codevault.database import Database
from codevault.main import create_app
from codevault.services.auth_service import AuthService
from codevault.services.snippet_service import SnippetService
from codevault.services.token_service import TokenService

TEST_SECRET = "test-secret-that-is-definitely-long-enough-0123456789"


@pytest.fixture
def settings() -> Settings:
    """
    Settings for an isolated test run.

    Passed explicitly, so nothing depends on the developer's environment or
    .env file for the values that matter.
    """
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret=TEST_SECRET,
        jwt_expiration_days=7,
        log_level="WARNING",
        rate_limit_requests=10_000,
        max_code_length=5_000,
    )


@pytest_asyncio.fixture
async def database(settings) -> AsyncGenerator[Database, None]:
    db = Database(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    """A bare AsyncSession for service-level tests (no commit needed)."""
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def token_service(settings) -> TokenService:
    return TokenService.from_settings(settings)


@pytest.fixture
def auth_service(token_service) -> AuthService:
    return AuthService(token_service)


@pytest.fixture
def snippet_service(settings) -> SnippetService:
    return SnippetService(max_code_length=settings.max_code_length)


@pytest_asyncio.fixture
async def app(settings):
    """
    A fully wired application against its own in-memory database.

    httpx's ASGITransport does not run the lifespan, so tables are created
    here directly.
    """
    application = create_app(settings)
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP test client talking to the app in-process.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def register(client) -> Callable[..., Awaitable[Dict[str, str]]]:
    """
    Factory: register a user through the API and return bearer headers.

        headers = await register("alice")
    """

    async def _register(username: str, password: str = "pw12345678") -> Dict[str, str]:
        response = await client.post(
            "/api/auth/register",
            json={"username": username, "password": password, "displayName": username.title()},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _register
