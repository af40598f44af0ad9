"""pytest fixtures shared across all tests."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from oauthgate.core.config import Settings
from oauthgate.core.directory import InMemoryUserDirectory
from tests.factories import CLIENT_URL, FakeProvider


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        app_env="test",
        session_secret="test-session-secret",
        client_url=CLIENT_URL,
        backend_url=None,
        database_url=None,
        expose_user_directory=True,
    )


@pytest.fixture
def directory() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def app(settings, directory, provider):
    from oauthgate.api.app import create_app

    return create_app(settings, directory=directory, provider=provider)


@pytest_asyncio.fixture
async def client(app):
    """HTTPX async test client wired to the FastAPI app."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
