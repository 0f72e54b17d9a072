"""Shared pytest fixtures for ChaiVision tests (visible to every test package)."""

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app


@pytest.fixture
async def client():
    """Create async HTTP client for testing FastAPI endpoints.

    The lifespan does not run under ASGITransport, so routes that need the
    sales DataService answer 503 unless a test overrides the dependency.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
