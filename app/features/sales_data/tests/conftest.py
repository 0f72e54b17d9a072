"""Feature-specific test fixtures for the sales data loader."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from app.features.sales_data.config import DataServiceConfig
from app.features.sales_data.deps import get_data_service
from app.features.sales_data.service import DataService
from app.features.sales_data.tests.fakes import InMemoryDataStore, ManualClock
from app.main import app


@pytest.fixture
def store() -> InMemoryDataStore:
    """Empty in-memory store with the default 1000-row cap."""
    return InMemoryDataStore()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def config() -> DataServiceConfig:
    """Loader config with short waits for tests."""
    return DataServiceConfig(
        save_debounce_seconds=0.05,
        batch_pause_seconds=0.0,
        cache_sweep_interval_seconds=0.01,
        delete_batch_size=2,
    )


@pytest.fixture
def service(store: InMemoryDataStore, config: DataServiceConfig, clock: ManualClock) -> DataService:
    """DataService over the in-memory store and manual clock."""
    return DataService(store, config, clock=clock)


@pytest.fixture
async def api_client(service: DataService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose routes use the in-memory DataService."""
    app.dependency_overrides[get_data_service] = lambda: service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
