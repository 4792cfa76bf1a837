"""Shared fixtures: in-memory catalog, service and API client."""

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from storefinder.main import app
from storefinder.services.catalog import CatalogService, get_catalog_service
from storefinder.settings import Settings
from storefinder.stores.memory import MemoryCatalogRepository

# Toronto city hall
ORIGIN_LNG = -79.3839
ORIGIN_LAT = 43.6534


def store_payload(
    name: str,
    *,
    lng: float = ORIGIN_LNG,
    lat: float = ORIGIN_LAT,
    address: str = "100 Queen St W, Toronto",
    **fields: Any,
) -> dict[str, Any]:
    """Minimal valid create payload."""
    return {
        "name": name,
        "location": {"coordinates": [lng, lat], "address": address},
        **fields,
    }


@pytest.fixture
def repository() -> MemoryCatalogRepository:
    return MemoryCatalogRepository()


@pytest.fixture
def settings() -> Settings:
    return Settings(storage_backend="memory", slug_lock_wait=0.0)


@pytest.fixture
def service(repository: MemoryCatalogRepository, settings: Settings) -> CatalogService:
    return CatalogService(repository, settings)


@pytest.fixture
async def client(service: CatalogService):
    """Create test client backed by the in-memory catalog."""
    app.dependency_overrides[get_catalog_service] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
