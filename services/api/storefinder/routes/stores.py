"""Store catalog endpoints.

GET  /v1/stores                 - Newest-first listing (page 1)
GET  /v1/stores/page/{page}     - Newest-first listing
GET  /v1/stores/near            - Stores near a point (map)
POST /v1/stores/hearted         - Stores for a list of ids
GET  /v1/stores/id/{store_id}   - Store by id
GET  /v1/stores/{slug}          - Store by slug
POST /v1/stores                 - Create store (X-User-Id)
PUT  /v1/stores/{store_id}      - Update store (X-User-Id, owner only)

Routers are thin: call the catalog service for business logic.
"""

from fastapi import APIRouter, Body, Depends, Header, Path, Query
from fastapi.responses import RedirectResponse

from storefinder.schemas import MapStore, Store, StoreCreate, StoreIds, StorePage, StoreUpdate
from storefinder.services.catalog import CatalogService, get_catalog_service
from storefinder.services.errors import NotFoundError

router = APIRouter()


def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str | None:
    """Authenticated user id, set by the gateway in front of this service."""
    return x_user_id


async def _store_page(page: int, service: CatalogService) -> StorePage | RedirectResponse:
    result = await service.list_stores(page)
    if not result.stores and page > 1:
        # Past the last page: send the client to the last one that exists
        return RedirectResponse(url=f"/v1/stores/page/{max(result.pages, 1)}", status_code=307)
    return result


@router.get("", response_model=StorePage)
async def list_stores(
    page: int = Query(default=1, ge=1, description="Page number (1-based)"),
    service: CatalogService = Depends(get_catalog_service),
) -> StorePage | RedirectResponse:
    """List stores, newest first."""
    return await _store_page(page, service)


@router.get("/page/{page}", response_model=StorePage)
async def list_stores_page(
    page: int = Path(ge=1, description="Page number (1-based)"),
    service: CatalogService = Depends(get_catalog_service),
) -> StorePage | RedirectResponse:
    """List stores, newest first (path-style pagination)."""
    return await _store_page(page, service)


@router.get("/near", response_model=list[MapStore])
async def map_stores(
    lng: str = Query(description="Longitude of the search origin", examples=["-79.38"]),
    lat: str = Query(description="Latitude of the search origin", examples=["43.65"]),
    max_distance: str | None = Query(
        default=None,
        alias="maxDistance",
        description="Search radius in meters (default 10km)",
    ),
    service: CatalogService = Depends(get_catalog_service),
) -> list[MapStore]:
    """Get up to 10 stores near a point, nearest first.

    Coordinates are validated by the service so that bad input is reported
    as INVALID_QUERY.
    """
    return await service.map_stores(lng, lat, max_distance)


@router.post("/hearted", response_model=list[Store])
async def hearted_stores(
    body: StoreIds = Body(...),
    service: CatalogService = Depends(get_catalog_service),
) -> list[Store]:
    """Get the stores for a list of ids (a user's hearted stores)."""
    return await service.get_stores_by_ids(body.ids)


@router.get("/id/{store_id}", response_model=Store)
async def get_store(
    store_id: int = Path(ge=1),
    service: CatalogService = Depends(get_catalog_service),
) -> Store:
    """Get a store by id."""
    store = await service.get_store(store_id)
    if store is None:
        raise NotFoundError("Store not found", detail={"storeId": store_id})
    return store


@router.get("/{slug}", response_model=Store)
async def get_store_by_slug(
    slug: str = Path(min_length=1, max_length=220, pattern=r"^[a-zA-Z0-9-]+$"),
    service: CatalogService = Depends(get_catalog_service),
) -> Store:
    """Get a store by slug."""
    store = await service.get_store_by_slug(slug)
    if store is None:
        raise NotFoundError("Store not found", detail={"slug": slug})
    return store


@router.post("", response_model=Store, status_code=201)
async def create_store(
    body: StoreCreate,
    user_id: str | None = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
) -> Store:
    """Create a store authored by the current user."""
    return await service.create_store(body, author_id=user_id)


@router.put("/{store_id}", response_model=Store)
async def update_store(
    body: StoreUpdate,
    store_id: int = Path(ge=1),
    user_id: str | None = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
) -> Store:
    """Update a store owned by the current user."""
    store = await service.update_store(store_id, body, author_id=user_id)
    if store is None:
        raise NotFoundError("Store not found", detail={"storeId": store_id})
    return store
