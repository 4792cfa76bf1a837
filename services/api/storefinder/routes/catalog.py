"""Catalog-wide views.

GET /v1/search?q=   - Full-text search (top 5)
GET /v1/top         - Top-rated stores (>= 2 reviews)
GET /v1/tags        - Tag vocabulary with counts, all stores
GET /v1/tags/{tag}  - Tag vocabulary with counts, stores carrying tag
"""

from fastapi import APIRouter, Depends, Path, Query

from storefinder.schemas import RankedStore, Store, TagListing
from storefinder.services.catalog import CatalogService, get_catalog_service

router = APIRouter()


@router.get("/search", response_model=list[Store])
async def search_stores(
    q: str = Query(default="", max_length=200, description="Search terms"),
    service: CatalogService = Depends(get_catalog_service),
) -> list[Store]:
    """Search stores by name and description, best matches first."""
    return await service.search_stores(q)


@router.get("/top", response_model=list[RankedStore])
async def top_stores(
    limit: int | None = Query(default=None, ge=1, le=100, description="Max stores (default 10)"),
    service: CatalogService = Depends(get_catalog_service),
) -> list[RankedStore]:
    """Get the best-rated stores."""
    return await service.top_stores(limit)


@router.get("/tags", response_model=TagListing)
async def list_tags(
    service: CatalogService = Depends(get_catalog_service),
) -> TagListing:
    """Get every tag with its store count, plus all stores."""
    return await service.stores_by_tag(None)


@router.get("/tags/{tag}", response_model=TagListing)
async def stores_for_tag(
    tag: str = Path(min_length=1, max_length=100),
    service: CatalogService = Depends(get_catalog_service),
) -> TagListing:
    """Get every tag with its store count, plus the stores carrying `tag`."""
    return await service.stores_by_tag(tag)
