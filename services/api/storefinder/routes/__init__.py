"""API routes."""

from fastapi import APIRouter

from storefinder.routes import catalog, stores

api_router = APIRouter()

# Store CRUD, lookup and map search
api_router.include_router(stores.router, prefix="/v1/stores", tags=["stores"])

# Search, ranking and tag views
api_router.include_router(catalog.router, prefix="/v1", tags=["catalog"])
