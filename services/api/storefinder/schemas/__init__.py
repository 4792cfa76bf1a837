"""Pydantic schemas for API request/response validation."""

from storefinder.schemas.errors import ErrorDetail, ErrorResponse, FieldError, field_errors
from storefinder.schemas.store import (
    Location,
    MapStore,
    RankedStore,
    Review,
    Store,
    StoreCreate,
    StoreIds,
    StorePage,
    StoreRecord,
    StoreUpdate,
    TagCount,
    TagListing,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "FieldError",
    "Location",
    "MapStore",
    "RankedStore",
    "Review",
    "Store",
    "StoreCreate",
    "StoreIds",
    "StorePage",
    "StoreRecord",
    "StoreUpdate",
    "TagCount",
    "TagListing",
    "field_errors",
]
