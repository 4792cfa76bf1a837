"""Schemas for catalog stores, reviews and the derived ranking views."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class Location(BaseModel):
    """GeoJSON-style point with a street address.

    Coordinates are (longitude, latitude), in that order.
    """

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]
    address: str = Field(min_length=1, max_length=500)

    model_config = {"str_strip_whitespace": True}

    @field_validator("coordinates")
    @classmethod
    def _check_coordinates(cls, v: tuple[float, float]) -> tuple[float, float]:
        lng, lat = v
        if not -180.0 <= lng <= 180.0:
            raise ValueError("longitude must be within [-180, 180]")
        if not -90.0 <= lat <= 90.0:
            raise ValueError("latitude must be within [-90, 90]")
        return v

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


def _clean_tags(tags: list[str] | None) -> list[str]:
    """Strip labels, drop blanks and duplicates (first occurrence wins)."""
    if not tags:
        return []
    return list(dict.fromkeys(t.strip() for t in tags if t and t.strip()))


def _clean_description(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class StoreCreate(BaseModel):
    """Payload for creating a store."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    location: Location
    photo: str | None = None

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)

    @field_validator("description")
    @classmethod
    def _check_description(cls, v: str | None) -> str | None:
        return _clean_description(v)


class StoreUpdate(BaseModel):
    """Payload for updating a store. Omitted fields are left untouched."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    tags: list[str] | None = None
    location: Location | None = None
    photo: str | None = None

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else _clean_tags(v)

    @field_validator("description")
    @classmethod
    def _check_description(cls, v: str | None) -> str | None:
        return _clean_description(v)


class Review(BaseModel):
    """A review as joined onto a store (read-only for the catalog)."""

    id: int
    store_id: int = Field(alias="storeId")
    author_id: str | None = Field(alias="authorId", default=None)
    text: str = ""
    rating: int = Field(ge=1, le=5)
    created_at: datetime | None = Field(alias="createdAt", default=None)

    model_config = {"populate_by_name": True}


class StoreRecord(BaseModel):
    """A store as persisted, before reviews are attached."""

    id: int
    name: str
    slug: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    location: Location
    photo: str | None = None
    author_id: str = Field(alias="authorId")
    created_at: datetime = Field(alias="createdAt")

    model_config = {"populate_by_name": True}


class Store(StoreRecord):
    """A store with its reviews attached.

    This is the only store shape handed out of the catalog.
    """

    reviews: list[Review]


class MapStore(BaseModel):
    """Projection used by map and listing widgets."""

    id: int
    slug: str
    name: str
    description: str | None = None
    location: Location
    photo: str | None = None
    reviews: list[Review]

    model_config = {"populate_by_name": True}


class RankedStore(Store):
    """Store enriched with its review statistics (top stores view)."""

    average_rating: float = Field(alias="averageRating")
    review_count: int = Field(alias="reviewCount", ge=0)


class TagCount(BaseModel):
    """Number of stores carrying a tag."""

    tag: str
    count: int = Field(ge=1)


class StorePage(BaseModel):
    """One page of the newest-first store listing."""

    stores: list[Store]
    page: int = Field(ge=1)
    pages: int = Field(ge=0)
    count: int = Field(ge=0)


class TagListing(BaseModel):
    """Stores for a tag along with the full tag vocabulary."""

    tag: str | None = None
    tags: list[TagCount]
    stores: list[Store]


class StoreIds(BaseModel):
    """Body for listing a user's hearted stores."""

    ids: list[int] = Field(default_factory=list, max_length=500)
