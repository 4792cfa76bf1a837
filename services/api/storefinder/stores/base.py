"""Catalog repository base.

Public read methods fetch store records through backend primitives and pass
them through `_populate()`, which joins reviews onto every store. Backends
only implement the primitives; they cannot hand out a store without reviews.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from storefinder.schemas import MapStore, Review, Store, StoreCreate, StoreRecord, StoreUpdate
from storefinder.services.reviews import attach_reviews

# Fields that are left untouched when an update sends them as null
NON_NULLABLE_UPDATE_FIELDS = ("name", "tags", "location")


def update_values(changes: StoreUpdate) -> dict[str, Any]:
    """Fields an update actually sets (explicit nulls clear optional fields only)."""
    values = changes.model_dump(exclude_unset=True)
    for field in NON_NULLABLE_UPDATE_FIELDS:
        if values.get(field, ...) is None:
            values.pop(field)
    if "location" in values:
        values["location"] = changes.location
    return values


class CatalogRepository(ABC):
    """Storage for stores (read/write) and reviews (read-only)."""

    # ============================================================
    # Backend primitives
    # ============================================================

    @abstractmethod
    async def _insert_store(self, data: StoreCreate, slug: str, author_id: str) -> StoreRecord:
        """Persist a new store. Raises SlugConflictError if the slug is taken."""

    @abstractmethod
    async def _update_store(
        self, store_id: int, values: dict[str, Any], slug: str | None
    ) -> StoreRecord | None:
        """Apply field changes (and a new slug if given). Raises SlugConflictError."""

    @abstractmethod
    async def _record_by_id(self, store_id: int) -> StoreRecord | None: ...

    @abstractmethod
    async def _record_by_slug(self, slug: str) -> StoreRecord | None: ...

    @abstractmethod
    async def _records_by_ids(self, store_ids: Sequence[int]) -> list[StoreRecord]: ...

    @abstractmethod
    async def _records_page(self, skip: int, limit: int) -> list[StoreRecord]:
        """Newest first (created DESC, id DESC)."""

    @abstractmethod
    async def _records_by_tag(self, tag: str | None) -> list[StoreRecord]:
        """Stores carrying `tag`, or every store when tag is None (id ASC)."""

    @abstractmethod
    async def _records_matching_text(self, terms: Sequence[str], size: int) -> list[StoreRecord]:
        """Relevance DESC, id ASC."""

    @abstractmethod
    async def _records_near(
        self, lng: float, lat: float, max_distance: float, size: int
    ) -> list[StoreRecord]:
        """Within `max_distance` meters, nearest first, id ASC on ties."""

    @abstractmethod
    async def _all_records(self) -> list[StoreRecord]: ...

    @abstractmethod
    async def _reviews_for(self, store_ids: Sequence[int]) -> list[Review]: ...

    @abstractmethod
    async def ranking_inputs(self, min_reviews: int) -> tuple[list[StoreRecord], list[Review]]:
        """Store records and reviews the top stores pipeline needs.

        Backends may pre-filter stores with fewer than `min_reviews` reviews;
        the pipeline applies the threshold regardless.
        """

    @abstractmethod
    async def count_stores(self) -> int: ...

    @abstractmethod
    async def find_matching_slugs(self, base: str, exclude_id: int | None = None) -> list[str]:
        """Slugs that may match ^(base)(-[0-9]+)?$ (a superset is fine)."""

    # ============================================================
    # Review join (applied to every store read)
    # ============================================================

    async def _populate(self, records: Sequence[StoreRecord]) -> list[Store]:
        if not records:
            return []
        reviews = await self._reviews_for([r.id for r in records])
        return attach_reviews(records, reviews)

    async def _populate_one(self, record: StoreRecord | None) -> Store | None:
        if record is None:
            return None
        return (await self._populate([record]))[0]

    # ============================================================
    # Writes
    # ============================================================

    async def create_store(self, data: StoreCreate, slug: str, author_id: str) -> Store:
        record = await self._insert_store(data, slug, author_id)
        return (await self._populate([record]))[0]

    async def update_store(
        self, store_id: int, changes: StoreUpdate, slug: str | None = None
    ) -> Store | None:
        record = await self._update_store(store_id, update_values(changes), slug)
        return await self._populate_one(record)

    # ============================================================
    # Reads
    # ============================================================

    async def get_store(self, store_id: int) -> Store | None:
        return await self._populate_one(await self._record_by_id(store_id))

    async def get_store_by_slug(self, slug: str) -> Store | None:
        return await self._populate_one(await self._record_by_slug(slug))

    async def get_stores_by_ids(self, store_ids: Sequence[int]) -> list[Store]:
        return await self._populate(await self._records_by_ids(store_ids))

    async def list_stores(self, skip: int, limit: int) -> list[Store]:
        return await self._populate(await self._records_page(skip, limit))

    async def find_stores_by_tag(self, tag: str | None) -> list[Store]:
        return await self._populate(await self._records_by_tag(tag))

    async def search_text(self, terms: Sequence[str], size: int) -> list[Store]:
        return await self._populate(await self._records_matching_text(terms, size))

    async def search_near(
        self, lng: float, lat: float, max_distance: float, size: int
    ) -> list[MapStore]:
        stores = await self._populate(await self._records_near(lng, lat, max_distance, size))
        return [
            MapStore(
                id=s.id,
                slug=s.slug,
                name=s.name,
                description=s.description,
                location=s.location,
                photo=s.photo,
                reviews=s.reviews,
            )
            for s in stores
        ]

    async def all_store_records(self) -> list[StoreRecord]:
        """Raw records for catalog-wide aggregations (tag counts)."""
        return await self._all_records()
