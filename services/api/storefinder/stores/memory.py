"""In-memory catalog repository.

Used for local demos (STORAGE_BACKEND=memory) and tests. Mirrors the
Postgres behaviour: unique slugs, weighted text relevance, nearest-first
geo search.
"""

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from storefinder.schemas import Review, StoreCreate, StoreRecord
from storefinder.services.errors import SlugConflictError
from storefinder.services.geo import haversine_m
from storefinder.services.slugs import slug_pattern
from storefinder.services.text_search import rank_by_text
from storefinder.stores.base import CatalogRepository


class MemoryCatalogRepository(CatalogRepository):
    """Catalog kept in process memory."""

    def __init__(self) -> None:
        self.stores: dict[int, StoreRecord] = {}
        self.reviews: dict[int, Review] = {}
        self._next_store_id = 1
        self._next_review_id = 1

    def _check_slug(self, slug: str, store_id: int | None = None) -> None:
        for record in self.stores.values():
            if record.id != store_id and record.slug.lower() == slug.lower():
                raise SlugConflictError(slug)

    async def _insert_store(self, data: StoreCreate, slug: str, author_id: str) -> StoreRecord:
        self._check_slug(slug)
        record = StoreRecord(
            id=self._next_store_id,
            name=data.name,
            slug=slug,
            description=data.description,
            tags=list(data.tags),
            location=data.location,
            photo=data.photo,
            author_id=author_id,
            created_at=datetime.now(timezone.utc),
        )
        self.stores[record.id] = record
        self._next_store_id += 1
        return record

    async def _update_store(
        self, store_id: int, values: dict[str, Any], slug: str | None
    ) -> StoreRecord | None:
        record = self.stores.get(store_id)
        if record is None:
            return None
        if slug is not None:
            self._check_slug(slug, store_id)
            values = {**values, "slug": slug}
        updated = record.model_copy(update=values)
        self.stores[store_id] = updated
        return updated

    async def _record_by_id(self, store_id: int) -> StoreRecord | None:
        return self.stores.get(store_id)

    async def _record_by_slug(self, slug: str) -> StoreRecord | None:
        return next((r for r in self.stores.values() if r.slug == slug), None)

    async def _records_by_ids(self, store_ids: Sequence[int]) -> list[StoreRecord]:
        wanted = set(store_ids)
        return [r for r in self._ordered() if r.id in wanted]

    async def _records_page(self, skip: int, limit: int) -> list[StoreRecord]:
        newest_first = sorted(self.stores.values(), key=lambda r: (r.created_at, r.id), reverse=True)
        return newest_first[skip : skip + limit]

    async def _records_by_tag(self, tag: str | None) -> list[StoreRecord]:
        if tag is None:
            return self._ordered()
        return [r for r in self._ordered() if tag in r.tags]

    async def _records_matching_text(self, terms: Sequence[str], size: int) -> list[StoreRecord]:
        return rank_by_text(self._ordered(), terms, size)

    async def _records_near(
        self, lng: float, lat: float, max_distance: float, size: int
    ) -> list[StoreRecord]:
        distances = [
            (haversine_m(lng, lat, r.location.longitude, r.location.latitude), r)
            for r in self._ordered()
        ]
        nearby = sorted(
            ((d, r) for d, r in distances if d <= max_distance),
            key=lambda item: (item[0], item[1].id),
        )
        return [r for _, r in nearby[:size]]

    async def _all_records(self) -> list[StoreRecord]:
        return self._ordered()

    async def _reviews_for(self, store_ids: Sequence[int]) -> list[Review]:
        wanted = set(store_ids)
        return [r for r in self.reviews.values() if r.store_id in wanted]

    async def ranking_inputs(self, min_reviews: int) -> tuple[list[StoreRecord], list[Review]]:
        return self._ordered(), list(self.reviews.values())

    async def count_stores(self) -> int:
        return len(self.stores)

    async def find_matching_slugs(self, base: str, exclude_id: int | None = None) -> list[str]:
        pattern = slug_pattern(base)
        return [
            r.slug for r in self.stores.values() if r.id != exclude_id and pattern.match(r.slug)
        ]

    def _ordered(self) -> list[StoreRecord]:
        return sorted(self.stores.values(), key=lambda r: r.id)

    # ============================================================
    # Reviews (written by the reviews service in production)
    # ============================================================

    def add_review(
        self,
        store_id: int,
        rating: int,
        text: str = "",
        author_id: str | None = None,
    ) -> Review:
        """Record a review for a store."""
        review = Review(
            id=self._next_review_id,
            store_id=store_id,
            author_id=author_id,
            text=text,
            rating=rating,
            created_at=datetime.now(timezone.utc),
        )
        self.reviews[review.id] = review
        self._next_review_id += 1
        return review
