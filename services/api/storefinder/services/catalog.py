"""Catalog service: create/update/find stores and the ranked views.

Writes:
1. Validate payload and author
2. Lock the base slug in Redis (serializes same-name creates)
3. Count matching slugs -> assign base or base-(N+1)
4. Persist; on a unique-slug violation re-derive and retry (bounded)

Reads always go through the repository, which attaches reviews to every
store it returns.

If Redis is unavailable (tests / local memory backend), slug assignment
still works and relies on the unique slug constraint alone.
"""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
import logging
import math
import time
from typing import Any, TypeVar

import pydantic
from redis.exceptions import RedisError

from storefinder.schemas import (
    MapStore,
    RankedStore,
    Store,
    StoreCreate,
    StorePage,
    StoreUpdate,
    TagCount,
    TagListing,
    field_errors,
)
from storefinder.services.errors import (
    ConflictError,
    InvalidQueryError,
    OwnershipError,
    SlugConflictError,
    ValidationError,
)
from storefinder.services.geo import parse_max_distance, parse_point
from storefinder.services.ranking import count_tags, rank_top_stores
from storefinder.services.slugs import assign_slug, base_slug
from storefinder.services.text_search import query_terms
from storefinder.settings import Settings, get_settings
from storefinder.stores.base import CatalogRepository
from storefinder.stores.catalog import PostgresCatalogRepository
from storefinder.stores.memory import MemoryCatalogRepository
from storefinder.stores.postgres import get_session_factory
from storefinder.stores.redis import acquire_lock, release_lock, slug_lock_key

logger = logging.getLogger("uvicorn.error")

SLUG_LOCK_POLL_INTERVAL = 0.05  # seconds

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _validated(model: type[ModelT], data: ModelT | Mapping[str, Any]) -> ModelT:
    """Parse a payload, reporting problems as a catalog ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Invalid {model.__name__} payload", detail={"errors": field_errors(e.errors())}
        ) from None


def _require_author(author_id: str | None) -> str:
    author = (author_id or "").strip()
    if not author:
        raise ValidationError("You must supply an author", detail={"field": "authorId"})
    return author


# ============================================================
# Slug locks
# ============================================================


async def _try_acquire_slug_lock(key: str, ttl: int, wait: float) -> str | None:
    """Poll for the slug lock for up to `wait` seconds.

    Returns the lock token, or None when Redis is unavailable or the lock
    stays busy; callers then rely on the unique slug constraint.
    """
    deadline = time.monotonic() + wait
    while True:
        try:
            token = await acquire_lock(key, ttl=ttl)
        except RuntimeError:
            # Redis not initialized
            return None
        except RedisError as e:
            logger.warning(f"Slug lock {key} unavailable ({e}), relying on unique slug index")
            return None
        if token is not None:
            return token
        if time.monotonic() >= deadline:
            logger.warning(f"Slug lock {key} still busy after {wait}s, relying on unique slug index")
            return None
        await asyncio.sleep(SLUG_LOCK_POLL_INTERVAL)


@asynccontextmanager
async def slug_lock(base: str, *, ttl: int, wait: float) -> AsyncGenerator[bool, None]:
    """Hold the lock for base slug `base` while a slug is assigned and persisted.

    Yields whether the lock is actually held.
    """
    key = slug_lock_key(base)
    token = await _try_acquire_slug_lock(key, ttl, wait)
    try:
        yield token is not None
    finally:
        if token is not None:
            try:
                if not await release_lock(key, token):
                    logger.warning(f"Slug lock {key} expired before release (ttl={ttl}s)")
            except RedisError as e:
                logger.warning(f"Failed to release slug lock {key} ({e}), it expires in {ttl}s")


class CatalogService:
    """Composition root for catalog reads and writes."""

    def __init__(self, repository: CatalogRepository, settings: Settings | None = None) -> None:
        self.repository = repository
        self.settings = settings or get_settings()

    # ============================================================
    # Writes
    # ============================================================

    async def _with_unique_slug(
        self,
        name: str,
        write: Callable[[str], Awaitable[Store | None]],
        exclude_id: int | None = None,
    ) -> Store | None:
        """Assign a slug for `name` and run `write(slug)`, retrying on conflicts."""
        base = base_slug(name)

        async def lookup(prefix: str) -> list[str]:
            return await self.repository.find_matching_slugs(prefix, exclude_id=exclude_id)

        attempts = self.settings.slug_max_attempts
        async with slug_lock(base, ttl=self.settings.slug_lock_ttl, wait=self.settings.slug_lock_wait):
            for attempt in range(1, attempts + 1):
                slug = await assign_slug(base, lookup)
                try:
                    return await write(slug)
                except SlugConflictError:
                    logger.warning(f"Slug {slug} taken concurrently (attempt {attempt}/{attempts})")

        raise ConflictError(
            f"Could not assign a unique slug for '{name}'",
            detail={"slug": base, "attempts": attempts},
        )

    async def create_store(
        self,
        data: StoreCreate | Mapping[str, Any],
        author_id: str | None,
    ) -> Store:
        """Create a store with a unique slug.

        Raises:
            ValidationError: Missing name/location/address/coordinates/author.
            ConflictError: No unique slug within SLUG_MAX_ATTEMPTS.
        """
        payload = _validated(StoreCreate, data)
        author = _require_author(author_id)

        async def insert(slug: str) -> Store:
            return await self.repository.create_store(payload, slug, author)

        store = await self._with_unique_slug(payload.name, insert)
        logger.info(f"Store created: id={store.id} slug={store.slug}")
        return store

    async def update_store(
        self,
        store_id: int,
        changes: StoreUpdate | Mapping[str, Any],
        author_id: str | None,
    ) -> Store | None:
        """Update a store owned by `author_id`.

        The slug is re-derived only when the name actually changes.

        Returns:
            Updated store, or None if no store has that id.

        Raises:
            OwnershipError: The caller is not the store's author.
        """
        payload = _validated(StoreUpdate, changes)
        author = _require_author(author_id)

        current = await self.repository.get_store(store_id)
        if current is None:
            return None
        if current.author_id != author:
            raise OwnershipError("You must own a store in order to edit it!", detail={"storeId": store_id})

        if payload.name is not None and payload.name != current.name:

            async def rename(slug: str) -> Store | None:
                return await self.repository.update_store(store_id, payload, slug)

            store = await self._with_unique_slug(payload.name, rename, exclude_id=store_id)
        else:
            store = await self.repository.update_store(store_id, payload)

        if store is not None:
            logger.info(f"Store updated: id={store.id} slug={store.slug}")
        return store

    # ============================================================
    # Single-store and list reads
    # ============================================================

    async def get_store(self, store_id: int) -> Store | None:
        return await self.repository.get_store(store_id)

    async def get_store_by_slug(self, slug: str) -> Store | None:
        return await self.repository.get_store_by_slug(slug)

    async def get_stores_by_ids(self, store_ids: Sequence[int]) -> list[Store]:
        """Stores for a list of ids (e.g. a user's hearted stores)."""
        return await self.repository.get_stores_by_ids(list(dict.fromkeys(store_ids)))

    async def list_stores(self, page: int = 1) -> StorePage:
        """Newest-first listing, `STORES_PAGE_SIZE` stores per page."""
        if page < 1:
            raise InvalidQueryError("page must be >= 1", detail={"page": page})
        size = self.settings.stores_page_size
        stores, count = await asyncio.gather(
            self.repository.list_stores(skip=(page - 1) * size, limit=size),
            self.repository.count_stores(),
        )
        return StorePage(stores=stores, page=page, pages=math.ceil(count / size), count=count)

    async def stores_by_tag(self, tag: str | None = None) -> TagListing:
        """Stores carrying `tag` (every store when None) plus the tag vocabulary."""
        tag = tag.strip() if tag else None
        tags, stores = await asyncio.gather(
            self.tag_counts(),
            self.repository.find_stores_by_tag(tag or None),
        )
        return TagListing(tag=tag or None, tags=tags, stores=stores)

    # ============================================================
    # Catalog index
    # ============================================================

    async def search_stores(self, query: str | None) -> list[Store]:
        """Full-text search over name and description, best matches first.

        A query without search terms returns no stores (no full scan).
        """
        terms = query_terms(query)
        if not terms:
            return []
        return await self.repository.search_text(terms, self.settings.search_result_limit)

    async def map_stores(
        self,
        lng: object,
        lat: object,
        max_distance: object | None = None,
    ) -> list[MapStore]:
        """Stores within `max_distance` meters of (lng, lat), nearest first.

        Raises:
            InvalidQueryError: Non-numeric or out-of-range coordinates/radius.
        """
        lng_f, lat_f = parse_point(lng, lat)
        radius = parse_max_distance(
            self.settings.near_max_distance_meters if max_distance is None else max_distance
        )
        return await self.repository.search_near(lng_f, lat_f, radius, self.settings.near_result_limit)

    # ============================================================
    # Ranking
    # ============================================================

    async def top_stores(self, limit: int | None = None) -> list[RankedStore]:
        """Best-rated stores with at least TOP_STORES_MIN_REVIEWS reviews."""
        size = self.settings.top_stores_limit if limit is None else limit
        if size < 1:
            raise InvalidQueryError("limit must be >= 1", detail={"limit": size})
        min_reviews = self.settings.top_stores_min_reviews
        records, reviews = await self.repository.ranking_inputs(min_reviews)
        return rank_top_stores(records, reviews, min_reviews=min_reviews, size=size)

    async def tag_counts(self) -> list[TagCount]:
        """Every tag in the catalog with the number of stores carrying it."""
        return count_tags(await self.repository.all_store_records())


# ============================================================
# Dependency wiring
# ============================================================

_memory_repository: MemoryCatalogRepository | None = None


def get_repository() -> CatalogRepository:
    """Repository for the configured STORAGE_BACKEND."""
    global _memory_repository
    settings = get_settings()
    if settings.storage_backend == "memory":
        if _memory_repository is None:
            _memory_repository = MemoryCatalogRepository()
        return _memory_repository
    return PostgresCatalogRepository(get_session_factory())


def get_catalog_service() -> CatalogService:
    """FastAPI dependency providing the catalog service."""
    return CatalogService(get_repository(), get_settings())
