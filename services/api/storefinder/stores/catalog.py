"""Postgres catalog repository.

Query paths:
- Text search: weighted tsvector (name A, description B) @@ OR-ed tsquery,
  both folded with immutable_unaccent(),
  ranked by ts_rank, backed by the GIN expression index
- Geo search: earth_box() prefilter + earth_distance() ordering, backed by
  the GiST index on ll_to_earth(latitude, longitude)
- Slug uniqueness: unique index on stores.slug; violations surface as
  SlugConflictError
"""

from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefinder.models import Review as ReviewRow
from storefinder.models import Store as StoreRow
from storefinder.models.store import earth_point, search_document, search_query
from storefinder.schemas import Location, Review, StoreCreate, StoreRecord
from storefinder.services.errors import SlugConflictError
from storefinder.services.text_search import to_tsquery_text
from storefinder.stores.base import CatalogRepository


def _to_record(row: StoreRow) -> StoreRecord:
    return StoreRecord(
        id=row.id,
        name=row.name,
        slug=row.slug,
        description=row.description,
        tags=list(row.tags or []),
        location=Location(
            type=row.location_type,
            coordinates=(row.longitude, row.latitude),
            address=row.address,
        ),
        photo=row.photo,
        author_id=row.author_id,
        created_at=row.created_at,
    )


def _to_review(row: ReviewRow) -> Review:
    return Review(
        id=row.id,
        store_id=row.store_id,
        author_id=row.author_id,
        text=row.text,
        rating=row.rating,
        created_at=row.created_at,
    )


def _is_slug_violation(exc: IntegrityError) -> bool:
    return "slug" in str(exc.orig)


def text_search_statement(terms: Sequence[str], size: int) -> Select:
    """Stores matching any term, best ts_rank first (id ASC on ties).

    The document expression is the one the GIN index is built on.
    """
    tsquery = search_query(to_tsquery_text(terms))
    document = search_document(StoreRow.name, StoreRow.description)
    return (
        select(StoreRow)
        .where(document.op("@@")(tsquery))
        .order_by(func.ts_rank(document, tsquery).desc(), StoreRow.id.asc())
        .limit(size)
    )


class PostgresCatalogRepository(CatalogRepository):
    """Catalog stored in the `stores` and `reviews` tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _flush_checking_slug(self, session: AsyncSession, slug: str) -> None:
        try:
            await session.flush()
        except IntegrityError as e:
            if _is_slug_violation(e):
                raise SlugConflictError(slug) from e
            raise

    async def _insert_store(self, data: StoreCreate, slug: str, author_id: str) -> StoreRecord:
        async with self._session() as session:
            row = StoreRow(
                name=data.name,
                slug=slug,
                description=data.description,
                tags=list(data.tags),
                location_type=data.location.type,
                longitude=data.location.longitude,
                latitude=data.location.latitude,
                address=data.location.address,
                photo=data.photo,
                author_id=author_id,
            )
            session.add(row)
            await self._flush_checking_slug(session, slug)
            await session.refresh(row)
            return _to_record(row)

    async def _update_store(
        self, store_id: int, values: dict[str, Any], slug: str | None
    ) -> StoreRecord | None:
        async with self._session() as session:
            row = await session.get(StoreRow, store_id)
            if row is None:
                return None

            location: Location | None = values.pop("location", None)
            if location is not None:
                row.location_type = location.type
                row.longitude = location.longitude
                row.latitude = location.latitude
                row.address = location.address
            for field, value in values.items():
                setattr(row, field, value)
            if slug is not None:
                row.slug = slug

            await self._flush_checking_slug(session, slug or row.slug)
            await session.refresh(row)
            return _to_record(row)

    async def _fetch(self, stmt) -> list[StoreRecord]:
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_to_record(row) for row in result.scalars().all()]

    async def _record_by_id(self, store_id: int) -> StoreRecord | None:
        records = await self._fetch(select(StoreRow).where(StoreRow.id == store_id))
        return records[0] if records else None

    async def _record_by_slug(self, slug: str) -> StoreRecord | None:
        records = await self._fetch(select(StoreRow).where(StoreRow.slug == slug))
        return records[0] if records else None

    async def _records_by_ids(self, store_ids: Sequence[int]) -> list[StoreRecord]:
        if not store_ids:
            return []
        return await self._fetch(
            select(StoreRow).where(StoreRow.id.in_(list(store_ids))).order_by(StoreRow.id)
        )

    async def _records_page(self, skip: int, limit: int) -> list[StoreRecord]:
        return await self._fetch(
            select(StoreRow)
            .order_by(StoreRow.created_at.desc(), StoreRow.id.desc())
            .offset(skip)
            .limit(limit)
        )

    async def _records_by_tag(self, tag: str | None) -> list[StoreRecord]:
        query = select(StoreRow).order_by(StoreRow.id)
        if tag is not None:
            query = query.where(StoreRow.tags.any(tag))
        return await self._fetch(query)

    async def _records_matching_text(self, terms: Sequence[str], size: int) -> list[StoreRecord]:
        return await self._fetch(text_search_statement(terms, size))

    async def _records_near(
        self, lng: float, lat: float, max_distance: float, size: int
    ) -> list[StoreRecord]:
        origin = func.ll_to_earth(lat, lng)
        store_point = earth_point(StoreRow.latitude, StoreRow.longitude)
        distance = func.earth_distance(origin, store_point)
        return await self._fetch(
            select(StoreRow)
            .where(func.earth_box(origin, max_distance).op("@>")(store_point))
            .where(distance <= max_distance)
            .order_by(distance.asc(), StoreRow.id.asc())
            .limit(size)
        )

    async def _all_records(self) -> list[StoreRecord]:
        return await self._fetch(select(StoreRow).order_by(StoreRow.id))

    async def _reviews_for(self, store_ids: Sequence[int]) -> list[Review]:
        async with self._session() as session:
            result = await session.execute(
                select(ReviewRow)
                .where(ReviewRow.store_id.in_(list(store_ids)))
                .order_by(ReviewRow.id)
            )
            return [_to_review(row) for row in result.scalars().all()]

    async def ranking_inputs(self, min_reviews: int) -> tuple[list[StoreRecord], list[Review]]:
        ranked_ids = (
            select(ReviewRow.store_id)
            .group_by(ReviewRow.store_id)
            .having(func.count(ReviewRow.id) >= min_reviews)
        )
        records = await self._fetch(
            select(StoreRow).where(StoreRow.id.in_(ranked_ids)).order_by(StoreRow.id)
        )
        reviews = await self._reviews_for([r.id for r in records]) if records else []
        return records, reviews

    async def count_stores(self) -> int:
        async with self._session() as session:
            result = await session.execute(select(func.count(StoreRow.id)))
            return result.scalar() or 0

    async def find_matching_slugs(self, base: str, exclude_id: int | None = None) -> list[str]:
        # Base slugs are [a-z0-9-] only, so no LIKE wildcards to escape
        query = select(StoreRow.slug).where(StoreRow.slug.ilike(f"{base}%"))
        if exclude_id is not None:
            query = query.where(StoreRow.id != exclude_id)
        async with self._session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
