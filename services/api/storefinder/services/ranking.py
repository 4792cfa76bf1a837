"""Ranking service for catalog-wide aggregate views.

Top stores pipeline:
1. lookup: join each store with its reviews
2. match: keep stores with at least 2 reviews (one 5-star review can't top the list)
3. addFields: averageRating = mean rating, reviewCount = number of reviews
4. sort: averageRating DESC, then store id ASC (deterministic ties)
5. limit: at most 10

Tag counts pipeline:
1. unwind: one (store, tag) row per distinct tag on each store
2. group: count rows per tag
3. sort: count DESC, then tag ASC

Both are recomputed on every call.
"""

from collections import Counter
from collections.abc import Iterable, Sequence

from storefinder.schemas import RankedStore, Review, Store, StoreRecord, TagCount
from storefinder.services.pipeline import Stage, limit, run_pipeline
from storefinder.services.reviews import attach_reviews, average_rating

DEFAULT_TOP_STORES_LIMIT = 10
DEFAULT_MIN_REVIEWS = 2


# ============================================================
# Top stores stages
# ============================================================


def lookup_reviews(reviews: Iterable[Review]) -> Stage:
    """Attach reviews to every store record."""
    reviews = list(reviews)
    return Stage("lookup", lambda records: attach_reviews(records, reviews))


def match_min_reviews(min_reviews: int = DEFAULT_MIN_REVIEWS) -> Stage:
    """Drop stores with fewer than `min_reviews` reviews."""
    return Stage("match", lambda stores: [s for s in stores if len(s.reviews) >= min_reviews])


def _add_average_rating(stores: list[Store]) -> list[RankedStore]:
    return [
        RankedStore.model_validate(
            {
                **store.model_dump(),
                "average_rating": average_rating(store.reviews),
                "review_count": len(store.reviews),
            }
        )
        for store in stores
    ]


add_average_rating = Stage("addFields", _add_average_rating)

sort_by_average_rating = Stage(
    "sort",
    lambda stores: sorted(stores, key=lambda s: (-s.average_rating, s.id)),
)


def top_stores_pipeline(
    reviews: Iterable[Review],
    *,
    min_reviews: int = DEFAULT_MIN_REVIEWS,
    size: int = DEFAULT_TOP_STORES_LIMIT,
) -> tuple[Stage, ...]:
    """Stages for the top stores view, in order."""
    return (
        lookup_reviews(reviews),
        match_min_reviews(min_reviews),
        add_average_rating,
        sort_by_average_rating,
        limit(size),
    )


def rank_top_stores(
    records: Sequence[StoreRecord],
    reviews: Iterable[Review],
    *,
    min_reviews: int = DEFAULT_MIN_REVIEWS,
    size: int = DEFAULT_TOP_STORES_LIMIT,
) -> list[RankedStore]:
    """Get the best-rated stores.

    Args:
        records: Every store in the catalog.
        reviews: Every review in the catalog.
        min_reviews: Minimum reviews for a store to be ranked.
        size: Maximum number of stores to return.

    Returns:
        RankedStore list sorted by averageRating DESC, store id ASC.
    """
    return run_pipeline(records, top_stores_pipeline(reviews, min_reviews=min_reviews, size=size))


# ============================================================
# Tag counts stages
# ============================================================


def _unwind_tags(records: list[StoreRecord]) -> list[tuple[int, str]]:
    return [(record.id, tag) for record in records for tag in dict.fromkeys(record.tags)]


def _group_by_tag(pairs: list[tuple[int, str]]) -> list[TagCount]:
    counts = Counter(tag for _, tag in pairs)
    return [TagCount(tag=tag, count=count) for tag, count in counts.items()]


unwind_tags = Stage("unwind", _unwind_tags)
group_by_tag = Stage("group", _group_by_tag)
sort_by_count = Stage("sort", lambda rows: sorted(rows, key=lambda t: (-t.count, t.tag)))

TAG_COUNTS_PIPELINE: tuple[Stage, ...] = (unwind_tags, group_by_tag, sort_by_count)


def count_tags(records: Iterable[StoreRecord]) -> list[TagCount]:
    """Get usage counts for every tag in the catalog, most used first."""
    return run_pipeline(records, TAG_COUNTS_PIPELINE)
