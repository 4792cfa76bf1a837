"""Review aggregation for stores.

Every store leaving the catalog has its reviews attached:
- Join reviews on review.store_id == store.id
- Stores without reviews get an empty list (never left unresolved)
- Per-store statistics: review count and mean rating
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from statistics import fmean

from storefinder.schemas import Review, Store, StoreRecord


def group_reviews(reviews: Iterable[Review]) -> dict[int, list[Review]]:
    """Group reviews by store id, each group ordered by review id."""
    grouped: dict[int, list[Review]] = defaultdict(list)
    for review in reviews:
        grouped[review.store_id].append(review)
    return {store_id: sorted(group, key=lambda r: r.id) for store_id, group in grouped.items()}


def attach_reviews(records: Sequence[StoreRecord], reviews: Iterable[Review]) -> list[Store]:
    """Join reviews onto store records.

    Args:
        records: Stores as persisted.
        reviews: Reviews for (at least) those stores; others are ignored.

    Returns:
        Stores in input order, each with `reviews` populated.
    """
    by_store = group_reviews(reviews)
    return [
        Store.model_validate({**record.model_dump(), "reviews": by_store.get(record.id, [])})
        for record in records
    ]


def average_rating(reviews: Sequence[Review]) -> float:
    """Arithmetic mean of review ratings (0.0 for no reviews)."""
    if not reviews:
        return 0.0
    return fmean(r.rating for r in reviews)
