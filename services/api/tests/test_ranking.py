"""Tests for the top stores and tag counts pipelines."""

from datetime import datetime, timezone

from storefinder.schemas import Location, Review, StoreRecord
from storefinder.services.ranking import (
    TAG_COUNTS_PIPELINE,
    count_tags,
    rank_top_stores,
    top_stores_pipeline,
)
from storefinder.services.reviews import attach_reviews, average_rating


def make_record(store_id: int, tags: list[str] | None = None) -> StoreRecord:
    return StoreRecord(
        id=store_id,
        name=f"Store {store_id}",
        slug=f"store-{store_id}",
        tags=tags or [],
        location=Location(coordinates=(-79.38, 43.65), address="1 Main St"),
        author_id="author-1",
        created_at=datetime(2026, 1, store_id, tzinfo=timezone.utc),
    )


def make_reviews(store_id: int, ratings: list[int], start_id: int) -> list[Review]:
    return [
        Review(id=start_id + i, store_id=store_id, rating=rating)
        for i, rating in enumerate(ratings)
    ]


class TestReviewAggregation:
    def test_every_store_gets_reviews(self):
        records = [make_record(1), make_record(2)]
        reviews = make_reviews(1, [4, 5], start_id=1)

        stores = attach_reviews(records, reviews)

        assert [s.id for s in stores] == [1, 2]
        assert [r.rating for r in stores[0].reviews] == [4, 5]
        assert stores[1].reviews == []

    def test_reviews_for_other_stores_ignored(self):
        stores = attach_reviews([make_record(1)], make_reviews(99, [5], start_id=1))
        assert stores[0].reviews == []

    def test_average_rating(self):
        assert average_rating(make_reviews(1, [3, 4], start_id=1)) == 3.5
        assert average_rating([]) == 0.0


class TestTopStores:
    def test_stage_order(self):
        names = [stage.name for stage in top_stores_pipeline([])]
        assert names == ["lookup", "match", "addFields", "sort", "limit"]

    def test_higher_average_ranks_first(self):
        records = [make_record(1), make_record(2)]
        reviews = make_reviews(1, [3, 4], start_id=1) + make_reviews(2, [5, 5], start_id=10)

        ranked = rank_top_stores(records, reviews)

        assert [s.id for s in ranked] == [2, 1]
        assert ranked[0].average_rating == 5.0
        assert ranked[0].review_count == 2
        assert ranked[1].average_rating == 3.5

    def test_stores_with_fewer_than_two_reviews_excluded(self):
        records = [make_record(1), make_record(2), make_record(3)]
        reviews = make_reviews(1, [5], start_id=1) + make_reviews(3, [2, 3], start_id=10)

        ranked = rank_top_stores(records, reviews)

        assert [s.id for s in ranked] == [3]
        assert all(s.review_count >= 2 for s in ranked)

    def test_ties_break_on_store_id(self):
        records = [make_record(3), make_record(1), make_record(2)]
        reviews = (
            make_reviews(3, [4, 4], start_id=1)
            + make_reviews(1, [4, 4], start_id=10)
            + make_reviews(2, [4, 4], start_id=20)
        )

        assert [s.id for s in rank_top_stores(records, reviews)] == [1, 2, 3]

    def test_limit(self):
        records = [make_record(i) for i in range(1, 15)]
        reviews = [r for i in range(1, 15) for r in make_reviews(i, [5, i % 5 + 1], start_id=i * 10)]

        ranked = rank_top_stores(records, reviews)

        assert len(ranked) == 10
        averages = [s.average_rating for s in ranked]
        assert averages == sorted(averages, reverse=True)
        assert len(rank_top_stores(records, reviews, size=3)) == 3

    def test_ranked_store_keeps_store_fields(self):
        records = [make_record(1, tags=["Wifi"])]
        ranked = rank_top_stores(records, make_reviews(1, [4, 5], start_id=1))

        assert ranked[0].slug == "store-1"
        assert ranked[0].tags == ["Wifi"]
        assert len(ranked[0].reviews) == 2

    def test_serialized_with_camel_case(self):
        ranked = rank_top_stores([make_record(1)], make_reviews(1, [4, 5], start_id=1))
        data = ranked[0].model_dump(by_alias=True)
        assert data["averageRating"] == 4.5
        assert data["reviewCount"] == 2


class TestTagCounts:
    def test_stage_order(self):
        assert [stage.name for stage in TAG_COUNTS_PIPELINE] == ["unwind", "group", "sort"]

    def test_counts_sorted_descending(self):
        records = [
            make_record(1, ["Wifi", "Open Late"]),
            make_record(2, ["Wifi"]),
            make_record(3, ["Wifi", "Licensed", "Open Late"]),
        ]

        counts = count_tags(records)

        assert [(t.tag, t.count) for t in counts] == [
            ("Wifi", 3),
            ("Open Late", 2),
            ("Licensed", 1),
        ]

    def test_sum_matches_store_tag_pairs(self):
        records = [
            make_record(1, ["a", "b", "c"]),
            make_record(2, ["b"]),
            make_record(3, []),
            make_record(4, ["c", "d"]),
        ]

        counts = count_tags(records)

        assert sum(t.count for t in counts) == 6
        assert all(t.count >= 1 for t in counts)
        assert [t.count for t in counts] == sorted((t.count for t in counts), reverse=True)

    def test_equal_counts_sorted_by_tag(self):
        records = [make_record(1, ["zeta", "alpha"]), make_record(2, ["mid"])]
        assert [t.tag for t in count_tags(records)] == ["alpha", "mid", "zeta"]

    def test_no_tags(self):
        assert count_tags([make_record(1)]) == []
