"""Tests for catalog writes (slugs, ownership, validation) and reads."""

import asyncio

import pytest

from storefinder.services import catalog as catalog_module
from storefinder.services.catalog import CatalogService, slug_lock
from storefinder.services.errors import (
    ConflictError,
    InvalidQueryError,
    OwnershipError,
    SlugConflictError,
    ValidationError,
)
from storefinder.stores.memory import MemoryCatalogRepository

from conftest import store_payload


class YieldingRepository(MemoryCatalogRepository):
    """Suspends between reading slugs and writing, like a real database round trip."""

    async def find_matching_slugs(self, base, exclude_id=None):
        slugs = await super().find_matching_slugs(base, exclude_id=exclude_id)
        await asyncio.sleep(0)
        return slugs


class AlwaysConflictingRepository(MemoryCatalogRepository):
    def __init__(self):
        super().__init__()
        self.attempts = 0

    async def _insert_store(self, data, slug, author_id):
        self.attempts += 1
        raise SlugConflictError(slug)


class TestCreateStore:
    @pytest.mark.asyncio
    async def test_slugs_numbered_per_name(self, service):
        slugs = [
            (await service.create_store(store_payload("Cafe"), "u1")).slug for _ in range(3)
        ]
        assert slugs == ["cafe", "cafe-2", "cafe-3"]

    @pytest.mark.asyncio
    async def test_similar_names_do_not_collide(self, service):
        await service.create_store(store_payload("Cafe"), "u1")
        bar = await service.create_store(store_payload("Cafe Bar"), "u1")
        assert bar.slug == "cafe-bar"

    @pytest.mark.asyncio
    async def test_created_store_has_fields_and_empty_reviews(self, service):
        store = await service.create_store(
            store_payload(
                "Bar Raval",
                description="  Pintxos  ",
                tags=["Licensed", " Licensed ", "", "Open Late"],
            ),
            "u1",
        )

        assert store.id >= 1
        assert store.author_id == "u1"
        assert store.description == "Pintxos"
        assert store.tags == ["Licensed", "Open Late"]
        assert store.location.type == "Point"
        assert store.reviews == []
        assert store.created_at is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload,field",
        [
            ({"location": {"coordinates": [0, 0], "address": "x"}}, "name"),
            ({"name": "Cafe", "location": {"coordinates": [0, 0]}}, "location.address"),
            ({"name": "Cafe", "location": {"address": "1 Main St"}}, "location.coordinates"),
            ({"name": "Cafe", "location": {"coordinates": [0, 0], "address": "  "}}, "location.address"),
            ({"name": "Cafe", "location": {"coordinates": [200, 0], "address": "x"}}, "location.coordinates"),
        ],
    )
    async def test_invalid_payload(self, service, repository, payload, field):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_store(payload, "u1")

        fields = [e["field"] for e in exc_info.value.detail["errors"]]
        assert field in fields
        assert repository.stores == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("author", [None, "", "   "])
    async def test_author_required(self, service, repository, author):
        with pytest.raises(ValidationError):
            await service.create_store(store_payload("Cafe"), author)
        assert repository.stores == {}

    @pytest.mark.asyncio
    async def test_unsluggable_name(self, service):
        with pytest.raises(ValidationError):
            await service.create_store(store_payload("!!!"), "u1")

    @pytest.mark.asyncio
    async def test_concurrent_creates_get_distinct_slugs(self, settings):
        service = CatalogService(YieldingRepository(), settings)

        first, second = await asyncio.gather(
            service.create_store(store_payload("Cafe"), "u1"),
            service.create_store(store_payload("Cafe"), "u2"),
        )

        assert sorted([first.slug, second.slug]) == ["cafe", "cafe-2"]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, settings):
        repository = AlwaysConflictingRepository()
        service = CatalogService(repository, settings)

        with pytest.raises(ConflictError):
            await service.create_store(store_payload("Cafe"), "u1")
        assert repository.attempts == settings.slug_max_attempts


class TestUpdateStore:
    @pytest.mark.asyncio
    async def test_description_change_keeps_slug(self, service):
        store = await service.create_store(store_payload("Cafe"), "u1")

        updated = await service.update_store(store.id, {"description": "Now with pie"}, "u1")

        assert updated.slug == "cafe"
        assert updated.description == "Now with pie"
        assert updated.name == "Cafe"

    @pytest.mark.asyncio
    async def test_same_name_keeps_slug(self, service):
        await service.create_store(store_payload("Cafe"), "u1")
        second = await service.create_store(store_payload("Cafe"), "u1")

        updated = await service.update_store(second.id, {"name": "Cafe"}, "u1")

        assert updated.slug == "cafe-2"

    @pytest.mark.asyncio
    async def test_rename_reassigns_slug(self, service):
        await service.create_store(store_payload("Diner"), "u1")
        store = await service.create_store(store_payload("Cafe"), "u1")

        updated = await service.update_store(store.id, {"name": "Diner"}, "u1")

        assert updated.slug == "diner-2"
        assert await service.get_store_by_slug("cafe") is None

    @pytest.mark.asyncio
    async def test_rename_ignores_own_slug(self, service):
        store = await service.create_store(store_payload("Cafe"), "u1")

        updated = await service.update_store(store.id, {"name": "CAFE"}, "u1")

        assert updated.slug == "cafe"

    @pytest.mark.asyncio
    async def test_other_author_rejected(self, service):
        store = await service.create_store(store_payload("Cafe"), "u1")

        with pytest.raises(OwnershipError):
            await service.update_store(store.id, {"name": "Mine Now"}, "u2")

        assert (await service.get_store(store.id)).name == "Cafe"

    @pytest.mark.asyncio
    async def test_missing_store(self, service):
        assert await service.update_store(999, {"name": "Ghost"}, "u1") is None

    @pytest.mark.asyncio
    async def test_null_name_leaves_name(self, service):
        store = await service.create_store(store_payload("Cafe", description="Old"), "u1")

        updated = await service.update_store(store.id, {"name": None, "description": None}, "u1")

        assert updated.name == "Cafe"
        assert updated.description is None

    @pytest.mark.asyncio
    async def test_location_change(self, service):
        store = await service.create_store(store_payload("Cafe"), "u1")

        updated = await service.update_store(
            store.id,
            {"location": {"coordinates": [2.35, 48.85], "address": "Paris"}},
            "u1",
        )

        assert updated.location.coordinates == (2.35, 48.85)
        assert updated.location.address == "Paris"


class TestReads:
    @pytest.mark.asyncio
    async def test_every_read_path_populates_reviews(self, service, repository):
        store = await service.create_store(store_payload("Coffee Lab", tags=["Wifi"]), "u1")
        repository.add_review(store.id, 4, text="Good")
        repository.add_review(store.id, 5, text="Great")

        reads = [
            await service.get_store(store.id),
            await service.get_store_by_slug("coffee-lab"),
            (await service.get_stores_by_ids([store.id]))[0],
            (await service.list_stores()).stores[0],
            (await service.stores_by_tag("Wifi")).stores[0],
            (await service.search_stores("coffee"))[0],
            (await service.map_stores(store.location.longitude, store.location.latitude))[0],
            (await service.top_stores())[0],
        ]

        for result in reads:
            assert [r.rating for r in result.reviews] == [4, 5]

    @pytest.mark.asyncio
    async def test_missing_store(self, service):
        assert await service.get_store(42) is None
        assert await service.get_store_by_slug("nope") is None

    @pytest.mark.asyncio
    async def test_stores_by_ids_skips_unknown(self, service):
        a = await service.create_store(store_payload("A Store"), "u1")
        b = await service.create_store(store_payload("B Store"), "u1")

        stores = await service.get_stores_by_ids([b.id, 999, a.id, b.id])

        assert sorted(s.id for s in stores) == [a.id, b.id]

    @pytest.mark.asyncio
    async def test_list_stores_pages_newest_first(self, service):
        created = [await service.create_store(store_payload(f"Store {i}"), "u1") for i in range(6)]

        first = await service.list_stores(1)
        second = await service.list_stores(2)

        assert first.count == 6
        assert first.pages == 2
        assert [s.id for s in first.stores] == [s.id for s in reversed(created)][:4]
        assert [s.id for s in second.stores] == [created[1].id, created[0].id]
        assert (await service.list_stores(3)).stores == []

    @pytest.mark.asyncio
    async def test_list_stores_invalid_page(self, service):
        with pytest.raises(InvalidQueryError):
            await service.list_stores(0)

    @pytest.mark.asyncio
    async def test_stores_by_tag(self, service):
        await service.create_store(store_payload("Bar Raval", tags=["Licensed", "Open Late"]), "u1")
        await service.create_store(store_payload("Pilot", tags=["Wifi", "Open Late"]), "u1")

        listing = await service.stores_by_tag("Licensed")
        everything = await service.stores_by_tag(None)

        assert [s.name for s in listing.stores] == ["Bar Raval"]
        assert listing.tag == "Licensed"
        assert [(t.tag, t.count) for t in listing.tags] == [
            ("Open Late", 2),
            ("Licensed", 1),
            ("Wifi", 1),
        ]
        assert len(everything.stores) == 2
        assert everything.tag is None


class TestTopStores:
    @pytest.mark.asyncio
    async def test_ranked_by_average(self, service, repository):
        good = await service.create_store(store_payload("Good"), "u1")
        great = await service.create_store(store_payload("Great"), "u1")
        lonely = await service.create_store(store_payload("Lonely"), "u1")
        for rating in (3, 4):
            repository.add_review(good.id, rating)
        for rating in (5, 5):
            repository.add_review(great.id, rating)
        repository.add_review(lonely.id, 5)

        top = await service.top_stores()

        assert [s.id for s in top] == [great.id, good.id]
        assert [s.average_rating for s in top] == [5.0, 3.5]

    @pytest.mark.asyncio
    async def test_invalid_limit(self, service):
        with pytest.raises(InvalidQueryError):
            await service.top_stores(0)


class TestSlugLock:
    @pytest.mark.asyncio
    async def test_without_redis_proceeds_unlocked(self):
        async with slug_lock("cafe", ttl=5, wait=0.0) as held:
            assert held is False

    @pytest.mark.asyncio
    async def test_acquired_lock_is_released(self, monkeypatch: pytest.MonkeyPatch):
        released: list[tuple[str, str]] = []

        async def fake_acquire(key: str, ttl: int = 5) -> str:
            return "token-1"

        async def fake_release(key: str, token: str) -> bool:
            released.append((key, token))
            return True

        monkeypatch.setattr(catalog_module, "acquire_lock", fake_acquire)
        monkeypatch.setattr(catalog_module, "release_lock", fake_release)

        async with slug_lock("cafe", ttl=5, wait=0.0) as held:
            assert held is True

        assert released == [("slug:cafe", "token-1")]

    @pytest.mark.asyncio
    async def test_busy_lock_gives_up_after_wait(self, monkeypatch: pytest.MonkeyPatch):
        calls = 0

        async def busy(key: str, ttl: int = 5) -> None:
            nonlocal calls
            calls += 1
            return None

        monkeypatch.setattr(catalog_module, "acquire_lock", busy)

        async with slug_lock("cafe", ttl=5, wait=0.0) as held:
            assert held is False
        assert calls == 1
