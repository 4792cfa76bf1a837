"""Tests for the HTTP API (in-memory catalog)."""

import pytest
from httpx import AsyncClient

from conftest import ORIGIN_LAT, ORIGIN_LNG, store_payload

AUTHOR = {"X-User-Id": "user-1"}


async def create(client: AsyncClient, name: str, headers: dict | None = None, **fields) -> dict:
    response = await client.post("/v1/stores", json=store_payload(name, **fields), headers=headers or AUTHOR)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


class TestStoreEndpoints:
    @pytest.mark.asyncio
    async def test_create_and_fetch(self, client: AsyncClient):
        created = await create(client, "Pilot Coffee", tags=["Wifi"])

        assert created["slug"] == "pilot-coffee"
        assert created["authorId"] == "user-1"
        assert created["reviews"] == []
        assert created["location"]["coordinates"] == [ORIGIN_LNG, ORIGIN_LAT]

        by_slug = await client.get("/v1/stores/pilot-coffee")
        by_id = await client.get(f"/v1/stores/id/{created['id']}")
        assert by_slug.status_code == 200
        assert by_id.json()["slug"] == "pilot-coffee"

    @pytest.mark.asyncio
    async def test_create_requires_user(self, client: AsyncClient):
        response = await client.post("/v1/stores", json=store_payload("Pilot Coffee"))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_create_missing_address(self, client: AsyncClient):
        payload = {"name": "Pilot Coffee", "location": {"coordinates": [ORIGIN_LNG, ORIGIN_LAT]}}

        response = await client.post("/v1/stores", json=payload, headers=AUTHOR)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert any(e["field"].endswith("address") for e in error["detail"]["errors"])

    @pytest.mark.asyncio
    async def test_duplicate_names_get_numbered_slugs(self, client: AsyncClient):
        first = await create(client, "Cafe")
        second = await create(client, "Cafe")
        assert [first["slug"], second["slug"]] == ["cafe", "cafe-2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["Near", "Page", "Hearted", "ID"])
    async def test_route_word_names_stay_reachable_by_slug(self, client: AsyncClient, name: str):
        created = await create(client, name)

        assert created["slug"] == f"{name.lower()}-2"
        response = await client.get(f"/v1/stores/{created['slug']}")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_not_found(self, client: AsyncClient):
        response = await client.get("/v1/stores/no-such-store")

        assert response.status_code == 404
        assert response.json() == {
            "error": {
                "code": "NOT_FOUND",
                "message": "Store not found",
                "detail": {"slug": "no-such-store"},
            }
        }

    @pytest.mark.asyncio
    async def test_update_by_owner(self, client: AsyncClient):
        created = await create(client, "Cafe")

        response = await client.put(
            f"/v1/stores/{created['id']}", json={"name": "Corner Cafe"}, headers=AUTHOR
        )

        assert response.status_code == 200
        assert response.json()["slug"] == "corner-cafe"

    @pytest.mark.asyncio
    async def test_update_by_other_user_forbidden(self, client: AsyncClient):
        created = await create(client, "Cafe")

        response = await client.put(
            f"/v1/stores/{created['id']}",
            json={"name": "Stolen Cafe"},
            headers={"X-User-Id": "user-2"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_update_missing_store(self, client: AsyncClient):
        response = await client.put("/v1/stores/999", json={"name": "Ghost"}, headers=AUTHOR)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_listing_and_redirect_past_last_page(self, client: AsyncClient):
        for i in range(5):
            await create(client, f"Store {i}")

        page_one = (await client.get("/v1/stores")).json()
        page_two = (await client.get("/v1/stores/page/2")).json()
        past_end = await client.get("/v1/stores/page/7")

        assert len(page_one["stores"]) == 4
        assert page_one["pages"] == 2
        assert [s["name"] for s in page_two["stores"]] == ["Store 0"]
        assert past_end.status_code == 307
        assert past_end.headers["location"] == "/v1/stores/page/2"

    @pytest.mark.asyncio
    async def test_hearted(self, client: AsyncClient):
        a = await create(client, "A Store")
        await create(client, "B Store")

        response = await client.post("/v1/stores/hearted", json={"ids": [a["id"]]})

        assert [s["id"] for s in response.json()] == [a["id"]]

    @pytest.mark.asyncio
    async def test_near(self, client: AsyncClient):
        await create(client, "Right Here")
        await create(client, "Far Away", lat=ORIGIN_LAT + 1)

        response = await client.get(
            "/v1/stores/near", params={"lng": ORIGIN_LNG, "lat": ORIGIN_LAT}
        )

        assert response.status_code == 200
        stores = response.json()
        assert [s["name"] for s in stores] == ["Right Here"]
        assert stores[0]["reviews"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {"lng": "abc", "lat": "43.6"},
            {"lng": "-79.3", "lat": "95"},
            {"lng": "-79.3", "lat": "43.6", "maxDistance": "-5"},
        ],
    )
    async def test_near_invalid_query(self, client: AsyncClient, params: dict):
        response = await client.get("/v1/stores/near", params=params)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_QUERY"


class TestCatalogEndpoints:
    @pytest.mark.asyncio
    async def test_search(self, client: AsyncClient):
        await create(client, "Coffee Lab")
        await create(client, "Taco Stand", description="Tacos and coffee")

        response = await client.get("/v1/search", params={"q": "coffee"})

        assert [s["name"] for s in response.json()] == ["Coffee Lab", "Taco Stand"]

    @pytest.mark.asyncio
    async def test_search_blank(self, client: AsyncClient):
        await create(client, "Coffee Lab")
        response = await client.get("/v1/search", params={"q": "  "})
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_top(self, client: AsyncClient, repository):
        good = await create(client, "Good")
        great = await create(client, "Great")
        for rating in (4, 4):
            repository.add_review(good["id"], rating)
        for rating in (5, 4):
            repository.add_review(great["id"], rating)

        response = await client.get("/v1/top")

        data = response.json()
        assert [s["slug"] for s in data] == ["great", "good"]
        assert data[0]["averageRating"] == 4.5
        assert data[0]["reviewCount"] == 2

    @pytest.mark.asyncio
    async def test_top_invalid_limit(self, client: AsyncClient):
        response = await client.get("/v1/top", params={"limit": 0})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_tags(self, client: AsyncClient):
        await create(client, "Bar Raval", tags=["Licensed", "Open Late"])
        await create(client, "Pilot", tags=["Open Late"])

        everything = (await client.get("/v1/tags")).json()
        licensed = (await client.get("/v1/tags/Licensed")).json()

        assert everything["tags"] == [
            {"tag": "Open Late", "count": 2},
            {"tag": "Licensed", "count": 1},
        ]
        assert len(everything["stores"]) == 2
        assert [s["name"] for s in licensed["stores"]] == ["Bar Raval"]
        assert licensed["tag"] == "Licensed"
