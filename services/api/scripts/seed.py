#!/usr/bin/env python3
"""Seed database with sample stores and reviews.

Creates:
- Stores around downtown Toronto (tags, descriptions, point locations)
- Reviews for some of them, so /v1/top has something to rank

Stores go through CatalogService so slugs are assigned the same way as
through the API. Reviews are inserted directly (they belong to the reviews
service). Re-running is a no-op once the catalog has stores.

Usage:
    cd services/api
    python -m scripts.seed
"""

import asyncio
import os
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from storefinder.models import Review  # noqa: E402
from storefinder.services.catalog import CatalogService  # noqa: E402
from storefinder.settings import get_settings  # noqa: E402
from storefinder.stores.catalog import PostgresCatalogRepository  # noqa: E402
from storefinder.stores.postgres import close_db, create_tables, get_session, get_session_factory, init_db  # noqa: E402

SEED_AUTHOR_ID = "seed"

# ============================================================
# Sample stores
# ============================================================

SAMPLE_STORES = [
    {
        "name": "Pilot Coffee Roasters",
        "description": "Third-wave coffee roaster with single-origin pour overs and espresso.",
        "tags": ["Wifi", "Open Late", "Family Friendly"],
        "location": {"coordinates": (-79.3957, 43.6453), "address": "983 Queen St E, Toronto"},
    },
    {
        "name": "Sam James Coffee Bar",
        "description": "Tiny espresso bar known for cortados and friendly baristas.",
        "tags": ["Wifi"],
        "location": {"coordinates": (-79.4013, 43.6547), "address": "297 Harbord St, Toronto"},
    },
    {
        "name": "Bar Raval",
        "description": "Pintxos bar with carved wood interior, vermouth and late-night snacks.",
        "tags": ["Licensed", "Open Late"],
        "location": {"coordinates": (-79.4115, 43.6555), "address": "505 College St, Toronto"},
    },
    {
        "name": "Seven Lives Tacos",
        "description": "Baja-style fish tacos in Kensington Market.",
        "tags": ["Vegetarian", "Family Friendly"],
        "location": {"coordinates": (-79.4006, 43.6541), "address": "69 Kensington Ave, Toronto"},
    },
    {
        "name": "Blackbird Baking Co",
        "description": "Sourdough bakery with croissants and seasonal pastries.",
        "tags": ["Vegetarian", "Family Friendly"],
        "location": {"coordinates": (-79.4003, 43.6549), "address": "172 Baldwin St, Toronto"},
    },
    {
        "name": "Pilot Coffee Roasters",
        "description": "Second location of the roaster, in Union Station.",
        "tags": ["Wifi"],
        "location": {"coordinates": (-79.3806, 43.6453), "address": "65 Front St W, Toronto"},
    },
]

# Ratings per seeded store index
SAMPLE_RATINGS = {
    0: [5, 4, 5],
    1: [4, 4],
    2: [5, 5],
    3: [3],
    4: [3, 4, 4],
}


async def seed_database() -> None:
    """Seed database with sample stores and reviews."""
    settings = get_settings()
    await init_db()
    await create_tables()

    service = CatalogService(PostgresCatalogRepository(get_session_factory()), settings)

    if await service.repository.count_stores():
        print("Catalog already has stores, nothing to seed.")
        await close_db()
        return

    print("Seeding database...")
    store_ids: list[int] = []
    for store_def in SAMPLE_STORES:
        store = await service.create_store(store_def, author_id=SEED_AUTHOR_ID)
        store_ids.append(store.id)
        print(f"  added {store.slug}")

    print("\nAdding reviews...")
    async with get_session() as session:
        for index, ratings in SAMPLE_RATINGS.items():
            for rating in ratings:
                session.add(
                    Review(
                        store_id=store_ids[index],
                        author_id=SEED_AUTHOR_ID,
                        text="Seeded review",
                        rating=rating,
                    )
                )
            print(f"  added {len(ratings)} reviews for store {store_ids[index]}")

    print("\nDatabase seeded successfully!")
    await close_db()


if __name__ == "__main__":
    asyncio.run(seed_database())
