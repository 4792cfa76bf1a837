"""Postgres engine and sessions for the catalog tables.

The engine is created once in the app lifespan (or by scripts) and shared by
every PostgresCatalogRepository through the session factory.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from storefinder.settings import get_settings


class Base(DeclarativeBase):
    pass


# ll_to_earth / earth_box / earth_distance live in earthdistance, which needs cube;
# unaccent folds diacritics for text search
REQUIRED_EXTENSIONS = ("cube", "earthdistance", "unaccent")

# unaccent() is only STABLE, so index expressions go through this wrapper
UNACCENT_FUNCTION = "immutable_unaccent"
UNACCENT_FUNCTION_DDL = f"""
CREATE OR REPLACE FUNCTION {UNACCENT_FUNCTION}(text) RETURNS text
LANGUAGE sql IMMUTABLE PARALLEL SAFE STRICT
AS $$ SELECT public.unaccent('public.unaccent'::regdictionary, $1) $$
"""

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _require_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Catalog database not initialized. Call init_db() first.")
    return _engine


async def init_db() -> None:
    """Create the engine and session factory from DATABASE_URL."""
    global _engine, _session_factory

    settings = get_settings()
    _engine = create_async_engine(
        settings.async_database_url,
        echo=settings.debug,
        connect_args=settings.asyncpg_connect_args,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )
    # Repositories convert rows to schemas after commit
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)


async def ping_db() -> None:
    async with _require_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory handed to PostgresCatalogRepository."""
    if _session_factory is None:
        raise RuntimeError("Catalog database not initialized. Call init_db() first.")
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Bootstrap extensions and tables without Alembic (local development)."""
    async with _require_engine().begin() as conn:
        for extension in REQUIRED_EXTENSIONS:
            await conn.execute(text(f"CREATE EXTENSION IF NOT EXISTS {extension}"))
        await conn.execute(text(UNACCENT_FUNCTION_DDL))
        await conn.run_sync(Base.metadata.create_all)
