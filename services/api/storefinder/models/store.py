"""Store model.

A Store is a physical business listed in the catalog:
name + slug + description + tags + point location (+ optional photo)

Example slug: "cafe-de-flore-2"

Indexes:
- uq slug (collision backstop for slug assignment)
- GIN on the weighted, accent-folded name/description tsvector (text search)
- GiST on ll_to_earth(latitude, longitude) (nearest-first search)
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, func, literal_column
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql.elements import ColumnElement

from storefinder.stores.postgres import UNACCENT_FUNCTION, Base

# Text search configuration, cast so the index expression stays IMMUTABLE
TEXT_SEARCH_CONFIG = literal_column("'english'::regconfig")
EMPTY_TEXT = literal_column("''")


def unaccent(value: ColumnElement | str) -> ColumnElement:
    """Diacritic folding usable in index expressions (café -> cafe)."""
    return getattr(func, UNACCENT_FUNCTION)(value)


def search_document(name: ColumnElement, description: ColumnElement) -> ColumnElement:
    """Weighted, accent-folded tsvector: name weighs A, description weighs B.

    Shared by the GIN index and the search query so Postgres can match them.
    """
    name_vector = func.setweight(
        func.to_tsvector(TEXT_SEARCH_CONFIG, unaccent(func.coalesce(name, EMPTY_TEXT))),
        literal_column("'A'"),
    )
    description_vector = func.setweight(
        func.to_tsvector(TEXT_SEARCH_CONFIG, unaccent(func.coalesce(description, EMPTY_TEXT))),
        literal_column("'B'"),
    )
    return name_vector.op("||")(description_vector)


def search_query(tsquery_text: str) -> ColumnElement:
    """tsquery for OR-ed terms, folded the same way as search_document()."""
    return func.to_tsquery(TEXT_SEARCH_CONFIG, unaccent(tsquery_text))


def earth_point(latitude: ColumnElement, longitude: ColumnElement) -> ColumnElement:
    """earthdistance point for a (lat, lng) pair."""
    return func.ll_to_earth(latitude, longitude)


class Store(Base):
    """Store listed in the catalog."""

    __tablename__ = "stores"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Identity
    name: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(220), unique=True, index=True)

    # Content
    description: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list[str]] = mapped_column(ARRAY(String(100)), default=list)
    photo: Mapped[str | None] = mapped_column(String(200))

    # Location (GeoJSON-style point)
    location_type: Mapped[str] = mapped_column(String(20), default="Point")
    longitude: Mapped[float] = mapped_column()
    latitude: Mapped[float] = mapped_column()
    address: Mapped[str] = mapped_column(String(500))

    # Ownership
    author_id: Mapped[str] = mapped_column(String(100), index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    reviews: Mapped[list["Review"]] = relationship(  # noqa: F821
        back_populates="store",
        order_by="Review.id",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Store {self.slug}>"


Index(
    "ix_stores_search_document",
    search_document(Store.name, Store.description),
    postgresql_using="gin",
)

Index(
    "ix_stores_location",
    earth_point(Store.latitude, Store.longitude),
    postgresql_using="gist",
)
