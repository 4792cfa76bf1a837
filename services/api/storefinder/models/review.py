"""Review model.

Reviews are written by the reviews service; the catalog only reads them to
attach them to stores and to rank stores by average rating.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefinder.stores.postgres import Base

MIN_RATING = 1
MAX_RATING = 5


class Review(Base):
    """User review of a store."""

    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint(
            f"rating BETWEEN {MIN_RATING} AND {MAX_RATING}",
            name="ck_reviews_rating_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Relations
    store_id: Mapped[int] = mapped_column(ForeignKey("stores.id", ondelete="CASCADE"), index=True)
    author_id: Mapped[str | None] = mapped_column(String(100))

    # Content
    text: Mapped[str] = mapped_column(Text, default="")
    rating: Mapped[int] = mapped_column()

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    store: Mapped["Store"] = relationship(back_populates="reviews")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Review store={self.store_id} rating={self.rating}>"
