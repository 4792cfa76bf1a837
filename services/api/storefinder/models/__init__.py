"""SQLAlchemy ORM models.

Models represent database tables:
- stores: Catalog entries with slug, tags and point location
- reviews: User reviews joined onto stores on every read
"""

from storefinder.models.review import Review
from storefinder.models.store import Store

__all__ = ["Review", "Store"]
