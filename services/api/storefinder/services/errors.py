"""Catalog error kinds.

Each error carries a stable `code` used in the structured error response
({"error": {"code", "message", "detail"}}) and the HTTP status it maps to.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for errors reported to catalog callers."""

    code = "CATALOG_ERROR"
    status_code = 400

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(CatalogError):
    """A required field is missing or malformed; nothing was persisted."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidQueryError(CatalogError):
    """A search request was rejected before reaching storage."""

    code = "INVALID_QUERY"
    status_code = 400


class NotFoundError(CatalogError):
    """Raised by the HTTP layer only; services return None for absent stores."""

    code = "NOT_FOUND"
    status_code = 404


class OwnershipError(CatalogError):
    """The caller does not own the store it tried to edit."""

    code = "FORBIDDEN"
    status_code = 403


class ConflictError(CatalogError):
    """A unique slug could not be assigned within the allowed attempts."""

    code = "CONFLICT"
    status_code = 409


class SlugConflictError(Exception):
    """Storage rejected a slug that another store already holds.

    Internal to the repository/service seam; the service retries on it.
    """

    def __init__(self, slug: str) -> None:
        super().__init__(f"Slug already taken: {slug}")
        self.slug = slug
