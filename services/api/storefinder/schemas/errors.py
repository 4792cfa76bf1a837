"""Error response schemas.

Every non-2xx response from the catalog API has the shape
{"error": {"code": "NOT_FOUND", "message": "...", "detail": {...}}}.
"""

from typing import Any

from pydantic import BaseModel


class FieldError(BaseModel):
    """One rejected field of a request payload."""

    field: str
    message: str


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


def field_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic error entries into {"field", "message"} pairs."""
    return [
        FieldError(field=".".join(str(p) for p in err["loc"]), message=err["msg"]).model_dump()
        for err in errors
    ]
