"""Store Finder API.

Catalog of stores with slugs, full-text and map search, reviews and the
top-rated / tag views. Run with `python -m storefinder.main` or
`uvicorn storefinder.main:app`.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefinder.routes import api_router
from storefinder.schemas import ErrorDetail, ErrorResponse, field_errors
from storefinder.services.errors import CatalogError
from storefinder.settings import Settings, get_settings
from storefinder.stores.postgres import close_db, init_db, ping_db
from storefinder.stores.redis import close_redis, init_redis

logger = logging.getLogger("uvicorn.error")


async def _start_storage(settings: Settings) -> None:
    if settings.storage_backend == "memory":
        logger.info("Catalog storage: in-memory (data is lost on restart)")
        return
    try:
        await init_db()
        await ping_db()
        logger.info("Catalog storage: Postgres connected")
    except Exception:
        # Keep serving /health; catalog requests fail until the DB is back
        logger.exception("Postgres init failed")


async def _start_slug_locks() -> None:
    try:
        await init_redis()
    except Exception:
        logger.exception("Redis init failed, slug locks disabled (unique index only)")
        await close_redis()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    await _start_storage(settings)
    await _start_slug_locks()

    yield

    await close_redis()
    await close_db()


def _error_response(status_code: int, code: str, message: str, detail: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app() -> FastAPI:
    """Build the FastAPI app: middleware, error handlers and routes."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Store catalog with full-text search, map search and top-rated rankings",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return _error_response(exc.status_code, exc.code, exc.message, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(
            400, "VALIDATION_ERROR", "Invalid request", {"errors": field_errors(exc.errors())}
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = str(exc) if settings.debug else "Internal server error"
        return _error_response(500, "INTERNAL_ERROR", message)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        return {"ok": True}

    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("storefinder.main:app", host=settings.host, port=settings.port, reload=settings.debug)
