"""FastAPI application entry point."""
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.routers import activity, health, threads, users
from core.config import get_settings
from core.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    NotFoundError,
    WriteFailureError,
)
from core.page_cache import PageCache, get_page_cache, set_page_cache
from db import session as db_session

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # noqa: ARG001
    """Connect the page cache on startup; close it and the database on shutdown."""
    settings = get_settings()
    cache = PageCache(settings.redis_url, enabled=settings.redis_enabled, ttl=settings.page_cache_ttl)
    await cache.connect()
    set_page_cache(cache)
    try:
        yield
    finally:
        current = get_page_cache()
        if current is not None:
            await current.close()
        set_page_cache(None)
        await db_session.dispose()


app = FastAPI(
    title="Threads API",
    description="User profiles, threads, replies and an activity feed.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:  # noqa: ARG001
    """Referenced record missing on a write."""
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(WriteFailureError)
async def write_failure_handler(request: Request, exc: WriteFailureError) -> JSONResponse:  # noqa: ARG001
    """User-initiated write failed; the message is safe to show."""
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(DatabaseConnectionError)
async def database_connection_handler(
    request: Request, exc: DatabaseConnectionError,
) -> JSONResponse:
    """Database unreachable; the detail names the cause class."""
    logger.error(
        "request_failed_database_unavailable",
        extra={"path": request.url.path, "cause": exc.cause.value},
    )
    return JSONResponse(
        status_code=503,
        content={"detail": exc.message, "cause": exc.cause.value},
    )


@app.exception_handler(ConfigurationError)
async def configuration_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Server misconfiguration."""
    logger.error("request_failed_configuration", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=500, content={"detail": "Server is not configured"})


app.include_router(health.router)
app.include_router(users.router)
app.include_router(threads.router)
app.include_router(activity.router)
