"""Liveness and dependency status."""
import logging

from fastapi import APIRouter, Response
from pydantic import BaseModel

from core.errors import ConfigurationError, DatabaseConnectionError
from core.page_cache import get_page_cache
from db import session as db_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Status of the service and the stores it talks to."""

    status: str  # "healthy" or "unhealthy"
    database: str  # "connected", "unavailable" or "unconfigured"
    database_cause: str | None = None  # ConnectionFailure value when unavailable
    redis: str  # "connected" or "unavailable"


async def check_database() -> tuple[str, str | None]:
    """Connect (or reuse the connection) and report the database status and failure cause."""
    try:
        await db_session.connect()
    except ConfigurationError:
        logger.error("health_database_unconfigured")
        return "unconfigured", None
    except DatabaseConnectionError as e:
        logger.warning("health_database_unavailable", extra={"cause": e.cause.value})
        return "unavailable", e.cause.value
    return "connected", None


async def check_page_cache() -> str:
    cache = get_page_cache()
    if cache is not None and await cache.ping():
        return "connected"
    return "unavailable"


@router.get("/health", response_model=HealthResponse)
async def health_check(response: Response) -> HealthResponse:
    """
    Report database and page cache status.

    The page cache is optional: without it pages are rendered uncached, so it
    never makes the service unhealthy. A database that cannot be reached does,
    and the response is a 503.
    """
    database, cause = await check_database()
    healthy = database == "connected" and db_session.is_connected()
    if not healthy:
        response.status_code = 503
    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        database=database,
        database_cause=cause,
        redis=await check_page_cache(),
    )
