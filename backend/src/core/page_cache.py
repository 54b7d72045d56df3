"""
Redis-backed cache of rendered pages with graceful fallback.

Pages are stored under "page:<path>". Writes that change what a page shows call
invalidate() with the affected paths. When Redis is disabled or unreachable
every operation is a logged no-op, so callers never need to check.
"""
import logging

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

KEY_PREFIX = "page:"

# Paths whose renders change once a profile is saved
PROFILE_EDIT_PATH = "/profile/edit"
ONBOARDING_PATHS = ("/onboarding", "/")


def page_key(path: str) -> str:
    """Redis key for a page path."""
    return f"{KEY_PREFIX}{path}"


def paths_for_profile_save(path: str) -> tuple[str, ...]:
    """
    Paths to invalidate after a profile save.

    Edits from the profile page only affect that page. Anything else is
    treated as onboarding completion, which changes the onboarding page
    (now redirects) and the home page.
    """
    if path == PROFILE_EDIT_PATH:
        return (path,)
    return ONBOARDING_PATHS


class PageCache:
    """Async page cache over a pooled Redis client."""

    def __init__(self, url: str, enabled: bool = True, ttl: int = 60) -> None:
        self._url = url
        self._enabled = enabled
        self._ttl = ttl
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Initialize the connection pool; stays disconnected on failure."""
        if not self._enabled:
            logger.info("Page cache disabled by configuration")
            return
        try:
            self._pool = ConnectionPool.from_url(self._url, max_connections=10)
            self._client = Redis(connection_pool=self._pool)
            await self._client.ping()
            logger.info("Page cache connected")
        except RedisError as e:
            logger.warning("Page cache connection failed: %s", e)
            self._client = None
            self._pool = None

    async def close(self) -> None:
        """Close connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._pool = None
            logger.info("Page cache connection closed")

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._client is not None

    @property
    def ttl(self) -> int:
        """Seconds a stored page lives."""
        return self._ttl

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if not self._client:
            return False
        try:
            return await self._client.ping()
        except RedisError:
            return False

    async def get(self, path: str) -> str | None:
        """Return the cached render for path, or None on miss/unavailable."""
        if not self._client:
            return None
        try:
            value = await self._client.get(page_key(path))
        except RedisError as e:
            logger.warning("page_cache_get_failed", extra={"path": path, "error": str(e)})
            return None
        if value is None:
            return None
        return value.decode() if isinstance(value, bytes) else value

    async def store(self, path: str, body: str) -> bool:
        """Cache a render for path. Returns False if Redis unavailable."""
        if not self._client:
            return False
        try:
            await self._client.setex(page_key(path), self._ttl, body)
            return True
        except RedisError as e:
            logger.warning("page_cache_store_failed", extra={"path": path, "error": str(e)})
            return False

    async def invalidate(self, *paths: str) -> bool:
        """Evict cached renders for paths. Returns False if Redis unavailable."""
        if not paths:
            return True
        if not self._client:
            logger.info("page_cache_unavailable", extra={"paths": list(paths)})
            return False
        try:
            await self._client.delete(*(page_key(p) for p in paths))
        except RedisError as e:
            logger.warning(
                "page_cache_invalidate_failed",
                extra={"paths": list(paths), "error": str(e)},
            )
            return False
        logger.info("page_cache_invalidated", extra={"paths": list(paths)})
        return True


# Global page cache state using a container to avoid global statement
class _PageCacheState:
    """Container for global page cache state."""

    cache: PageCache | None = None


_state = _PageCacheState()


def get_page_cache() -> PageCache | None:
    """Get the global page cache instance."""
    return _state.cache


def set_page_cache(cache: PageCache | None) -> None:
    """Set the global page cache instance."""
    _state.cache = cache


async def invalidate_paths(*paths: str) -> bool:
    """Invalidate paths on the global cache; no-op when none is configured."""
    cache = get_page_cache()
    if cache is None:
        logger.info("page_cache_not_configured", extra={"paths": list(paths)})
        return False
    return await cache.invalidate(*paths)
