"""
Async SQLAlchemy connector and session factory.

The engine is created lazily on the first call to connect() and shared by every
request handled by the process. Initialization is single-flight: concurrent
first callers wait on one lock and re-check the state, so only one engine and
one set of event listeners ever exist.
"""
import asyncio
import logging
import socket
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import ExceptionContext
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import get_settings
from core.errors import (
    ConfigurationError,
    DatabaseAuthenticationError,
    DatabaseConnectionError,
    DatabaseTimeoutError,
    DatabaseUnreachableError,
)

logger = logging.getLogger(__name__)

_AUTH_MARKERS = (
    "password authentication failed",
    "authentication failed",
    "invalid password",
    "invalidpassword",
    "invalidauthorizationspecification",
    "access denied",
    "role \"",
)
_TIMEOUT_MARKERS = ("timeout", "timed out")
_NETWORK_MARKERS = (
    "connection refused",
    "could not connect",
    "name or service not known",
    "nodename nor servname",
    "could not translate host name",
    "temporary failure in name resolution",
    "network is unreachable",
    "no route to host",
    "unable to open database file",
)


class _ConnectionState:
    """Container for the process-wide connection state."""

    engine: AsyncEngine | None = None
    session_factory: async_sessionmaker[AsyncSession] | None = None
    is_connected: bool = False
    lock: asyncio.Lock | None = None
    lock_loop: asyncio.AbstractEventLoop | None = None


_state = _ConnectionState()


def _get_lock() -> asyncio.Lock:
    """Return the init lock for the running loop, replacing one bound to another loop."""
    loop = asyncio.get_running_loop()
    if _state.lock is None or _state.lock_loop is not loop:
        _state.lock = asyncio.Lock()
        _state.lock_loop = loop
    return _state.lock


def _iter_causes(exc: BaseException) -> list[BaseException]:
    """Return the exception, its DBAPI original and its __cause__ chain."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        orig = getattr(current, "orig", None)
        if isinstance(orig, BaseException) and orig not in chain:
            chain.append(orig)
        current = current.__cause__ or current.__context__
    return chain


def classify_connection_error(exc: BaseException) -> DatabaseConnectionError:
    """Map a driver/SQLAlchemy failure to a cause-specific connection error."""
    chain = _iter_causes(exc)
    text_blob = " ".join(
        f"{type(e).__name__} {e}" for e in chain
    ).lower()

    if any(marker in text_blob for marker in _AUTH_MARKERS):
        return DatabaseAuthenticationError(
            "Database authentication failed: check the credentials in DATABASE_URL",
        )
    if any(isinstance(e, TimeoutError) for e in chain) or any(
        marker in text_blob for marker in _TIMEOUT_MARKERS
    ):
        return DatabaseTimeoutError(
            "Timed out connecting to the database: the server did not respond",
        )
    if any(isinstance(e, (socket.gaierror, ConnectionError)) for e in chain) or any(
        marker in text_blob for marker in _NETWORK_MARKERS
    ):
        return DatabaseUnreachableError(
            "Database host is unreachable: check the host, port and network access",
        )
    return DatabaseConnectionError(f"Failed to connect to the database: {exc}")


def _on_engine_error(context: ExceptionContext) -> None:
    """Mark the connection stale when the driver reports a disconnect."""
    if context.is_disconnect:
        logger.warning("database_disconnected", extra={"error": str(context.original_exception)})
        _state.is_connected = False


def _on_pool_invalidate(dbapi_connection: Any, connection_record: Any, exception: Any) -> None:  # noqa: ARG001
    """Mark the connection stale when the pool invalidates a connection."""
    logger.warning("database_connection_invalidated", extra={"error": str(exception)})
    _state.is_connected = False


def _register_listeners(engine: AsyncEngine) -> None:
    """Attach connection lifecycle listeners once per engine."""
    sync_engine = engine.sync_engine
    if not event.contains(sync_engine, "handle_error", _on_engine_error):
        event.listen(sync_engine, "handle_error", _on_engine_error)
    if not event.contains(sync_engine, "invalidate", _on_pool_invalidate):
        event.listen(sync_engine, "invalidate", _on_pool_invalidate)


async def connect() -> AsyncEngine:
    """
    Establish (or reuse) the process-wide database connection.

    Raises:
        ConfigurationError: DATABASE_URL/DATABASE_URI is not set.
        DatabaseConnectionError: The database could not be reached; the
            subclass identifies authentication, timeout or network causes.
    """
    if _state.is_connected and _state.engine is not None:
        return _state.engine

    async with _get_lock():
        # Another caller may have finished while we waited on the lock
        if _state.is_connected and _state.engine is not None:
            return _state.engine

        settings = get_settings()
        if not settings.database_url:
            raise ConfigurationError(
                "DATABASE_URL or DATABASE_URI environment variable is not defined",
            )

        if _state.engine is None:
            _state.engine = create_async_engine(
                settings.database_url,
                echo=False,
                pool_pre_ping=True,
            )
            _state.session_factory = async_sessionmaker(
                _state.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            _register_listeners(_state.engine)

        try:
            async with asyncio.timeout(settings.database_connect_timeout):
                async with _state.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
        except Exception as e:
            _state.is_connected = False
            error = classify_connection_error(e)
            logger.error(
                "database_connect_failed",
                extra={"cause": error.cause.value, "error": str(e)},
            )
            raise error from e

        _state.is_connected = True
        logger.info("database_connected")
        return _state.engine


async def dispose() -> None:
    """Close the engine and reset the connection state."""
    async with _get_lock():
        if _state.engine is not None:
            await _state.engine.dispose()
            logger.info("database_connection_closed")
        _state.engine = None
        _state.session_factory = None
        _state.is_connected = False


def is_connected() -> bool:
    """Check whether the last connection attempt succeeded and is still valid."""
    return _state.is_connected


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session."""
    await connect()
    factory = _state.session_factory
    if factory is None:
        raise DatabaseConnectionError("Database session factory is not initialized")
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
