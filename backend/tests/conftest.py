"""Shared fixtures: in-memory SQLite database, HTTP client, page cache stubs."""
from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from api.main import app
from core.page_cache import PageCache, set_page_cache
from db.session import get_async_session
from models import Base

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session bound to the per-test database."""
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def statements(db_engine: AsyncEngine) -> list[str]:
    """Records every SQL statement executed against the test database."""
    executed: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany) -> None:  # noqa: ANN001, ARG001
        executed.append(statement)

    event.listen(db_engine.sync_engine, "before_cursor_execute", _record)
    return executed


@pytest.fixture
def page_cache() -> Generator[AsyncMock]:
    """Installs a mock page cache as the global cache for the test."""
    cache = AsyncMock(spec=PageCache)
    cache.get.return_value = None
    cache.invalidate.return_value = True
    cache.store.return_value = True
    cache.ping.return_value = True
    set_page_cache(cache)
    yield cache
    set_page_cache(None)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient]:
    """HTTP client against the app, sharing the test session."""

    async def _override_session() -> AsyncGenerator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_async_session] = _override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": "user_alice"},
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
