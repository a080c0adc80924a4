"""Shared pytest fixtures for directory, allocator and API tests."""

import logging
import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shortlink.allocator import SequentialAllocator
from shortlink.config import Settings
from shortlink.database import Base, get_db
from shortlink.dependencies import get_service_manager
from shortlink.link_directory import LinkDirectory
from shortlink.main import app
from shortlink.models import Link

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture
def settings() -> Settings:
    return Settings(BASE_URL="", LINK_CACHE_TTL_SECONDS=0, COUNTER_KEY="url_counter", COUNTER_INITIAL=1)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("shortlink.tests")


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def cache_store() -> dict[str, str]:
    """Backing dict of the mocked Redis; tests inspect it directly."""
    return {}


@pytest.fixture
def mock_redis(cache_store: dict[str, str]) -> AsyncMock:
    """Mock Redis client with just enough string semantics for the service."""

    async def _get(name):
        return cache_store.get(name)

    async def _set(name, value, ex=None, nx=False, **kwargs):
        if nx and name in cache_store:
            return None
        cache_store[name] = str(value)
        return True

    async def _incrby(name, amount=1):
        value = int(cache_store.get(name, 0)) + amount
        cache_store[name] = str(value)
        return value

    async def _flushdb(**kwargs):
        cache_store.clear()
        return True

    client = AsyncMock(spec=redis.Redis)
    client.get = AsyncMock(side_effect=_get)
    client.set = AsyncMock(side_effect=_set)
    client.incrby = AsyncMock(side_effect=_incrby)
    client.flushdb = AsyncMock(side_effect=_flushdb)
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def allocator(mock_redis: AsyncMock, settings: Settings, logger: logging.Logger) -> SequentialAllocator:
    return SequentialAllocator(
        mock_redis,
        key=settings.COUNTER_KEY,
        initial=settings.COUNTER_INITIAL,
        logger=logger,
    )


@pytest.fixture
def ctx(db_session, mock_redis, allocator, logger, settings) -> Mock:
    context = Mock()
    context.database = db_session
    context.cache = mock_redis
    context.allocator = allocator
    context.logger = logger
    context.settings = settings
    return context


@pytest.fixture
def directory(ctx: Mock) -> LinkDirectory:
    return LinkDirectory(ctx)


@pytest.fixture
def count_links(db_session: AsyncSession):
    async def _count() -> int:
        return await db_session.scalar(select(func.count()).select_from(Link))

    return _count


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    mock_redis: AsyncMock,
    allocator: SequentialAllocator,
    logger: logging.Logger,
    settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    manager = Mock()
    manager.settings = settings
    manager.logger = logger
    manager.cache = mock_redis
    manager.allocator = allocator

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_service_manager():
        return manager

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
