"""SQL store for short links.

The only table is ``short_links`` (see ``shortlink.models.Link``). The
application lifespan calls ``init_db()`` before serving, which creates the
table if it is missing, and ``close_db()`` on shutdown. Each request gets its
own ``AsyncSession`` from ``get_db()``; the link directory commits or rolls
back on it, and the session is closed when the request ends.

Pooling depends on the URL:

- PostgreSQL (``postgresql+asyncpg://...``) keeps a pool of 20 connections
  with 10 overflow, and checks each connection before use.
- SQLite (``sqlite+aiosqlite://...``) keeps the dialect's own pool, which
  does not accept pool sizing.

Sessions are created with ``expire_on_commit=False`` so a committed ``Link``
can still be read after the commit without another round trip.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlink.config import get_settings

__all__ = ["Base", "get_db", "init_db", "close_db"]


def _pool_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {}
    return {"pool_size": 20, "max_overflow": 10}


settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=(settings.APP_ENV == "development"),
    pool_pre_ping=True,
    **_pool_options(settings.DATABASE_URL),
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


async def init_db() -> None:
    # Registers Link on Base.metadata before create_all.
    import shortlink.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
