"""Async database engine and session factory."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from gatehouse.config import Settings, settings


def create_engine(url: str | None = None, app_settings: Settings | None = None) -> AsyncEngine:
    """Create an async engine for the configured database.

    In-memory SQLite gets a single shared connection so every session sees the
    same tables.
    """
    app_settings = app_settings or settings
    url = url or app_settings.active_database_url

    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, **kwargs)

    return create_async_engine(
        url,
        pool_size=app_settings.database_pool_size,
        max_overflow=app_settings.database_max_overflow,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory shared by all stores."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables."""
    # Import models so they register on the metadata
    import gatehouse.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def drop_db(engine: AsyncEngine) -> None:
    """Drop all tables."""
    import gatehouse.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)


async def close_db(engine: AsyncEngine) -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
