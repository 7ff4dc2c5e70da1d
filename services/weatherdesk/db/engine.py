"""
Async engine and session factories.

DATABASE_URL is written in the plain postgresql:// form shared with other
tools; the asyncpg driver name is added here.
"""

from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from services.weatherdesk.config import settings


def asyncpg_url(url: str) -> str:
    if url.startswith("postgresql+asyncpg://"):
        return url
    return url.replace("postgresql://", "postgresql+asyncpg://", 1)


def create_engine() -> AsyncEngine:
    return create_async_engine(
        asyncpg_url(settings.database_url),
        pool_pre_ping=True,
        echo=settings.debug and settings.environment == "development",
    )


def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # Response bodies read ORM attributes after commit
    return async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def standalone_session():
    """One session plus its own engine, for scripts run outside the app (seed_users)."""
    engine = create_engine()
    try:
        async with session_factory(engine)() as session:
            yield session
    finally:
        await engine.dispose()
