"""Database engine and session factories for async SQLAlchemy."""

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from shelfwise.config import Settings, get_settings

logger = structlog.get_logger(__name__)


def create_engine(settings: Settings | None = None, database_url: str | None = None) -> AsyncEngine:
    """Create an async engine for the configured database.

    Production uses NullPool; SQLite URLs keep the driver's default pool.
    """
    settings = settings or get_settings()
    url = database_url or settings.database_url

    engine_kwargs: dict = {
        "echo": settings.db_echo,
    }
    if not url.startswith("sqlite"):
        if settings.is_production:
            engine_kwargs["poolclass"] = NullPool
        else:
            engine_kwargs["pool_size"] = settings.db_pool_size
            engine_kwargs["max_overflow"] = settings.db_max_overflow

    logger.info("Creating database engine", url=url.split("@")[-1])
    return create_async_engine(url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def close_engine(engine: AsyncEngine) -> None:
    """Dispose of an engine's connections."""
    logger.info("Closing database connection")
    await engine.dispose()
    logger.info("Database connection closed")
