# tarot_app/data/database.py
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()


def to_async_database_url(database_url: str) -> str:
    """Point plain driver URLs at their async drivers (asyncpg / aiosqlite)."""
    if database_url.startswith("postgresql://"):
        async_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        logger.warning(f"Adapted database URL to: {async_url}.  Please update your configuration.")
        return async_url
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(to_async_database_url(database_url), echo=echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    # Importing the model registers its table on Base.metadata.
    from tarot_app.models.database_models import tarot_reading_history  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
