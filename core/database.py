"""
Database engine and session management with SQLAlchemy async.

Engines are created explicitly and handed to the services that need them;
the owner (API lifespan, CLI script, test fixture) disposes them.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from core.config import Settings, settings as default_settings
import logging

logger = logging.getLogger(__name__)


def create_engine_from_settings(settings: Optional[Settings] = None, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the live SQLite database."""
    settings = settings or default_settings

    db_path = settings.sqlite_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    return create_async_engine(
        settings.async_database_url,
        echo=echo,
        poolclass=NullPool,  # No pooled handles left open on the file between calls
        future=True
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Create session factory bound to an engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables known to the ORM metadata."""
    from models.base import Base
    import models  # noqa: F401  registers every table on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
