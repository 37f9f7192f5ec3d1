"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator
from core.config import Settings
from core.database import create_engine_from_settings, create_session_maker, init_models
from pipeline.backup import BackupEngine


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing every path into the test's temporary directory"""
    return Settings(
        _env_file=None,
        DATABASE_URL="file:./data/test.db",
        DATABASE_BASE_DIR=tmp_path,
        BACKUPS_DIR=tmp_path / "backups",
        MIGRATION_HISTORY_DIR=tmp_path / "migration-history",
        BACKUP_RETENTION_DAYS=7,
        BACKUP_SCHEDULER_ENABLED=False,
        ENVIRONMENT="test",
        API_KEY=None,
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine(test_settings):
    """Create test database engine with all tables"""
    engine = create_engine_from_settings(test_settings)
    await init_models(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    session_maker = create_session_maker(test_engine)

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def backup_engine(test_engine, test_settings) -> BackupEngine:
    return BackupEngine(test_engine, test_settings)

