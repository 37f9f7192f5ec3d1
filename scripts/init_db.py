"""
Create the schema from the models and stamp it at the Alembic head
"""

import asyncio
import logging
import sys

from core.config import settings
from core.database import create_engine_from_settings, init_models
from core.logging import setup_logging
from pipeline.migration_tool import AlembicMigrationTool

logger = logging.getLogger(__name__)


async def init_database():
    logger.info(f"Initializing database at {settings.sqlite_path}")
    engine = create_engine_from_settings(settings)

    try:
        logger.info("Creating tables...")
        await init_models(engine)
        logger.info("Tables created successfully.")
    finally:
        await engine.dispose()

    # Later migrations diff against this revision
    await AlembicMigrationTool(settings).stamp_head()


def main() -> int:
    setup_logging(settings)
    asyncio.run(init_database())
    return 0


if __name__ == "__main__":
    sys.exit(main())
