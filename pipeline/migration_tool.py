"""
Schema migration tool backed by Alembic.

Alembic commands are synchronous; each one runs in a worker thread so the
event loop stays free. Every command targets the database resolved from
Settings; alembic.ini carries no URL.
"""

from typing import Any, List, Optional
import asyncio
import logging

from alembic import command
from alembic.autogenerate import compare_metadata
from alembic.config import Config
from alembic.migration import MigrationContext
from sqlalchemy import create_engine, pool

from core.config import PROJECT_ROOT, Settings, settings as default_settings
from models.base import Base

logger = logging.getLogger(__name__)


class AlembicMigrationTool:
    """
    Create, apply, diff and reset schema migrations.

    - create_and_apply: autogenerate a revision from the models, then upgrade to head
    - deploy: upgrade to head without generating anything
    - diff: pending model/database differences
    - reset: downgrade to base, then upgrade to head
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    def alembic_config(self) -> Config:
        cfg = Config(str(self.settings.ALEMBIC_INI))
        cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
        cfg.attributes["sqlalchemy.url"] = self.settings.sync_database_url
        cfg.attributes["configure_logger"] = False
        cfg.attributes["skip_empty_revision"] = True
        return cfg

    async def create_and_apply(self, name: str) -> None:
        cfg = self.alembic_config()
        await asyncio.to_thread(command.revision, cfg, message=name, autogenerate=True)
        await asyncio.to_thread(command.upgrade, cfg, "head")
        logger.info(f"Migration '{name}' created and applied")

    async def deploy(self) -> None:
        await asyncio.to_thread(command.upgrade, self.alembic_config(), "head")
        logger.info("Pending migrations applied")

    async def reset(self) -> None:
        cfg = self.alembic_config()
        await asyncio.to_thread(command.downgrade, cfg, "base")
        await asyncio.to_thread(command.upgrade, cfg, "head")
        logger.info("Database reset to head")

    async def diff(self) -> List[Any]:
        return await asyncio.to_thread(self._diff)

    def _diff(self) -> List[Any]:
        import models  # noqa: F401  registers every table on Base.metadata

        engine = create_engine(self.settings.sync_database_url, poolclass=pool.NullPool)
        try:
            with engine.connect() as connection:
                context = MigrationContext.configure(connection)
                return compare_metadata(context, Base.metadata)
        finally:
            engine.dispose()

    async def stamp_head(self) -> None:
        """Mark a schema created from the models as being at head."""
        await asyncio.to_thread(command.stamp, self.alembic_config(), "head")
        logger.info("Database stamped at head")
