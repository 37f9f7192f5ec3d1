# ============================================================================
# File: pipeline/migration.py
# Description: Backup-guarded schema migrations with a durable history
# ============================================================================
"""
Migration orchestrator.

Every schema change goes through:

    BACKUP -> DIFF (best effort) -> APPLY -> RECORD

A failed backup aborts before the schema is touched. A failed apply is
recorded with status "failed" and re-raised; the backup it references stays
in place so the database can be rolled back with BackupEngine.restore_backup.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
import logging
import re

from pydantic import ValidationError

from core.config import Settings, settings as default_settings
from core.exceptions import (
    BlogOpsException,
    BackupRequiredError,
    MigrationApplyError,
    MigrationForbiddenError,
)
from core.outcome import best_effort
from models.base import MigrationStatus
from pipeline.backup import BackupEngine, backup_timestamp
from schemas.migration import MigrationRecord, MigrationResult

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def migration_name(name: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """Sanitized migration name; ``migration_<epoch ms>`` when none is given"""
    cleaned = _UNSAFE_NAME_CHARS.sub("_", (name or "").strip()).strip("_")
    if cleaned:
        return cleaned
    now = now or datetime.now(timezone.utc)
    return f"migration_{int(now.timestamp() * 1000)}"


class MigrationOrchestrator:
    """
    Wraps a migration tool with a mandatory backup and a history log.

    The tool is injected so the apply step can be replaced in tests; it must
    provide async ``create_and_apply(name)``, ``deploy()``, ``diff()`` and
    ``reset()``.
    """

    def __init__(self, backup_engine: BackupEngine, migration_tool, settings: Optional[Settings] = None):
        self.backup_engine = backup_engine
        self.tool = migration_tool
        self.settings = settings or default_settings

    @property
    def history_dir(self) -> Path:
        return Path(self.settings.MIGRATION_HISTORY_DIR)

    async def backup_before_migration(self) -> str:
        """
        Take the mandatory pre-migration backup.

        Raises:
            BackupRequiredError: if the backup failed for any reason
        """
        logger.info("Taking pre-migration backup")
        try:
            backup_file = await self.backup_engine.backup_once()
        except Exception as e:
            logger.error(f"Pre-migration backup failed: {str(e)}")
            raise BackupRequiredError(original_exception=e)

        logger.info(f"Pre-migration backup complete: {backup_file}")
        return backup_file

    async def safe_migrate(self, name: Optional[str] = None) -> MigrationResult:
        """
        Back up, then create and apply a migration named ``name``.

        Raises:
            BackupRequiredError: backup failed, nothing else was attempted
            MigrationApplyError: the tool failed; a "failed" record was written
        """
        backup_file = await self.backup_before_migration()
        name = migration_name(name)

        diff = await best_effort("schema_diff", self.tool.diff, logger)
        if diff.ok and diff.value:
            logger.info(f"Detected schema changes: {diff.value}")

        logger.info(f"Creating migration: {name}")
        try:
            await self.tool.create_and_apply(name)
        except Exception as e:
            logger.error(
                f"Migration {name} failed: {str(e)}",
                extra={"error_context": {"migration": name, "backup_file": backup_file}}
            )
            try:
                await self.record_migration(name, backup_file, MigrationStatus.FAILED, str(e))
            except OSError as record_error:
                # The apply error below is the one callers need to see
                logger.error(f"Could not record failed migration {name}: {str(record_error)}")
            logger.info(f"Roll back with backup file: {backup_file}")

            if isinstance(e, BlogOpsException):
                raise
            raise MigrationApplyError(
                "Migration failed",
                context={"migration": name, "backup_file": backup_file},
                original_exception=e
            )

        await self.record_migration(name, backup_file, MigrationStatus.SUCCESS)
        return MigrationResult(success=True, migration=name, backup=backup_file)

    async def record_migration(
        self,
        name: str,
        backup_file: Optional[str],
        status: MigrationStatus,
        error: Optional[str] = None
    ) -> Path:
        """Write one history record. Existing records are never overwritten."""
        self.history_dir.mkdir(parents=True, exist_ok=True)

        now = datetime.now(timezone.utc)
        record = MigrationRecord(
            name=name,
            backup_file=backup_file,
            status=status,
            error=error,
            timestamp=now,
            database="configured" if self.settings.database_configured else "not-configured",
        )

        stem = f"{migration_name(name)}-{backup_timestamp(now)}"
        path = self.history_dir / f"{stem}.json"
        counter = 1
        while path.exists():
            path = self.history_dir / f"{stem}-{counter}.json"
            counter += 1

        path.write_text(record.to_json(), encoding="utf-8")
        logger.info(f"Recorded migration {name} ({record.status}) in {path.name}")
        return path

    async def get_migration_history(self) -> List[MigrationRecord]:
        """Every history record, newest first"""
        if not self.history_dir.exists():
            return []

        history = []
        for path in self.history_dir.glob("*.json"):
            try:
                history.append(MigrationRecord.model_validate_json(path.read_text(encoding="utf-8")))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable migration record {path.name}: {e.error_count()} errors")

        return sorted(history, key=lambda r: r.timestamp, reverse=True)

    async def apply_migration(self) -> bool:
        """Apply pending migrations without generating new ones."""
        logger.info("Applying pending migrations")
        try:
            await self.tool.deploy()
        except Exception as e:
            logger.error(f"Applying migrations failed: {str(e)}")
            raise MigrationApplyError("Applying pending migrations failed", original_exception=e)
        return True

    async def deploy(self) -> str:
        """Mandatory backup, then apply pending migrations. Returns the backup file."""
        backup_file = await self.backup_before_migration()
        await self.apply_migration()
        return backup_file

    async def reset_database(self) -> str:
        """
        Drop and re-create the schema. Never allowed in production.

        Returns:
            The backup taken before the reset
        """
        if self.settings.ENVIRONMENT == "production":
            raise MigrationForbiddenError(
                "Database reset is not allowed in production",
                context={"environment": self.settings.ENVIRONMENT}
            )

        logger.warning("Resetting database")
        backup_file = await self.backup_before_migration()

        try:
            await self.tool.reset()
        except Exception as e:
            logger.error(f"Database reset failed: {str(e)}")
            raise MigrationApplyError(
                "Database reset failed",
                context={"backup_file": backup_file},
                original_exception=e
            )

        logger.info("Database reset complete")
        return backup_file
