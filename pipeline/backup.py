# ============================================================================
# File: pipeline/backup.py
# Description: SQLite backup, retention cleanup and restore
# ============================================================================
"""
Backup engine for the live SQLite database.

Backups are flat files named ``{db-basename}-{YYYYMMDDHHMMSS}.db`` in the
backups directory; a second backup within the same second gets a ``-N``
suffix, so an existing backup is never overwritten. A backup first
checkpoints the WAL (best effort), then takes an atomic ``VACUUM INTO``
snapshot; if the snapshot is unavailable or fails, the live file is copied
byte for byte instead.

Logical backups (``.json``) export every pipeline table as a list of rows
and can be restored into any database carrying the same schema.

Backup and restore calls on one engine instance are serialized. Restore
also waits, through the DatabaseGate, for open request sessions to finish.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import asyncio
import json
import logging
import os
import re
import shutil

from sqlalchemy import DateTime, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from core.config import Settings, settings as default_settings
from core.exceptions import (
    SnapshotError,
    InvalidBackupNameError,
    BackupNotFoundError,
    RestoreError,
)
from core.outcome import StepOutcome, best_effort
from models import Post, Comment, VisitLog, DailyStat
from models.base import BackupType
from schemas.api import BackupInfo

logger = logging.getLogger(__name__)

BACKUP_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+\.(db|sql|json)$")

BACKUP_TYPES = {
    ".db": BackupType.SQLITE,
    ".sql": BackupType.POSTGRESQL,
    ".json": BackupType.LOGICAL,
}

SECONDS_PER_DAY = 24 * 60 * 60

# Insert order; deletes run in reverse
LOGICAL_TABLES = [Post, Comment, VisitLog, DailyStat]


def backup_timestamp(now: Optional[datetime] = None) -> str:
    """14-digit UTC timestamp, no separators"""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d%H%M%S")


def database_basename(db_path: Path) -> str:
    name = Path(db_path).name
    return name[:-3] if name.endswith(".db") else name


def validate_backup_name(filename: str, backups_dir: Path) -> Path:
    """
    Check a user-supplied backup name and return its path in ``backups_dir``.

    Only string operations are used; nothing on disk is touched.

    Raises:
        InvalidBackupNameError: name fails the allow-list or escapes the directory
    """
    if not filename or not BACKUP_NAME_RE.match(filename):
        raise InvalidBackupNameError(
            "Invalid backup file name",
            context={"file": filename}
        )

    root = os.path.normpath(os.path.abspath(str(backups_dir)))
    candidate = os.path.normpath(os.path.join(root, filename))
    if os.path.dirname(candidate) != root:
        raise InvalidBackupNameError(
            "Backup path escapes the backups directory",
            context={"file": filename}
        )
    return Path(candidate)


def unique_backup_path(backups_dir: Path, stem: str, suffix: str) -> Path:
    """``{stem}{suffix}``, or ``{stem}-N{suffix}`` when that file already exists"""
    path = backups_dir / f"{stem}{suffix}"
    counter = 1
    while path.exists():
        path = backups_dir / f"{stem}-{counter}{suffix}"
        counter += 1
    return path


def _json_default(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def decode_logical_row(table, record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert one exported record back into insertable column values.

    Keys that are not columns of ``table`` are dropped; ISO strings in
    DateTime columns are parsed, and offset-aware values are converted to
    local wall-clock time.
    """
    row = {}
    for column in table.columns:
        if column.name not in record:
            continue
        value = record[column.name]
        if isinstance(column.type, DateTime) and isinstance(value, str):
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if value.tzinfo is not None:
                value = value.astimezone().replace(tzinfo=None)
        row[column.name] = value
    return row


class DatabaseGate:
    """
    Shared/exclusive access to the live database file.

    Request handlers hold a shared slot for the lifetime of their session.
    A restore takes the exclusive slot: new shared entries wait, and the
    restore starts only once every open shared slot has been released.
    """

    def __init__(self):
        self._condition = asyncio.Condition()
        self._shared = 0
        self._exclusive = False

    @property
    def active_sessions(self) -> int:
        return self._shared

    @asynccontextmanager
    async def shared(self):
        async with self._condition:
            await self._condition.wait_for(lambda: not self._exclusive)
            self._shared += 1
        try:
            yield
        finally:
            async with self._condition:
                self._shared -= 1
                self._condition.notify_all()

    @asynccontextmanager
    async def exclusive(self):
        async with self._condition:
            await self._condition.wait_for(lambda: not self._exclusive)
            self._exclusive = True
            try:
                await self._condition.wait_for(lambda: self._shared == 0)
            except BaseException:
                self._exclusive = False
                self._condition.notify_all()
                raise
        try:
            yield
        finally:
            async with self._condition:
                self._exclusive = False
                self._condition.notify_all()


class BackupEngine:
    """
    Point-in-time copies of the live database.

    Responsibilities:
    - Snapshot the live file (VACUUM INTO, falling back to file copy)
    - Export a logical JSON backup of the pipeline tables
    - Delete backups older than the retention window
    - List backups newest first
    - Replace the live file with a named backup
    """

    def __init__(self, engine: AsyncEngine, settings: Optional[Settings] = None):
        self.engine = engine
        self.settings = settings or default_settings
        self._lock = asyncio.Lock()
        self.gate = DatabaseGate()

    @property
    def backups_dir(self) -> Path:
        return Path(self.settings.BACKUPS_DIR)

    @property
    def database_path(self) -> Path:
        return self.settings.sqlite_path

    def _ensure_backups_dir(self) -> Path:
        self.backups_dir.mkdir(parents=True, exist_ok=True)
        return self.backups_dir

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    async def backup_once(self) -> str:
        """
        Take one backup of the live database.

        Returns:
            The backup file name (not the full path)

        Raises:
            SnapshotError: if both the snapshot and the file copy failed
        """
        async with self._lock:
            return await self._backup()

    async def _backup(self) -> str:
        db_path = self.database_path
        if not db_path.exists():
            raise SnapshotError(
                "Database file not found",
                context={"database_path": str(db_path)}
            )

        backups_dir = self._ensure_backups_dir()
        stem = f"{database_basename(db_path)}-{backup_timestamp()}"
        target = unique_backup_path(backups_dir, stem, ".db")
        filename = target.name

        await self.checkpoint()

        snapshot = await best_effort("vacuum_into", lambda: self._vacuum_into(target), logger)
        if not snapshot.ok:
            logger.info(f"Snapshot unavailable, copying {db_path.name} instead")
            try:
                await asyncio.to_thread(shutil.copyfile, db_path, target)
            except OSError as e:
                raise SnapshotError(
                    "Backup failed: snapshot and file copy both failed",
                    context={
                        "database_path": str(db_path),
                        "target": str(target),
                        "snapshot_error": snapshot.error
                    },
                    original_exception=e
                )

        logger.info(f"SQLite backup complete: {filename}")
        return filename

    async def checkpoint(self) -> StepOutcome:
        """Flush the write-ahead log into the main file. Failure is logged and ignored."""
        return await best_effort("wal_checkpoint", self._wal_checkpoint, logger)

    async def _wal_checkpoint(self) -> None:
        async with self.engine.connect() as conn:
            await conn.exec_driver_sql("PRAGMA wal_checkpoint(TRUNCATE)")

    async def _vacuum_into(self, target: Path) -> None:
        escaped = str(target).replace("'", "''")
        async with self.engine.connect() as conn:
            conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
            await conn.exec_driver_sql(f"VACUUM INTO '{escaped}'")

        if not target.exists():
            raise SnapshotError(
                "VACUUM INTO did not produce a file",
                context={"target": str(target)}
            )

    async def backup_logical(self) -> str:
        """
        Export every pipeline table to ``{db-basename}-{timestamp}.json``.

        Returns:
            The backup file name

        Raises:
            SnapshotError: if the tables could not be read or the file written
        """
        async with self._lock:
            backups_dir = self._ensure_backups_dir()
            stem = f"{database_basename(self.database_path)}-{backup_timestamp()}"
            target = unique_backup_path(backups_dir, stem, ".json")

            try:
                export_data = await self._export_tables()
                payload = json.dumps(export_data, indent=2, ensure_ascii=False, default=_json_default)
                await asyncio.to_thread(target.write_text, payload, encoding="utf-8")
            except (SQLAlchemyError, OSError) as e:
                raise SnapshotError(
                    "Logical backup failed",
                    context={"target": str(target)},
                    original_exception=e
                )

        rows = sum(len(records) for records in export_data.values())
        logger.info(f"Logical backup complete: {target.name} ({rows} rows)")
        return target.name

    async def _export_tables(self) -> Dict[str, List[Dict[str, Any]]]:
        export_data = {}
        async with self.engine.connect() as conn:
            for model in LOGICAL_TABLES:
                table = model.__table__
                result = await conn.execute(select(table).order_by(table.c.id))
                export_data[table.name] = [dict(row._mapping) for row in result]
        return export_data

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    async def cleanup_backups(self, now: Optional[float] = None) -> int:
        """
        Delete backups whose modification time is older than the retention window.

        A retention of 0 days deletes every backup older than now.

        Returns:
            Number of files deleted
        """
        backups_dir = self._ensure_backups_dir()
        now = now if now is not None else datetime.now(timezone.utc).timestamp()
        keep_seconds = self.settings.BACKUP_RETENTION_DAYS * SECONDS_PER_DAY

        deleted = 0
        for path in sorted(backups_dir.iterdir()):
            if not path.is_file() or path.suffix not in BACKUP_TYPES:
                continue
            if now - path.stat().st_mtime > keep_seconds:
                path.unlink()
                deleted += 1

        if deleted > 0:
            logger.info(f"Removed {deleted} expired backups")
        return deleted

    async def list_backups(self) -> List[BackupInfo]:
        """All backup artifacts, newest first"""
        backups_dir = self._ensure_backups_dir()

        backups = []
        for path in backups_dir.iterdir():
            if not path.is_file() or path.suffix not in BACKUP_TYPES:
                continue
            stat = path.stat()
            backups.append(BackupInfo(
                file=path.name,
                size=stat.st_size,
                created_at=datetime.fromtimestamp(stat.st_mtime),
                type=BACKUP_TYPES[path.suffix],
            ))

        return sorted(backups, key=lambda b: b.created_at, reverse=True)

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    async def restore_backup(self, filename: str) -> str:
        """
        Replace the live database contents with the named backup.

        ``.db`` backups replace the live file; ``.json`` backups replace the
        rows of every pipeline table inside one transaction. The name is
        validated before anything on disk is touched. The restore waits for
        open request sessions to close and holds off new ones until it is
        done; no backup can run while a restore is in progress.

        Raises:
            InvalidBackupNameError: bad name or path traversal
            BackupNotFoundError: no such backup
            RestoreError: unsupported format, unreadable backup or the swap failed
        """
        source = validate_backup_name(filename, self.backups_dir)

        if source.suffix not in (".db", ".json"):
            raise RestoreError(
                "PostgreSQL dumps cannot be restored into a SQLite database",
                context={"file": filename}
            )

        if not source.exists():
            raise BackupNotFoundError(
                "Backup file does not exist",
                context={"file": filename}
            )

        async with self.gate.exclusive():
            async with self._lock:
                if source.suffix == ".json":
                    await self._restore_logical(source)
                else:
                    await self._restore_file(source)

        logger.info(f"Restore complete: {filename}")
        return filename

    async def _restore_file(self, source: Path) -> None:
        db_path = self.database_path
        tmp = db_path.with_name(db_path.name + ".restore_tmp")

        await self.engine.dispose()

        try:
            await asyncio.to_thread(shutil.copyfile, source, tmp)
            for suffix in ("-wal", "-shm"):
                aux = Path(str(db_path) + suffix)
                if aux.exists():
                    aux.unlink()
            os.replace(tmp, db_path)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise RestoreError(
                "Failed to replace the live database",
                context={"file": source.name, "database_path": str(db_path)},
                original_exception=e
            )

    async def _restore_logical(self, source: Path) -> None:
        try:
            data = json.loads(await asyncio.to_thread(source.read_text, encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise RestoreError(
                "Logical backup is not readable JSON",
                context={"file": source.name},
                original_exception=e
            )
        if not isinstance(data, dict):
            raise RestoreError(
                "Logical backup must map table names to rows",
                context={"file": source.name}
            )

        restored = {}
        try:
            async with self.engine.begin() as conn:
                for model in reversed(LOGICAL_TABLES):
                    await conn.execute(delete(model.__table__))

                for model in LOGICAL_TABLES:
                    table = model.__table__
                    records = data.get(table.name) or []
                    for record in records:
                        await conn.execute(table.insert().values(**decode_logical_row(table, record)))
                    restored[table.name] = len(records)
        except (SQLAlchemyError, ValueError, TypeError) as e:
            raise RestoreError(
                "Logical restore failed; the live data was left unchanged",
                context={"file": source.name},
                original_exception=e
            )

        logger.info(f"Logical restore row counts: {restored}")
