"""
Integration tests for backup-guarded migrations and the history log
"""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from core.exceptions import (
    BackupRequiredError,
    MigrationApplyError,
    MigrationForbiddenError,
    SnapshotError,
)
from models import Post
from models.base import MigrationStatus
from pipeline.migration import MigrationOrchestrator, migration_name


def make_tool(create_side_effect=None, diff_side_effect=None):
    tool = MagicMock()
    tool.create_and_apply = AsyncMock(side_effect=create_side_effect)
    tool.diff = AsyncMock(return_value=[], side_effect=diff_side_effect)
    tool.deploy = AsyncMock()
    tool.reset = AsyncMock()
    return tool


@pytest.fixture
def tool():
    return make_tool()


@pytest.fixture
def orchestrator(backup_engine, tool, test_settings):
    return MigrationOrchestrator(backup_engine, tool, test_settings)


@pytest.mark.parametrize("raw,expected", [
    ("add_tags", "add_tags"),
    ("add tags!", "add_tags"),
    ("  ../evil  ", "evil"),
])
def test_migration_name_sanitized(raw, expected):
    assert migration_name(raw) == expected


def test_migration_name_generated_when_missing():
    assert migration_name(None).startswith("migration_")
    assert migration_name("!!!").startswith("migration_")


@pytest.mark.asyncio
async def test_safe_migrate_success(orchestrator, tool, db_session, test_settings):
    db_session.add(Post(title="p", content="x"))
    await db_session.commit()

    result = await orchestrator.safe_migrate("add_tags")

    assert result.success is True
    assert result.migration == "add_tags"
    assert (test_settings.BACKUPS_DIR / result.backup).exists()
    tool.create_and_apply.assert_awaited_once_with("add_tags")

    history = await orchestrator.get_migration_history()
    assert len(history) == 1
    assert history[0].status == MigrationStatus.SUCCESS.value
    assert history[0].backup_file == result.backup
    assert history[0].error is None


@pytest.mark.asyncio
async def test_history_record_json_shape(orchestrator, db_session, test_settings):
    db_session.add(Post(title="p", content="x"))
    await db_session.commit()

    await orchestrator.safe_migrate("add_tags")

    files = list(test_settings.MIGRATION_HISTORY_DIR.glob("add_tags-*.json"))
    assert len(files) == 1
    record = json.loads(files[0].read_text())
    assert set(record) == {"name", "backupFile", "status", "error", "timestamp", "database"}
    assert record["database"] == "configured"
    assert record["status"] == "success"


@pytest.mark.asyncio
async def test_apply_failure_records_and_preserves_backup(backup_engine, test_settings, db_session, test_engine):
    db_session.add(Post(title="p", content="x"))
    await db_session.commit()
    tool = make_tool(create_side_effect=RuntimeError("table posts already exists"))
    orchestrator = MigrationOrchestrator(backup_engine, tool, test_settings)

    with pytest.raises(MigrationApplyError) as exc_info:
        await orchestrator.safe_migrate("broken")

    assert isinstance(exc_info.value.original_exception, RuntimeError)

    history = await orchestrator.get_migration_history()
    assert len(history) == 1
    record = history[0]
    assert record.status == "failed"
    assert record.error == "table posts already exists"
    assert (test_settings.BACKUPS_DIR / record.backup_file).exists()

    # The referenced backup is restorable
    assert await backup_engine.restore_backup(record.backup_file) == record.backup_file


@pytest.mark.asyncio
async def test_backup_failure_blocks_migration(test_settings, tool):
    backup_engine = MagicMock()
    backup_engine.backup_once = AsyncMock(side_effect=SnapshotError("disk full"))
    orchestrator = MigrationOrchestrator(backup_engine, tool, test_settings)

    with pytest.raises(BackupRequiredError) as exc_info:
        await orchestrator.safe_migrate("add_tags")

    assert exc_info.value.message == "Backup required before migration"
    tool.diff.assert_not_awaited()
    tool.create_and_apply.assert_not_awaited()
    assert await orchestrator.get_migration_history() == []


@pytest.mark.asyncio
async def test_diff_failure_is_not_fatal(backup_engine, test_settings, db_session):
    db_session.add(Post(title="p", content="x"))
    await db_session.commit()
    tool = make_tool(diff_side_effect=RuntimeError("diff unavailable"))
    orchestrator = MigrationOrchestrator(backup_engine, tool, test_settings)

    result = await orchestrator.safe_migrate("add_tags")

    assert result.success is True
    tool.create_and_apply.assert_awaited_once()


@pytest.mark.asyncio
async def test_retry_with_same_name_keeps_both_records(orchestrator):
    await orchestrator.record_migration("add_tags", "a.db", MigrationStatus.FAILED, "boom")
    await orchestrator.record_migration("add_tags", "b.db", MigrationStatus.SUCCESS)

    history = await orchestrator.get_migration_history()

    assert len(history) == 2
    assert {r.backup_file for r in history} == {"a.db", "b.db"}


@pytest.mark.asyncio
async def test_history_sorted_newest_first(orchestrator, test_settings):
    history_dir = test_settings.MIGRATION_HISTORY_DIR
    history_dir.mkdir(parents=True)
    for name, stamp in [
        ("first", "2024-01-01T00:00:00+00:00"),
        ("third", "2024-03-01T00:00:00+00:00"),
        ("second", "2024-02-01T00:00:00+00:00"),
    ]:
        (history_dir / f"{name}.json").write_text(json.dumps({
            "name": name,
            "backupFile": f"{name}.db",
            "status": "success",
            "error": None,
            "timestamp": stamp,
            "database": "configured",
        }))
    (history_dir / "corrupt.json").write_text("{not json")

    history = await orchestrator.get_migration_history()

    assert [r.name for r in history] == ["third", "second", "first"]


@pytest.mark.asyncio
async def test_history_empty_without_directory(orchestrator):
    assert await orchestrator.get_migration_history() == []


@pytest.mark.asyncio
async def test_deploy_backs_up_then_applies(orchestrator, tool, db_session, test_settings):
    db_session.add(Post(title="p", content="x"))
    await db_session.commit()

    backup_file = await orchestrator.deploy()

    assert (test_settings.BACKUPS_DIR / backup_file).exists()
    tool.deploy.assert_awaited_once()


@pytest.mark.asyncio
async def test_apply_migration_failure_raises(orchestrator, tool):
    tool.deploy.side_effect = RuntimeError("no such revision")

    with pytest.raises(MigrationApplyError):
        await orchestrator.apply_migration()


@pytest.mark.asyncio
async def test_reset_forbidden_in_production(backup_engine, tool, test_settings):
    settings = test_settings.model_copy(update={"ENVIRONMENT": "production"})
    backup_engine.backup_once = AsyncMock()
    orchestrator = MigrationOrchestrator(backup_engine, tool, settings)

    with pytest.raises(MigrationForbiddenError):
        await orchestrator.reset_database()

    backup_engine.backup_once.assert_not_awaited()
    tool.reset.assert_not_awaited()


@pytest.mark.asyncio
async def test_reset_backs_up_first(orchestrator, tool, db_session, test_settings):
    db_session.add(Post(title="p", content="x"))
    await db_session.commit()

    backup_file = await orchestrator.reset_database()

    assert (test_settings.BACKUPS_DIR / backup_file).exists()
    tool.reset.assert_awaited_once()


@pytest.mark.asyncio
async def test_apply_error_survives_history_write_failure(backup_engine, test_settings, db_session):
    db_session.add(Post(title="p", content="x"))
    await db_session.commit()
    tool = make_tool(create_side_effect=RuntimeError("table posts already exists"))
    orchestrator = MigrationOrchestrator(backup_engine, tool, test_settings)
    orchestrator.record_migration = AsyncMock(side_effect=OSError("No space left on device"))

    with pytest.raises(MigrationApplyError) as exc_info:
        await orchestrator.safe_migrate("broken")

    assert isinstance(exc_info.value.original_exception, RuntimeError)
    assert exc_info.value.context["backup_file"].endswith(".db")
    orchestrator.record_migration.assert_awaited_once()
