import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from core.exceptions import SnapshotError
from pipeline.scheduler import BackupScheduler, seconds_until_next


def make_backup_engine(backup_side_effect=None):
    engine = MagicMock()
    engine.backup_once = AsyncMock(return_value="blog-20240101040000.db", side_effect=backup_side_effect)
    engine.cleanup_backups = AsyncMock(return_value=0)
    return engine


def test_seconds_until_next_later_today():
    assert seconds_until_next(4, 0, now=datetime(2024, 1, 1, 3, 0)) == 3600


def test_seconds_until_next_rolls_to_tomorrow():
    assert seconds_until_next(4, 0, now=datetime(2024, 1, 1, 5, 0)) == 23 * 3600
    # Exactly at the scheduled minute waits a full day
    assert seconds_until_next(4, 0, now=datetime(2024, 1, 1, 4, 0)) == 24 * 3600


def test_scheduler_initialization(test_settings):
    scheduler = BackupScheduler(make_backup_engine(), test_settings)
    assert scheduler.scheduler is not None
    assert scheduler.schedule == (4, 0)
    assert not scheduler.running


@pytest.mark.asyncio
async def test_run_cycle_backs_up_then_cleans(test_settings):
    backup_engine = make_backup_engine()
    scheduler = BackupScheduler(backup_engine, test_settings)

    outcome = await scheduler.run_cycle()

    assert outcome.ok
    assert outcome.value == "blog-20240101040000.db"
    backup_engine.backup_once.assert_awaited_once()
    backup_engine.cleanup_backups.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_cycle_failure_is_swallowed_and_logged(test_settings, caplog):
    backup_engine = make_backup_engine(backup_side_effect=SnapshotError("disk full"))
    scheduler = BackupScheduler(backup_engine, test_settings)

    outcome = await scheduler.run_cycle()

    assert not outcome.ok
    assert "SnapshotError" in outcome.error
    assert "Backup cycle failed" in caplog.text
    backup_engine.cleanup_backups.assert_not_awaited()


@pytest.mark.asyncio
async def test_start_schedules_daily_job_at_configured_time(test_settings):
    settings = test_settings.model_copy(update={"BACKUP_SCHEDULE": "23:30"})
    scheduler = BackupScheduler(make_backup_engine(), settings)

    scheduler.start()
    try:
        assert scheduler.running
        job = scheduler.scheduler.get_job("daily_backup")
        assert job is not None
        next_run = scheduler.next_run_time()
        assert (next_run.hour, next_run.minute) == (23, 30)
    finally:
        scheduler.stop()
