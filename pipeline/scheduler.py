import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import Settings, settings as default_settings
from core.outcome import StepOutcome, best_effort
from pipeline.backup import BackupEngine

logger = logging.getLogger(__name__)


def seconds_until_next(hour: int, minute: int, now: Optional[datetime] = None) -> float:
    """Seconds until the next HH:MM (today if still upcoming, else tomorrow)"""
    now = now or datetime.now()
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class BackupScheduler:
    def __init__(self, backup_engine: BackupEngine, settings: Optional[Settings] = None):
        self.backup_engine = backup_engine
        self.settings = settings or default_settings
        self.scheduler = AsyncIOScheduler()

    @property
    def schedule(self) -> Tuple[int, int]:
        return self.settings.backup_schedule

    @property
    def running(self) -> bool:
        return self.scheduler.running

    async def run_cycle(self) -> StepOutcome:
        """One backup + retention cycle. Failures are logged, never raised."""
        logger.info("Scheduler: Starting backup cycle")
        outcome = await best_effort("backup_cycle", self._backup_and_cleanup, logger)
        if outcome.ok:
            logger.info(f"Scheduler: Backup cycle complete ({outcome.value})")
        else:
            logger.error(f"Scheduler: Backup cycle failed - {outcome.error}")
        return outcome

    async def _backup_and_cleanup(self) -> str:
        filename = await self.backup_engine.backup_once()
        await self.backup_engine.cleanup_backups()
        return filename

    def next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job("daily_backup")
        return job.next_run_time if job else None

    def start(self, now: Optional[datetime] = None):
        """Start the scheduler"""
        hour, minute = self.schedule
        now = now or datetime.now()
        first_run = now + timedelta(seconds=seconds_until_next(hour, minute, now))

        self.scheduler.add_job(
            self.run_cycle,
            trigger=IntervalTrigger(days=1, start_date=first_run),
            id="daily_backup",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"Backup Scheduler started, daily at {hour:02d}:{minute:02d} (next run {first_run:%Y-%m-%d %H:%M})")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Backup Scheduler stopped")
