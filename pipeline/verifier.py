"""
Read-only audit of the rollup table and stored word counts
"""

from datetime import date, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
import logging

from pipeline.aggregator import date_key, day_bounds
from models.content import Post, VisitLog
from models.daily_stat import DailyStat
from schemas.api import IntegrityReport
from core.exceptions import IntegrityCheckError

logger = logging.getLogger(__name__)


class IntegrityVerifier:
    """
    Spot-check stored statistics against the raw tables.

    Checks:
    - Yesterday's stored page views against a fresh count of visit logs.
      A mismatch makes the report invalid.
    - Posts whose word count is 0 although their body has whitespace
      (a weak sign of real content). Above the threshold this is reported
      as an informational issue; it does not make the report invalid.

    Nothing is repaired here.
    """

    def __init__(self, db_session: AsyncSession, zero_word_count_threshold: int = 5):
        self.db = db_session
        self.zero_word_count_threshold = zero_word_count_threshold

    async def verify(self, today: Optional[date] = None) -> IntegrityReport:
        """
        Run every check and return the accumulated report.

        Raises:
            IntegrityCheckError: only when the database cannot be queried
        """
        today = today or date.today()
        yesterday = today - timedelta(days=1)
        report = IntegrityReport(valid=True, issues=[], checked_date=date_key(yesterday))

        try:
            await self._check_page_views(yesterday, report)
            await self._check_word_counts(report)
        except Exception as e:
            logger.error(f"Integrity verification could not query the database: {str(e)}")
            raise IntegrityCheckError(
                "Integrity verification failed",
                context={"checked_date": report.checked_date},
                original_exception=e
            )

        logger.info(f"Integrity check finished: valid={report.valid}, issues={len(report.issues)}")
        return report

    async def _check_page_views(self, day: date, report: IntegrityReport) -> None:
        key = date_key(day)
        result = await self.db.execute(select(DailyStat).where(DailyStat.date == key))
        stat = result.scalar_one_or_none()
        if stat is None:
            return

        start, end = day_bounds(day)
        actual = await self.db.scalar(
            select(func.count()).select_from(VisitLog).where(
                VisitLog.created_at >= start,
                VisitLog.created_at <= end
            )
        )

        if stat.pv != actual:
            report.valid = False
            report.issues.append(f"PV mismatch for {key}: stored {stat.pv}, actual {actual}")

    async def _check_word_counts(self, report: IntegrityReport) -> None:
        result = await self.db.execute(select(Post.content).where(Post.word_count == 0))
        suspicious = sum(
            1 for (content,) in result.all()
            if content and any(ch.isspace() for ch in content)
        )

        if suspicious > self.zero_word_count_threshold:
            report.issues.append(
                f"Found {suspicious} posts with 0 word count but likely content."
            )
