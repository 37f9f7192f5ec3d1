# ============================================================================
# File: pipeline/aggregator.py
# Description: Daily rollups and word-count recomputation
# ============================================================================
"""
Statistics aggregator - rebuilds DailyStat rows and post word counts.

This module provides:
- Word-count recomputation for every post, with per-post failure isolation
- Daily rollups (page views, unique visitors, published posts, comments)
  over a trailing window of local calendar days
- Idempotent upserts: rerunning a window over unchanged logs yields the
  same counters
"""

from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
import logging

from pipeline.transformers.word_count import count_words
from pipeline.loaders.daily_stat_loader import DailyStatLoader
from models.content import Post, Comment, VisitLog
from core.exceptions import AggregationError

logger = logging.getLogger(__name__)


def date_key(day: date) -> str:
    """Rollup key for a local calendar day"""
    return day.strftime("%Y-%m-%d")


def day_bounds(day: date):
    """Inclusive [00:00:00, 23:59:59.999999] bounds of a local day"""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


class StatsAggregator:
    """
    Batch jobs over the blog tables.

    Responsibilities:
    - Recompute Post.word_count from the current body
    - Rebuild DailyStat rows for a trailing window, oldest to newest
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def recalculate_post_word_counts(self) -> Dict[str, Any]:
        """
        Recompute and store the word count of every post, published or not.

        Each post is written and committed on its own; a failing post is
        rolled back and reported without stopping the batch.

        Returns:
            Dictionary with run statistics:
            - status: "success" or "partial_success"
            - posts_updated: number of posts written
            - posts_failed: number of posts that could not be written
            - updated_post_ids: ids of the posts written
            - error_details: one entry per failed post
        """
        logger.info("Starting word count recalculation")

        try:
            result = await self.db.execute(select(Post.id, Post.content).order_by(Post.id))
            rows = result.all()
        except Exception as e:
            raise AggregationError(
                "Failed to read posts for word count recalculation",
                context={"operation": "recalculate_post_word_counts"},
                original_exception=e
            )

        updated_ids: List[int] = []
        error_details: List[Dict[str, Any]] = []

        for post_id, content in rows:
            try:
                await self.db.execute(
                    update(Post)
                    .where(Post.id == post_id)
                    .values(word_count=count_words(content), updated_at=Post.updated_at)
                )
                await self.db.commit()
                updated_ids.append(post_id)

            except Exception as e:
                await self.db.rollback()

                error_detail = {
                    "post_id": post_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e)
                }
                error_details.append(error_detail)

                logger.error(
                    f"Word count update failed for post_id={post_id}: {str(e)}",
                    extra={"error_context": error_detail}
                )

        logger.info(
            f"Updated word counts for {len(updated_ids)} posts "
            f"({len(error_details)} failed)"
        )

        return {
            "status": "success" if not error_details else "partial_success",
            "posts_updated": len(updated_ids),
            "posts_failed": len(error_details),
            "updated_post_ids": updated_ids,
            "error_details": error_details,
        }

    async def aggregate_daily_stats(
        self,
        days_to_look_back: int = 365,
        today: Optional[date] = None
    ) -> int:
        """
        Rebuild DailyStat rows for ``days_to_look_back + 1`` days ending today.

        The whole window is fetched once and bucketed by local calendar day;
        rows are then upserted oldest to newest and committed together.

        Args:
            days_to_look_back: Number of days before today to include
            today: Anchor day (defaults to the local current date)

        Returns:
            Number of days processed, always ``days_to_look_back + 1``

        Raises:
            AggregationError: If reading the logs or writing rollups fails
        """
        if days_to_look_back < 0:
            raise AggregationError(
                "days_to_look_back must be >= 0",
                context={"days_to_look_back": days_to_look_back}
            )

        today = today or date.today()
        start_day = today - timedelta(days=days_to_look_back)
        window_start, _ = day_bounds(start_day)
        _, window_end = day_bounds(today)

        logger.info(
            f"Starting daily stats aggregation for last {days_to_look_back} days "
            f"({date_key(start_day)} .. {date_key(today)})"
        )

        try:
            # --------------------------------------------------
            # PHASE 1: FETCH RAW EVENTS FOR THE WINDOW
            # --------------------------------------------------
            visits_result = await self.db.execute(
                select(VisitLog.created_at, VisitLog.ip).where(
                    VisitLog.created_at >= window_start,
                    VisitLog.created_at <= window_end
                )
            )
            posts_result = await self.db.execute(
                select(Post.created_at).where(
                    Post.published.is_(True),
                    Post.created_at >= window_start,
                    Post.created_at <= window_end
                )
            )
            comments_result = await self.db.execute(
                select(Comment.created_at).where(
                    Comment.created_at >= window_start,
                    Comment.created_at <= window_end
                )
            )

            # --------------------------------------------------
            # PHASE 2: BUCKET BY LOCAL DAY
            # --------------------------------------------------
            page_views: Dict[date, int] = defaultdict(int)
            visitors: Dict[date, Set[str]] = defaultdict(set)
            for created_at, ip in visits_result.all():
                day = created_at.date()
                page_views[day] += 1
                if ip:
                    visitors[day].add(ip)

            published: Dict[date, int] = defaultdict(int)
            for (created_at,) in posts_result.all():
                published[created_at.date()] += 1

            comments: Dict[date, int] = defaultdict(int)
            for (created_at,) in comments_result.all():
                comments[created_at.date()] += 1

            # --------------------------------------------------
            # PHASE 3: UPSERT OLDEST TO NEWEST
            # --------------------------------------------------
            loader = DailyStatLoader(self.db)
            now = datetime.now()
            processed = 0

            for offset in range(days_to_look_back + 1):
                day = start_day + timedelta(days=offset)
                await loader.upsert(
                    date_key(day),
                    pv=page_views.get(day, 0),
                    uv=len(visitors.get(day, ())),
                    posts=published.get(day, 0),
                    comments=comments.get(day, 0),
                    now=now,
                )
                processed += 1

            await self.db.commit()

        except Exception as e:
            logger.error(f"Daily stats aggregation failed: {str(e)}")
            await self.db.rollback()

            raise AggregationError(
                "Failed to aggregate daily stats",
                context={
                    "operation": "aggregate_daily_stats",
                    "days_to_look_back": days_to_look_back,
                    "today": date_key(today)
                },
                original_exception=e
            )

        logger.info(f"Aggregated stats for {processed} days")
        return processed
