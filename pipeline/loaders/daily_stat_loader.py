"""
Load daily rollups into SQLite with upsert logic (idempotency)
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects.sqlite import insert
from models.daily_stat import DailyStat
import logging

logger = logging.getLogger(__name__)


class DailyStatLoader:
    """
    Write DailyStat rows with INSERT ... ON CONFLICT(date) DO UPDATE.

    Ensures:
    - At most one row per date
    - Counters are replaced, never incremented, so reruns are idempotent
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def upsert(
        self,
        date_key: str,
        pv: int,
        uv: int,
        posts: int,
        comments: int,
        now: Optional[datetime] = None
    ) -> None:
        """Insert or fully replace the rollup row for ``date_key``. Does not commit."""
        now = now or datetime.now()

        stmt = insert(DailyStat).values(
            date=date_key,
            pv=pv,
            uv=uv,
            posts=posts,
            comments=comments,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["date"],
            set_={
                "pv": stmt.excluded.pv,
                "uv": stmt.excluded.uv,
                "posts": stmt.excluded.posts,
                "comments": stmt.excluded.comments,
                "updated_at": stmt.excluded.updated_at,
            }
        )

        await self.db.execute(stmt)
        logger.debug(f"Upserted daily stat {date_key}: pv={pv} uv={uv} posts={posts} comments={comments}")
