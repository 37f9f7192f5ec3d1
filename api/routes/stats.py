"""
Statistics endpoints: rollup listing, integrity audit, recalculation
"""
from datetime import date, timedelta
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from api.dependencies import get_db, get_settings, get_request_id, require_admin
from core.config import Settings
from models.daily_stat import DailyStat
from pipeline.aggregator import StatsAggregator, date_key
from pipeline.verifier import IntegrityVerifier
from schemas.api import (
    DailyStatResponse,
    IntegrityReport,
    RecalculateRequest,
    RecalculateResponse,
    WordCountResult,
)
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin/stats", tags=["Statistics"], dependencies=[Depends(require_admin)])


@router.get("/daily", response_model=List[DailyStatResponse])
async def get_daily_stats(
    days: int = Query(30, ge=0, le=3650, description="Trailing days to return"),
    db: AsyncSession = Depends(get_db)
):
    """Stored rollup rows for the last ``days`` days, oldest first."""
    since = date_key(date.today() - timedelta(days=days))
    result = await db.execute(
        select(DailyStat).where(DailyStat.date >= since).order_by(DailyStat.date)
    )
    return result.scalars().all()


@router.post("/verify", response_model=IntegrityReport)
async def verify_stats(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id)
):
    """
    Read-only audit of yesterday's page views and of stale word counts.

    Data mismatches are reported in the body; only a database failure is an error.
    """
    logger.info(f"[{request_id}] POST /admin/stats/verify")
    verifier = IntegrityVerifier(db, settings.INTEGRITY_ZERO_WORDCOUNT_THRESHOLD)
    return await verifier.verify()


@router.post("/recalculate", response_model=RecalculateResponse)
async def recalculate_stats(
    body: RecalculateRequest,
    db: AsyncSession = Depends(get_db),
    request_id: str = Depends(get_request_id)
):
    """
    Recompute word counts (``words``), daily rollups (``daily``) or both (``all``).
    """
    logger.info(f"[{request_id}] POST /admin/stats/recalculate type={body.type} days={body.days}")
    aggregator = StatsAggregator(db)
    response = RecalculateResponse(type=body.type, request_id=request_id)

    if body.type in ("words", "all"):
        response.word_counts = WordCountResult(**await aggregator.recalculate_post_word_counts())

    if body.type in ("daily", "all"):
        response.days_processed = await aggregator.aggregate_daily_stats(body.days)

    return response
