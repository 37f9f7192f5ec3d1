"""
Health check endpoint with database and backup scheduler status
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db, get_backup_engine
from pipeline.backup import BackupEngine
from schemas.api import HealthCheckResponse
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
    backup_engine: BackupEngine = Depends(get_backup_engine)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Backup scheduler status and next run
    - Number of backups on disk
    """

    db_connected = False
    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    backups_count = 0
    try:
        backups_count = len(await backup_engine.list_backups())
    except OSError as e:
        logger.error(f"Failed to list backups: {str(e)}")

    scheduler = request.app.state.scheduler
    scheduler_running = scheduler is not None and scheduler.running

    if not db_connected:
        status = "unhealthy"
    elif request.app.state.settings.BACKUP_SCHEDULER_ENABLED and not scheduler_running:
        status = "degraded"
    else:
        status = "healthy"

    return HealthCheckResponse(
        status=status,
        timestamp=datetime.now(),
        database_connected=db_connected,
        scheduler_running=scheduler_running,
        next_backup_at=scheduler.next_run_time() if scheduler_running else None,
        backups_count=backups_count
    )
