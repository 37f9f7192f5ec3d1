"""
Backup endpoints: list, create, restore
"""

from typing import List, Literal
from fastapi import APIRouter, Depends, Query
from api.dependencies import get_backup_engine, get_request_id, require_admin
from pipeline.backup import BackupEngine
from schemas.api import BackupInfo, BackupCreatedResponse, RestoreRequest, RestoreResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Backups"], dependencies=[Depends(require_admin)])


@router.get("/backups", response_model=List[BackupInfo])
async def list_backups(backup_engine: BackupEngine = Depends(get_backup_engine)):
    """Backup artifacts, newest first"""
    return await backup_engine.list_backups()


@router.post("/backup", response_model=BackupCreatedResponse, status_code=201)
async def create_backup(
    backup_type: Literal["sqlite", "logical"] = Query("sqlite", alias="type"),
    backup_engine: BackupEngine = Depends(get_backup_engine),
    request_id: str = Depends(get_request_id)
):
    """Take a backup now: a SQLite snapshot by default, or a logical JSON export"""
    logger.info(f"[{request_id}] POST /admin/backup type={backup_type}")
    if backup_type == "logical":
        filename = await backup_engine.backup_logical()
    else:
        filename = await backup_engine.backup_once()
    return BackupCreatedResponse(file=filename)


@router.post("/restore", response_model=RestoreResponse)
async def restore_backup(
    body: RestoreRequest,
    backup_engine: BackupEngine = Depends(get_backup_engine),
    request_id: str = Depends(get_request_id)
):
    """
    Replace the live database with a named backup (.db file swap or
    .json logical import).

    The name must match ``^[A-Za-z0-9._-]+\\.(db|sql|json)$``; anything else,
    including path traversal, is rejected with 400 before the disk is touched.
    """
    logger.warning(f"[{request_id}] POST /admin/restore file={body.file}")
    restored = await backup_engine.restore_backup(body.file)
    return RestoreResponse(restored=restored)
