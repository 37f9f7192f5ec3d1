"""
Migration endpoints: history, create (development), deploy (production)
"""

from typing import List
from fastapi import APIRouter, Depends
from api.dependencies import get_orchestrator, get_request_id, require_admin
from pipeline.migration import MigrationOrchestrator
from schemas.api import MigrationCreateRequest, DeployResponse
from schemas.migration import MigrationRecord, MigrationResult
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin/migrations", tags=["Migrations"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[MigrationRecord], response_model_by_alias=True)
async def migration_history(orchestrator: MigrationOrchestrator = Depends(get_orchestrator)):
    """Every recorded migration attempt, newest first"""
    return await orchestrator.get_migration_history()


@router.post("", response_model=MigrationResult, status_code=201)
async def create_migration(
    body: MigrationCreateRequest,
    orchestrator: MigrationOrchestrator = Depends(get_orchestrator),
    request_id: str = Depends(get_request_id)
):
    """Back up, then generate and apply a migration from the current models."""
    logger.info(f"[{request_id}] POST /admin/migrations name={body.name}")
    return await orchestrator.safe_migrate(body.name)


@router.post("/deploy", response_model=DeployResponse)
async def deploy_migrations(
    orchestrator: MigrationOrchestrator = Depends(get_orchestrator),
    request_id: str = Depends(get_request_id)
):
    """Back up, then apply pending migrations without generating new ones."""
    logger.info(f"[{request_id}] POST /admin/migrations/deploy")
    backup_file = await orchestrator.deploy()
    return DeployResponse(success=True, backup=backup_file)
