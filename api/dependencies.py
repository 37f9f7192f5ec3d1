"""
FastAPI dependencies.

Services live on ``app.state`` and are created by the application lifespan;
routes receive them through these providers.
"""

from typing import AsyncGenerator, Optional

from fastapi import Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from pipeline.backup import BackupEngine
from pipeline.migration import MigrationOrchestrator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session for the current request.

    The session holds a shared slot on the backup engine's gate, so a
    restore never swaps the database under an open request.
    """
    async with request.app.state.backup_engine.gate.shared():
        async with request.app.state.session_maker() as session:
            yield session


def get_backup_engine(request: Request) -> BackupEngine:
    return request.app.state.backup_engine


def get_orchestrator(request: Request) -> MigrationOrchestrator:
    return request.app.state.orchestrator


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


async def require_admin(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> None:
    """Admin guard. Open when API_KEY is not configured."""
    api_key = request.app.state.settings.API_KEY
    if api_key and x_api_key != api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key"
        )
