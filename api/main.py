"""
FastAPI application initialization
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.middleware import RequestContextMiddleware
from api.routes import backups, health, migrations, stats
from core.config import Settings, settings as default_settings
from core.database import create_engine_from_settings, create_session_maker
from core.exceptions import (
    BlogOpsException,
    InvalidBackupNameError,
    BackupNotFoundError,
    MigrationForbiddenError,
)
from core.logging import setup_logging
from pipeline.backup import BackupEngine
from pipeline.migration import MigrationOrchestrator
from pipeline.migration_tool import AlembicMigrationTool
from pipeline.scheduler import BackupScheduler
from schemas.api import ErrorResponse
import logging

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    InvalidBackupNameError: 400,
    BackupNotFoundError: 404,
    MigrationForbiddenError: 403,
}


def status_code_for(exc: BlogOpsException) -> int:
    for exc_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return code
    return 500


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings)
        logger.info("Starting Blog Ops API")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Database: {settings.sqlite_path}")

        engine = create_engine_from_settings(settings)
        backup_engine = BackupEngine(engine, settings)

        app.state.settings = settings
        app.state.engine = engine
        app.state.session_maker = create_session_maker(engine)
        app.state.backup_engine = backup_engine
        app.state.orchestrator = MigrationOrchestrator(backup_engine, AlembicMigrationTool(settings), settings)
        app.state.scheduler = None

        if settings.BACKUP_SCHEDULER_ENABLED:
            app.state.scheduler = BackupScheduler(backup_engine, settings)
            app.state.scheduler.start()

        yield

        logger.info("Shutting down Blog Ops API")
        if app.state.scheduler is not None:
            app.state.scheduler.stop()
        await engine.dispose()

    app = FastAPI(
        title="Blog Ops API",
        description="Blog statistics, SQLite backups and schema migrations",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(BlogOpsException)
    async def blog_ops_exception_handler(request: Request, exc: BlogOpsException):
        code = status_code_for(exc)
        request_id = getattr(request.state, "request_id", None)

        if code >= 500:
            logger.error(f"[{request_id}] {exc}", extra={"error_context": exc.to_dict()})
        else:
            logger.warning(f"[{request_id}] {exc}")

        body = ErrorResponse(
            error=type(exc).__name__,
            message=exc.message,
            request_id=request_id,
            context=exc.context
        )
        return JSONResponse(status_code=code, content=body.model_dump(mode="json"))

    app.include_router(health.router)
    app.include_router(stats.router)
    app.include_router(backups.router)
    app.include_router(migrations.router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Blog Ops API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "stats": "/admin/stats",
                "backups": "/admin/backups",
                "migrations": "/admin/migrations"
            }
        }

    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run("api.main:app", host=default_settings.API_HOST, port=default_settings.API_PORT)


if __name__ == "__main__":
    run()
