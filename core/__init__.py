"""
Core utilities and configuration for the blog statistics and backup pipeline.

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory construction
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration
    outcome: Tagged result for best-effort (non-fatal) steps

Usage:
    from core.config import settings
    from core.database import create_engine_from_settings, create_session_maker
    from core.exceptions import BackupError, MigrationApplyError
    from core.logging import setup_logging
"""

from core.config import settings
from core.database import create_engine_from_settings, create_session_maker, init_models
from core.exceptions import (
    BlogOpsException,
    ConfigurationError,
    AggregationError,
    IntegrityCheckError,
    BackupError,
    SnapshotError,
    InvalidBackupNameError,
    BackupNotFoundError,
    RestoreError,
    MigrationError,
    BackupRequiredError,
    MigrationApplyError,
    MigrationForbiddenError,
)
from core.logging import setup_logging
from core.outcome import StepOutcome, best_effort

__all__ = [
    "settings",
    "create_engine_from_settings",
    "create_session_maker",
    "init_models",
    "setup_logging",
    "StepOutcome",
    "best_effort",
    # Exceptions
    "BlogOpsException",
    "ConfigurationError",
    "AggregationError",
    "IntegrityCheckError",
    "BackupError",
    "SnapshotError",
    "InvalidBackupNameError",
    "BackupNotFoundError",
    "RestoreError",
    "MigrationError",
    "BackupRequiredError",
    "MigrationApplyError",
    "MigrationForbiddenError",
]
