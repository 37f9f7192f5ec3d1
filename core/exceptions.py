"""
Custom exceptions for the statistics and backup pipeline with structured error context.

Each exception carries context information for debugging and for the
structured error payloads returned by the admin API.

Exception Hierarchy:
    BlogOpsException (base)
    ├── ConfigurationError
    ├── AggregationError
    ├── IntegrityCheckError
    ├── BackupError
    │   ├── SnapshotError
    │   ├── InvalidBackupNameError
    │   ├── BackupNotFoundError
    │   └── RestoreError
    └── MigrationError
        ├── BackupRequiredError
        ├── MigrationApplyError
        └── MigrationForbiddenError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class BlogOpsException(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (file names, dates, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


class ConfigurationError(BlogOpsException):
    """Invalid or unsupported configuration value."""
    pass


# ============================================================================
# Statistics Errors
# ============================================================================

class AggregationError(BlogOpsException):
    """
    Exception raised when a rollup or word-count batch cannot complete.

    Context should include:
        - operation: "aggregate_daily_stats" or "recalculate_post_word_counts"
        - days_to_look_back: window size (for aggregation)
    """
    pass


class IntegrityCheckError(BlogOpsException):
    """
    Infrastructure failure during integrity verification.

    Data mismatches are never raised; they are reported in the
    verification result. This is only for an unreachable store.
    """
    pass


# ============================================================================
# Backup Errors
# ============================================================================

class BackupError(BlogOpsException):
    """Base exception for backup and restore failures."""
    pass


class SnapshotError(BackupError):
    """
    Both the atomic snapshot and the raw file copy failed.

    Context should include:
        - database_path: live database file
        - target: intended backup file
    """
    pass


class InvalidBackupNameError(BackupError):
    """Backup filename failed the allow-list or escaped the backups directory."""
    pass


class BackupNotFoundError(BackupError):
    """Requested backup file does not exist."""
    pass


class RestoreError(BackupError):
    """Restore could not replace the live database."""
    pass


# ============================================================================
# Migration Errors
# ============================================================================

class MigrationError(BlogOpsException):
    """Base exception for schema migration failures."""
    pass


class BackupRequiredError(MigrationError):
    """The mandatory pre-migration backup failed; the schema was not touched."""

    def __init__(
        self,
        message: str = "Backup required before migration",
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message, context, original_exception)


class MigrationApplyError(MigrationError):
    """
    The migration tool failed to create or apply a migration.

    Context should include:
        - migration: migration name
        - backup_file: backup taken before the attempt
    """
    pass


class MigrationForbiddenError(MigrationError):
    """Operation not allowed in the current environment (e.g. reset in production)."""
    pass
