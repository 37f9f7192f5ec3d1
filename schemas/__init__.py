"""
Pydantic schemas for data validation and serialization.

Schemas:
    api: API endpoint request/response schemas
    migration: Migration history record written to the history directory

Usage:
    from schemas.api import IntegrityReport, BackupInfo
    from schemas.migration import MigrationRecord
"""

__all__ = [
    "HealthCheckResponse",
    "ErrorResponse",
    "DailyStatResponse",
    "IntegrityReport",
    "RecalculateRequest",
    "RecalculateResponse",
    "WordCountResult",
    "BackupInfo",
    "RestoreRequest",
    "MigrationRecord",
    "MigrationResult",
]
