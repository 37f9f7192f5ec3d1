"""
Pydantic schema for the migration history record.

One JSON document is written per migration attempt:
    {name, backupFile, status, error, timestamp, database}
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from models.base import MigrationStatus


class MigrationRecord(BaseModel):
    """Durable record of a single migration attempt"""

    name: str = Field(..., min_length=1)
    backup_file: Optional[str] = Field(None, alias="backupFile")
    status: MigrationStatus
    error: Optional[str] = None
    timestamp: datetime
    database: str = "not-configured"

    class Config:
        populate_by_name = True
        use_enum_values = True

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class MigrationResult(BaseModel):
    """Returned by a successful safe migration"""
    success: bool = True
    migration: str
    backup: str
