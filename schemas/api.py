"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from models.base import BackupType


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.now)
    database_connected: bool
    scheduler_running: bool = False
    next_backup_at: Optional[datetime] = None
    backups_count: int = 0


class ErrorResponse(BaseModel):
    """Structured error payload for failed admin operations"""
    error: str
    message: str
    request_id: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Statistics Schemas
# ============================================================================

class DailyStatResponse(BaseModel):
    """One rollup row"""
    date: str
    pv: int
    uv: int
    posts: int
    comments: int
    updated_at: datetime

    class Config:
        from_attributes = True


class IntegrityReport(BaseModel):
    """Result of a read-only integrity audit"""
    valid: bool = True
    issues: List[str] = Field(default_factory=list)
    checked_date: Optional[str] = None


class RecalculateRequest(BaseModel):
    """Body for POST /admin/stats/recalculate"""
    type: Literal["words", "daily", "all"] = "all"
    days: int = Field(default=365, ge=0, le=3650, description="Trailing days to aggregate")


class WordCountResult(BaseModel):
    """Outcome of a word-count recomputation batch"""
    status: str
    posts_updated: int = 0
    posts_failed: int = 0
    updated_post_ids: List[int] = Field(default_factory=list)
    error_details: List[Dict[str, Any]] = Field(default_factory=list)


class RecalculateResponse(BaseModel):
    type: str
    word_counts: Optional[WordCountResult] = None
    days_processed: Optional[int] = None
    request_id: Optional[str] = None


# ============================================================================
# Backup Schemas
# ============================================================================

class BackupInfo(BaseModel):
    """A backup artifact in the backups directory"""
    file: str
    size: int
    created_at: datetime
    type: BackupType

    class Config:
        use_enum_values = True


class BackupCreatedResponse(BaseModel):
    file: str


class RestoreRequest(BaseModel):
    file: str = Field(..., min_length=1)


class RestoreResponse(BaseModel):
    restored: str


# ============================================================================
# Migration Schemas
# ============================================================================

class MigrationCreateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=100)


class DeployResponse(BaseModel):
    success: bool
    backup: str
