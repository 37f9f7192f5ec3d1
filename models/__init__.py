"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and shared enums (MigrationStatus, BackupType)
    content: Blog tables read by the pipeline (Post, Comment, VisitLog)
    daily_stat: Per-day rollup owned by the daily aggregator

Usage:
    from models import Post, VisitLog, Comment, DailyStat
    from models.base import Base, MigrationStatus

Relationships:
    - Post → Comment (one-to-many)
    - DailyStat is standalone, keyed by date string
"""

from models.base import Base, MigrationStatus, BackupType
from models.content import Post, Comment, VisitLog
from models.daily_stat import DailyStat

__all__ = [
    "Base",
    "MigrationStatus",
    "BackupType",
    "Post",
    "Comment",
    "VisitLog",
    "DailyStat",
]
