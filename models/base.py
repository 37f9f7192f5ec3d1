from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class MigrationStatus(str, enum.Enum):
    """Outcome of a migration attempt"""
    SUCCESS = "success"
    FAILED = "failed"


class BackupType(str, enum.Enum):
    """Backup artifact kind, derived from the file suffix"""
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    LOGICAL = "logical"
