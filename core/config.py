"""
Application configuration using Pydantic Settings
"""

from pathlib import Path
from typing import Optional, Tuple
import re

from pydantic import validator
from pydantic_settings import BaseSettings

from core.exceptions import ConfigurationError


PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_DATABASE_PATH = "data/blog.db"
DEFAULT_RETENTION_DAYS = 7
DEFAULT_SCHEDULE = (4, 0)

_SCHEDULE_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Database (file: connection string, relative to DATABASE_BASE_DIR)
    DATABASE_URL: Optional[str] = None
    DATABASE_BASE_DIR: Path = PROJECT_ROOT

    # Storage
    BACKUPS_DIR: Path = PROJECT_ROOT / "backups"
    MIGRATION_HISTORY_DIR: Path = PROJECT_ROOT / "migration-history"
    ALEMBIC_INI: Path = PROJECT_ROOT / "alembic.ini"

    # Backups
    BACKUP_RETENTION_DAYS: int = DEFAULT_RETENTION_DAYS
    BACKUP_SCHEDULE: str = "04:00"
    BACKUP_SCHEDULER_ENABLED: bool = True

    # Statistics
    STATS_LOOKBACK_DAYS: int = 365
    INTEGRITY_ZERO_WORDCOUNT_THRESHOLD: int = 5

    # API
    API_KEY: Optional[str] = None
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @validator("BACKUP_RETENTION_DAYS", pre=True)
    def clamp_retention(cls, v):
        """Non-numeric values fall back to the default, negatives clamp to 0"""
        try:
            days = int(str(v).strip())
        except (TypeError, ValueError):
            return DEFAULT_RETENTION_DAYS
        return max(0, days)

    @property
    def sqlite_path(self) -> Path:
        """Absolute path of the live SQLite database file."""
        return resolve_sqlite_path(self.DATABASE_URL, self.DATABASE_BASE_DIR)

    @property
    def async_database_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.sqlite_path.as_posix()}"

    @property
    def sync_database_url(self) -> str:
        return f"sqlite:///{self.sqlite_path.as_posix()}"

    @property
    def database_configured(self) -> bool:
        return bool(self.DATABASE_URL)

    @property
    def backup_schedule(self) -> Tuple[int, int]:
        return parse_schedule(self.BACKUP_SCHEDULE)


def resolve_sqlite_path(database_url: Optional[str], base_dir: Path) -> Path:
    """
    Resolve a ``file:`` connection string to an absolute database path.

    Only the ``file:`` scheme is understood; any query string such as
    ``?connection_limit=1`` is dropped. An empty URL resolves to the
    conventional ``data/blog.db`` under the base directory.
    """
    base_dir = Path(base_dir)

    if not database_url:
        return (base_dir / DEFAULT_DATABASE_PATH).resolve()

    if not database_url.startswith("file:"):
        raise ConfigurationError(
            "DATABASE_URL must use the file: scheme",
            context={"database_url": database_url},
        )

    raw = database_url[len("file:"):].split("?", 1)[0]
    path = Path(raw)
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def parse_schedule(value: Optional[str]) -> Tuple[int, int]:
    """Parse ``HH:MM`` (24h). Anything else falls back to 04:00."""
    match = _SCHEDULE_RE.match((value or "").strip())
    if not match:
        return DEFAULT_SCHEDULE
    return int(match.group(1)), int(match.group(2))


settings = Settings()
