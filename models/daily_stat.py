from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from models.base import Base


class DailyStat(Base):
    """
    Pre-aggregated counters for one local calendar day.

    Design:
    - One row per date (``YYYY-MM-DD``), enforced by a unique constraint
    - Every aggregation run replaces all counters for the dates it covers,
      so rerunning the same window is idempotent
    - Rows are never deleted by the pipeline
    """
    __tablename__ = "daily_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(String(10), nullable=False, unique=True, index=True)

    pv = Column(Integer, nullable=False, default=0)
    uv = Column(Integer, nullable=False, default=0)
    posts = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)
