from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index
from datetime import datetime
from models.base import Base


class Post(Base):
    """
    Blog post, owned by the surrounding application.

    The statistics pipeline reads ``content``, ``published`` and
    ``created_at``; ``word_count`` is the only column it writes.
    """
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, default="")
    content = Column(Text, nullable=True)
    published = Column(Boolean, nullable=False, default=False, index=True)
    word_count = Column(Integer, nullable=True, default=0)

    # Local wall-clock time; daily buckets are local calendar days
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class Comment(Base):
    """Comment on a post. Append-only from the pipeline's point of view."""
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, index=True)
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)


class VisitLog(Base):
    """One row per page view."""
    __tablename__ = "visit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip = Column(String(64), nullable=True)
    path = Column(String(2048), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        Index("idx_visit_logs_created", "created_at"),
    )
