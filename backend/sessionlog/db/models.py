# sessionlog/db/models.py
"""
SQLAlchemy ORM models for the session log.

Design goals:
- One fixed-schema table, no relations.
- Rows are written once and never updated (insert, evict, clear only).

Notes:
- Timestamps are stored as naive UTC datetimes (timezone-less) for SQLite simplicity.
  Microseconds are kept: they are the ordering key for reads and eviction.
- `search_text` holds a case-folded, accent-stripped copy of `text` so keyword
  search can be a plain LIKE on any backend.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, SmallInteger, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


class LogItem(Base):
    """A single log line captured during the current session."""

    __tablename__ = "log_items"
    __table_args__ = (
        # Covers both "newest first" pages and "oldest first" eviction.
        Index("ix_log_items_date_id", "date", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Naive UTC datetime, wall clock at insert.
    date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    # LogLevel value (1=error ... 4=debug); filtered with `level <= requested`.
    level: Mapped[int] = mapped_column(SmallInteger, index=True, nullable=False)

    module: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    search_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
