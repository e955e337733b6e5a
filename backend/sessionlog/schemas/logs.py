# sessionlog/schemas/logs.py
"""
Schemas for the /logs inspection endpoints.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from sessionlog.services.storage import LogRecord


class LogItem(BaseModel):
    """A single session log record."""
    id: int = Field(..., description="Store-assigned identifier")
    timestamp: str = Field(..., description="ISO8601 UTC timestamp")
    level: str = Field(..., description="Severity name (ERROR, WARNING, INFO, DEBUG)")
    module: Optional[str] = Field(default=None, description="Module tag")
    text: Optional[str] = Field(default=None, description="Message body")

    @classmethod
    def from_record(cls, record: LogRecord) -> "LogItem":
        return cls(
            id=record.id,
            timestamp=record.timestamp.isoformat() + "Z",
            level=record.level.name,
            module=record.module,
            text=record.text,
        )


class LogsResponse(BaseModel):
    """
    One page of session logs, newest first.

    Example:
    {
      "logs": [...],
      "page": 0,
      "page_size": 30,
      "filters_applied": {"level": "WARNING", "keyword": "token"}
    }
    """
    logs: List[LogItem] = Field(default_factory=list, description="Log records")
    page: int = Field(..., ge=0, description="Page index served")
    page_size: int = Field(..., ge=1, description="Records per page")
    filters_applied: Dict[str, str] = Field(
        default_factory=dict,
        description="Echo of applied filters (for UI clarity)",
    )


class LogCreate(BaseModel):
    """Body of POST /logs."""
    level: str = Field(default="INFO", description="Severity name")
    module: Optional[str] = Field(default=None, max_length=64, description="Module tag")
    text: Optional[str] = Field(default=None, description="Message body")


class LogStats(BaseModel):
    count: int = Field(..., ge=0, description="Records currently stored")
    max_items_count: int = Field(..., ge=1, description="Eviction threshold")
