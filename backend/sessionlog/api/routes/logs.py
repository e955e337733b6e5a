# sessionlog/api/routes/logs.py
"""
/logs

Inspect the session log from a debug UI.

- GET    /logs        one page, newest first, filtered by level (+ keyword)
- POST   /logs        append a line (fire-and-forget)
- DELETE /logs        remove everything
- GET    /logs/stats  record count vs. cap

Paging is cursor-based: the store remembers the page last served for the
current filter, and `direction` moves it (forward, backward, current, reset).
Changing level or keyword starts again from the first page.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from sessionlog.schemas.logs import LogCreate, LogItem, LogsResponse, LogStats
from sessionlog.services.fetch_session import Direction, LogLevel, normalize_keyword
from sessionlog.services.log_store import BoundedLogStore

router = APIRouter()


def get_log_store(request: Request) -> BoundedLogStore:
    """FastAPI dependency returning the store created at startup."""
    return request.app.state.log_store


def _parse_level(value: str) -> LogLevel:
    try:
        return LogLevel.parse(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/logs", response_model=LogsResponse)
async def get_logs(
    level: str = Query(default="DEBUG", description="Most verbose level to include"),
    keyword: str | None = Query(default=None, description="Case/accent-insensitive text search"),
    direction: Direction = Query(default=Direction.FORWARD, description="Paging direction"),
    store: BoundedLogStore = Depends(get_log_store),
):
    """
    Read one page of session logs.

    Example:
      /logs?level=warning&keyword=token&direction=forward
    """
    max_level = _parse_level(level)
    keyword = normalize_keyword(keyword)

    session, records = await store.aread_page(max_level, keyword, direction)

    filters_applied: Dict[str, str] = {"level": max_level.name}
    if keyword:
        filters_applied["keyword"] = keyword

    logs: List[LogItem] = [LogItem.from_record(r) for r in records]

    return LogsResponse(
        logs=logs,
        page=session.page_index if session is not None else 0,
        page_size=store.page_size,
        filters_applied=filters_applied,
    )


@router.post("/logs", status_code=202)
async def create_log(body: LogCreate, store: BoundedLogStore = Depends(get_log_store)):
    store.insert(_parse_level(body.level), body.module, body.text)
    return {"status": "accepted"}


@router.delete("/logs")
async def clear_logs(store: BoundedLogStore = Depends(get_log_store)):
    await store.aclear()
    return {"status": "cleared"}


@router.get("/logs/stats", response_model=LogStats)
async def log_stats(store: BoundedLogStore = Depends(get_log_store)):
    count = await asyncio.to_thread(store.count)
    return LogStats(count=count, max_items_count=store.max_items_count)
