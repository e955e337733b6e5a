# sessionlog/services/log_store.py
"""
Bounded, paginated session log store.

Responsibilities:
- Accept inserts from any number of producer threads (fire-and-forget)
- Keep at most `max_items_count` records by evicting the oldest ones
- Serve filtered, newest-first pages through a per-filter cursor
- Clear everything on request

Concurrency:
- Every storage call runs on one single-worker executor (the storage thread),
  so a clear can never interleave with a fetch or an eviction.
- The tracked item count has its own lock; check, evict and increment happen
  as one critical section per insert.

Failures of the storage engine are logged and swallowed. A failed insert is
dropped, a failed read returns [], a failed clear leaves the records in place.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple, Union

from sessionlog.core.config import Settings
from sessionlog.core.errors import StorageError
from sessionlog.services.fetch_session import (
    DEFAULT_PAGE_SIZE,
    Direction,
    FetchSession,
    LogLevel,
    normalize_keyword,
)
from sessionlog.services.storage import LogRecord, LogStorage, PageQuery, SqlLogStorage

logger = logging.getLogger(__name__)

DEFAULT_EVICTION_RATIO = 0.2

LevelLike = Union[LogLevel, int, str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BoundedLogStore:
    def __init__(
        self,
        max_items_count: int,
        storage: Optional[LogStorage] = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        eviction_ratio: float = DEFAULT_EVICTION_RATIO,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if isinstance(max_items_count, bool) or not isinstance(max_items_count, int) or max_items_count < 1:
            raise ValueError("max_items_count must be a positive integer.")
        if page_size < 1:
            raise ValueError("page_size must be a positive integer.")
        if not 0.0 < eviction_ratio <= 1.0:
            raise ValueError("eviction_ratio must be in (0, 1].")

        self.max_items_count = max_items_count
        self.page_size = page_size
        self.eviction_ratio = eviction_ratio

        self._storage = storage if storage is not None else SqlLogStorage("sqlite://")
        self._clock = clock

        self._count_lock = threading.Lock()
        self._items_count = 0

        # Only touched from the storage thread.
        self._session: Optional[FetchSession] = None
        self._opened = False
        self._available = False

        self._closed = False
        self._storage_thread: Optional[threading.Thread] = None
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="sessionlog-storage",
            initializer=self._bind_storage_thread,
        )

    # -----------------------
    # Properties
    # -----------------------
    @property
    def eviction_size(self) -> int:
        """Records dropped per eviction: floor(max * ratio), at least one."""
        return max(1, int(self.max_items_count * self.eviction_ratio))

    @property
    def session(self) -> Optional[FetchSession]:
        return self._session

    @property
    def tracked_count(self) -> int:
        with self._count_lock:
            return self._items_count

    # -----------------------
    # Public API
    # -----------------------
    def insert(self, level: LevelLike, module: Optional[str], text: Optional[str]) -> None:
        """Queue one log line. Never blocks on storage and never raises for storage errors."""
        future = self._submit(self._insert_job, LogLevel.parse(level), module, text)
        if future is not None:
            future.add_done_callback(_log_insert_failure)

    def read(
        self,
        level: LevelLike,
        keyword: Optional[str] = None,
        direction: Union[Direction, str] = Direction.FORWARD,
    ) -> List[LogRecord]:
        """Fetch one page, blocking until the storage thread has run the query."""
        return self._run_sync(
            self._read_job,
            LogLevel.parse(level),
            normalize_keyword(keyword),
            Direction(direction),
            default=[],
        )

    def async_read(
        self,
        level: LevelLike,
        keyword: Optional[str] = None,
        direction: Union[Direction, str] = Direction.FORWARD,
        callback: Optional[Callable[[List[LogRecord]], Any]] = None,
        callback_executor: Optional[Executor] = None,
    ) -> "Future[List[LogRecord]]":
        """
        Fetch one page off the calling thread.

        The page is available through the returned future. If `callback` is
        given it is invoked with the page on `callback_executor` (inline on the
        storage thread when no executor is given).
        """
        future = self._submit(
            self._read_job,
            LogLevel.parse(level),
            normalize_keyword(keyword),
            Direction(direction),
        )
        if future is None:
            future = _completed([])
        if callback is not None:
            self._deliver(future, callback, callback_executor, default=[])
        return future

    async def aread(
        self,
        level: LevelLike,
        keyword: Optional[str] = None,
        direction: Union[Direction, str] = Direction.FORWARD,
    ) -> List[LogRecord]:
        """Coroutine variant of `read`; resumes on the awaiting event loop."""
        return await asyncio.wrap_future(self.async_read(level, keyword, direction))

    async def aread_page(
        self,
        level: LevelLike,
        keyword: Optional[str] = None,
        direction: Union[Direction, str] = Direction.FORWARD,
    ) -> Tuple[Optional[FetchSession], List[LogRecord]]:
        """
        Like `aread`, but also returns the cursor that served the page.

        The cursor is captured by the same storage-thread job as the records,
        so a concurrent reader moving the shared session cannot skew it.
        """
        future = self._submit(
            self._read_page_job,
            LogLevel.parse(level),
            normalize_keyword(keyword),
            Direction(direction),
        )
        if future is None:
            return None, []
        return await asyncio.wrap_future(future)

    def clear(self) -> None:
        """Delete every record and drop the fetch session, blocking until done."""
        self._run_sync(self._clear_job, default=None)

    def async_clear(
        self,
        callback: Optional[Callable[[], Any]] = None,
        callback_executor: Optional[Executor] = None,
    ) -> "Future[None]":
        future = self._submit(self._clear_job)
        if future is None:
            future = _completed(None)
        if callback is not None:
            self._deliver(future, lambda _: callback(), callback_executor, default=None)
        return future

    async def aclear(self) -> None:
        await asyncio.wrap_future(self.async_clear())

    def count(self) -> int:
        """Number of records currently persisted (0 if storage is unavailable)."""
        return self._run_sync(self._count_job, default=0)

    def flush(self) -> None:
        """Wait until every insert queued so far has reached storage."""
        self._run_sync(lambda: None, default=None)

    def close(self) -> None:
        """
        Drain queued work and release storage.

        Called from the storage thread itself (an inline callback), the
        executor cannot join its own worker: storage is closed by a last queued
        job instead and the call returns without waiting.
        """
        if self._closed:
            return
        self._closed = True

        if threading.current_thread() is self._storage_thread:
            self._executor.submit(self._storage.close)
            self._executor.shutdown(wait=False)
            return

        self._executor.shutdown(wait=True)
        self._storage.close()

    def __enter__(self) -> "BoundedLogStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -----------------------
    # Storage-thread jobs
    # -----------------------
    def _ensure_open(self) -> bool:
        if self._opened:
            return self._available
        self._opened = True

        try:
            self._storage.open()
            existing = self._storage.count()
        except StorageError:
            logger.exception("Session log storage unavailable; the store is disabled.")
            return False

        # A file-backed database may hold records from a previous run.
        with self._count_lock:
            self._items_count = existing
        self._available = True
        return True

    def _insert_job(self, level: LogLevel, module: Optional[str], text: Optional[str]) -> None:
        if not self._ensure_open():
            return

        with self._count_lock:
            count = self._items_count
            if count >= self.max_items_count:
                count = self._evict(count)
            self._items_count = count + 1

        try:
            self._storage.insert_one(
                timestamp=self._clock(),
                level=level,
                module=module,
                text=text,
            )
        except StorageError:
            # The tracked count is now ahead of storage; eviction will catch up.
            logger.exception("Failed to save log item")

    def _evict(self, count: int) -> int:
        """Drop the oldest records; returns the accurate count afterwards (or `count` on failure)."""
        n = max(self.eviction_size, count - self.max_items_count + 1)
        try:
            self._storage.delete_oldest(n)
            remaining = self._storage.count()
        except StorageError:
            logger.exception("Failed to remove %d oldest log items", n)
            return count

        logger.debug("Evicted %d oldest log items (%d remaining)", n, remaining)
        return remaining

    def _read_job(self, level: LogLevel, keyword: Optional[str], direction: Direction) -> List[LogRecord]:
        return self._read_page_job(level, keyword, direction)[1]

    def _read_page_job(
        self, level: LogLevel, keyword: Optional[str], direction: Direction
    ) -> Tuple[FetchSession, List[LogRecord]]:
        if self._session is None:
            session = FetchSession(level=level, keyword=keyword, page_size=self.page_size)
        else:
            session = self._session.resync(level, keyword)
        session = session.advance(direction)
        self._session = session

        return session, self._fetch(session)

    def _fetch(self, session: FetchSession) -> List[LogRecord]:
        if not self._ensure_open():
            return []

        query = PageQuery(
            max_level=session.level,
            keyword=session.keyword,
            offset=session.fetch_offset,
            limit=session.fetch_limit,
        )
        try:
            return self._storage.query_page(query)
        except StorageError:
            logger.exception("Failed to read log DB")
            return []

    def _clear_job(self) -> None:
        if not self._ensure_open():
            return

        try:
            self._storage.delete_all()
        except StorageError:
            logger.exception("Log clear failed")
            return

        with self._count_lock:
            self._items_count = 0
        self._session = None

    def _count_job(self) -> int:
        if not self._ensure_open():
            return 0
        try:
            return self._storage.count()
        except StorageError:
            logger.exception("Failed to count log items")
            return 0

    # -----------------------
    # Dispatch helpers
    # -----------------------
    def _bind_storage_thread(self) -> None:
        self._storage_thread = threading.current_thread()

    def _submit(self, fn: Callable[..., Any], *args: Any) -> Optional[Future]:
        if self._closed:
            logger.debug("Session log store is closed; dropping %s", fn.__name__)
            return None
        try:
            return self._executor.submit(fn, *args)
        except RuntimeError:
            # Raced with close(): the executor no longer accepts work.
            logger.debug("Session log store is closed; dropping %s", fn.__name__)
            return None

    def _run_sync(self, fn: Callable[..., Any], *args: Any, default: Any) -> Any:
        # Already on the storage thread (e.g. an inline callback): waiting on the queue would deadlock.
        if threading.current_thread() is self._storage_thread:
            return fn(*args)

        future = self._submit(fn, *args)
        if future is None:
            return default
        return future.result()

    @staticmethod
    def _deliver(
        future: Future,
        handler: Callable[[Any], Any],
        executor: Optional[Executor],
        *,
        default: Any,
    ) -> None:
        def _on_done(done: Future) -> None:
            try:
                result = done.result()
            except Exception:
                logger.exception("Session log operation failed")
                result = default

            if executor is None:
                handler(result)
            else:
                executor.submit(handler, result)

        future.add_done_callback(_on_done)


def _log_insert_failure(future: Future) -> None:
    # Storage errors are logged inside the job; this catches everything else.
    exc = future.exception()
    if exc is not None:
        logger.error("Session log insert failed", exc_info=exc)


def _completed(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


def create_log_store(cfg: Settings) -> BoundedLogStore:
    """Build a store from application settings."""
    return BoundedLogStore(
        cfg.MAX_ITEMS_COUNT,
        SqlLogStorage(cfg.DATABASE_URL),
        page_size=cfg.PAGE_SIZE,
        eviction_ratio=cfg.EVICTION_RATIO,
    )
