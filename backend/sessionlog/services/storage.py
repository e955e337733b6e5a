# sessionlog/services/storage.py
"""
Storage backends for the session log.

`LogStorage` is the narrow interface the store needs from a persistence engine:

- insert_one:    durable append of one record
- query_page:    filtered, newest-first range query (offset + limit)
- delete_oldest: drop the N oldest records
- delete_all:    bulk clear
- count:         number of stored records

`SqlLogStorage` implements it with SQLAlchemy. Every method converts
`SQLAlchemyError` into one of the `StorageError` subclasses so callers never
have to know about the engine.

Instances are not thread-safe on their own; `BoundedLogStore` only ever calls
them from its single storage thread.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Engine, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from sessionlog.core.errors import (
    StorageDeleteFailure,
    StorageOpenFailure,
    StorageReadFailure,
    StorageWriteFailure,
)
from sessionlog.db.models import LogItem
from sessionlog.db.session import init_db, make_engine, make_session_factory
from sessionlog.services.fetch_session import LogLevel, fold_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogRecord:
    """Detached, immutable view of one stored log line."""
    id: int
    timestamp: datetime
    level: LogLevel
    module: Optional[str]
    text: Optional[str]


@dataclass(frozen=True)
class PageQuery:
    """Filter + window for one page: `level <= max_level` AND text contains keyword."""
    max_level: LogLevel
    keyword: Optional[str]
    offset: int
    limit: int


class LogStorage(abc.ABC):
    @abc.abstractmethod
    def open(self) -> None:
        """Prepare the backend (connect, create schema). Raises StorageOpenFailure."""

    @abc.abstractmethod
    def insert_one(
        self,
        *,
        timestamp: datetime,
        level: LogLevel,
        module: Optional[str],
        text: Optional[str],
    ) -> None: ...

    @abc.abstractmethod
    def query_page(self, query: PageQuery) -> List[LogRecord]: ...

    @abc.abstractmethod
    def delete_oldest(self, n: int) -> None: ...

    @abc.abstractmethod
    def delete_all(self) -> None: ...

    @abc.abstractmethod
    def count(self) -> int: ...

    def close(self) -> None:
        """Release backend resources. Default: nothing to release."""


def _to_record(row: LogItem) -> LogRecord:
    return LogRecord(
        id=row.id,
        timestamp=row.date,
        level=LogLevel(row.level),
        module=row.module,
        text=row.text,
    )


class SqlLogStorage(LogStorage):
    """SQLAlchemy-backed storage. One engine per instance."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    def open(self) -> None:
        if self._engine is not None:
            return
        try:
            engine = make_engine(self.database_url)
            init_db(engine)
        except (SQLAlchemyError, OSError, ImportError) as exc:
            # ImportError: the URL names a DBAPI driver that is not installed.
            raise StorageOpenFailure(f"Cannot open session log database: {exc}") from exc

        self._engine = engine
        self._session_factory = make_session_factory(engine)
        logger.debug("Opened session log database %s", engine.url.render_as_string(hide_password=True))

    def _session(self) -> Session:
        if self._session_factory is None:
            raise StorageOpenFailure("Session log database is not open.")
        return self._session_factory()

    def insert_one(
        self,
        *,
        timestamp: datetime,
        level: LogLevel,
        module: Optional[str],
        text: Optional[str],
    ) -> None:
        try:
            with self._session() as session:
                session.add(
                    LogItem(
                        date=timestamp,
                        level=int(level),
                        module=module,
                        text=text,
                        search_text=fold_text(text),
                    )
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageWriteFailure(f"Failed to save log item: {exc}") from exc

    def query_page(self, query: PageQuery) -> List[LogRecord]:
        stmt = select(LogItem).where(LogItem.level <= int(query.max_level))

        if query.keyword:
            stmt = stmt.where(
                LogItem.search_text.contains(fold_text(query.keyword), autoescape=True)
            )

        # Newest first; id breaks ties between identical timestamps.
        stmt = (
            stmt.order_by(LogItem.date.desc(), LogItem.id.desc())
            .offset(query.offset)
            .limit(query.limit)
        )

        try:
            with self._session() as session:
                rows = session.execute(stmt).scalars().all()
                return [_to_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StorageReadFailure(f"Failed to read log DB: {exc}") from exc

    def delete_oldest(self, n: int) -> None:
        if n <= 0:
            return

        oldest_ids = (
            select(LogItem.id)
            .order_by(LogItem.date.asc(), LogItem.id.asc())
            .limit(n)
        )
        try:
            with self._session() as session:
                session.execute(
                    delete(LogItem)
                    .where(LogItem.id.in_(oldest_ids))
                    .execution_options(synchronize_session=False)
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageDeleteFailure(f"Failed to remove oldest log items: {exc}") from exc

    def delete_all(self) -> None:
        try:
            with self._session() as session:
                session.execute(delete(LogItem).execution_options(synchronize_session=False))
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageDeleteFailure(f"Log clear failed: {exc}") from exc

    def count(self) -> int:
        try:
            with self._session() as session:
                return int(session.execute(select(func.count()).select_from(LogItem)).scalar() or 0)
        except SQLAlchemyError as exc:
            raise StorageReadFailure(f"Failed to count log items: {exc}") from exc

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None
