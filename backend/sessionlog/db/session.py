# sessionlog/db/session.py
"""
Database engine and session utilities.

We use:
- SQLAlchemy sync engine + Session
- SQLite by default (any SQLAlchemy URL works)

All storage work for a store runs on that store's single storage thread, so a
plain synchronous engine is enough; there is exactly one engine per store.

Key points:
- `make_engine()` builds the engine and applies SQLite pragmas on connect.
- `init_db()` creates tables.
- `make_session_factory()` returns the sessionmaker bound to the engine.
"""

from __future__ import annotations

import os

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sessionlog.db.models import Base


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def _ensure_sqlite_dir(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite" or _is_memory_sqlite(url):
        return
    parent = os.path.dirname(parsed.database or "")
    if parent:
        os.makedirs(parent, exist_ok=True)


def make_engine(url: str) -> Engine:
    """
    Build the engine for a session log database.

    Pragmas rationale (SQLite only):
    - journal_mode=WAL: readers don't block the writer as often
    - synchronous=NORMAL: good balance for durability vs speed for a debug log
    """
    kwargs = {"echo": False, "future": True}

    if make_url(url).get_backend_name() == "sqlite":
        _ensure_sqlite_dir(url)
        # Connections are used from the store's storage thread, not the creating one.
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            # One shared connection, otherwise every checkout is a fresh empty database.
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)

    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _apply_sqlite_pragmas)

    return engine


def _apply_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
    finally:
        cursor.close()


def init_db(engine: Engine) -> None:
    """Create tables if they don't exist."""
    Base.metadata.create_all(engine)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,
        class_=Session,
    )
