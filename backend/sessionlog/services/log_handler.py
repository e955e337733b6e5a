# sessionlog/services/log_handler.py
"""
Bridge from the stdlib `logging` module into a session log store.

Attach `SessionLogHandler` to any logger (usually the root logger) and every
record it receives becomes a store insert:

    level  -> LogLevel (CRITICAL/ERROR -> ERROR, WARNING -> WARNING, ...)
    module -> the logger name
    text   -> the formatted message

Records from the `sessionlog` package itself are skipped, otherwise a failing
insert would log an error that triggers another insert.
"""

from __future__ import annotations

import logging
from typing import Optional

from sessionlog.services.fetch_session import LogLevel
from sessionlog.services.log_store import BoundedLogStore

_INTERNAL_PREFIX = "sessionlog"


def to_log_level(levelno: int) -> LogLevel:
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARNING
    if levelno >= logging.INFO:
        return LogLevel.INFO
    return LogLevel.DEBUG


class _SkipInternal(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        return not (name == _INTERNAL_PREFIX or name.startswith(_INTERNAL_PREFIX + "."))


class SessionLogHandler(logging.Handler):
    def __init__(self, store: BoundedLogStore, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.store = store
        self.addFilter(_SkipInternal())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = self.format(record)
            self.store.insert(to_log_level(record.levelno), record.name, text)
        except Exception:
            self.handleError(record)


def install_handler(
    store: BoundedLogStore,
    logger: Optional[logging.Logger] = None,
    level: int = logging.NOTSET,
) -> SessionLogHandler:
    """Attach a handler for `store` to `logger` (root by default) and return it."""
    handler = SessionLogHandler(store, level)
    (logger or logging.getLogger()).addHandler(handler)
    return handler
