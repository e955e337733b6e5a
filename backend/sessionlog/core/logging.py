# sessionlog/core/logging.py
"""
Logging setup for a process that carries a session log.

Two destinations:
- stdout, for the operator (one stream handler, `asctime | level | name | message`)
- the session log store itself, through `SessionLogHandler`, when a store is
  passed in and `CAPTURE_APP_LOGS` is on

Reconfiguring replaces the stdout handler but leaves any session log handler
attached to the root logger, so calling this again never silently stops the
in-app capture.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from sessionlog.core.config import Settings, settings
from sessionlog.services.log_handler import SessionLogHandler, install_handler
from sessionlog.services.log_store import BoundedLogStore

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    cfg: Settings = settings,
    store: Optional[BoundedLogStore] = None,
) -> Optional[SessionLogHandler]:
    """
    Configure root logging from settings.

    Args:
        cfg: settings providing LOG_LEVEL and CAPTURE_APP_LOGS
        store: session log store to copy application records into

    Returns:
        The session log handler installed by this call, or None.
    """
    log_level = getattr(logging, cfg.LOG_LEVEL, logging.INFO)
    root_logger = logging.getLogger()

    for existing in list(root_logger.handlers):
        if not isinstance(existing, SessionLogHandler):
            root_logger.removeHandler(existing)

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(stream)
    root_logger.setLevel(log_level)

    if store is None or not cfg.CAPTURE_APP_LOGS:
        return None

    attached = [
        h for h in root_logger.handlers
        if isinstance(h, SessionLogHandler) and h.store is store
    ]
    if attached:
        return attached[0]
    return install_handler(store, root_logger)
