import logging

import pytest

from sessionlog.core.config import Settings
from sessionlog.core.logging import configure_logging
from sessionlog.services.fetch_session import LogLevel
from sessionlog.services.log_handler import SessionLogHandler


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield root
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def _session_handlers(root):
    return [h for h in root.handlers if isinstance(h, SessionLogHandler)]


def test_level_comes_from_settings(root_logger):
    assert configure_logging(_settings(LOG_LEVEL="debug")) is None
    assert root_logger.level == logging.DEBUG
    stream_handlers = [h for h in root_logger.handlers if isinstance(h, logging.StreamHandler)]
    assert len(stream_handlers) == 1


def test_store_gets_a_capture_handler(root_logger, make_store):
    store = make_store(max_items_count=20)

    handler = configure_logging(_settings(LOG_LEVEL="INFO"), store)

    assert isinstance(handler, SessionLogHandler)
    assert _session_handlers(root_logger) == [handler]

    logging.getLogger("tests.setup.app").warning("captured once")
    assert [r.text for r in store.read(LogLevel.DEBUG)] == ["captured once"]


def test_reconfiguring_keeps_capture_handler(root_logger, make_store):
    store = make_store(max_items_count=20)
    cfg = _settings(LOG_LEVEL="INFO")

    first = configure_logging(cfg, store)
    second = configure_logging(cfg, store)
    configure_logging(cfg)

    assert second is first
    assert _session_handlers(root_logger) == [first]


def test_capture_can_be_switched_off(root_logger, make_store):
    store = make_store(max_items_count=20)

    assert configure_logging(_settings(CAPTURE_APP_LOGS=False), store) is None
    assert _session_handlers(root_logger) == []
