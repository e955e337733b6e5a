import pytest

from sessionlog.services.fetch_session import (
    Direction,
    FetchSession,
    LogLevel,
    fold_text,
    normalize_keyword,
)


def test_first_forward_serves_first_page():
    session = FetchSession(level=LogLevel.INFO).advance(Direction.FORWARD)
    assert session.page_index == 0
    assert session.fetch_offset == 0
    assert not session.fresh


def test_forward_then_backward_moves_one_page():
    session = FetchSession(level=LogLevel.INFO, page_size=30)
    session = session.advance(Direction.FORWARD).advance(Direction.FORWARD).advance(Direction.FORWARD)
    assert session.page_index == 2
    assert session.fetch_offset == 60
    assert session.fetch_limit == 30

    session = session.advance(Direction.BACKWARD)
    assert session.page_index == 1


def test_backward_never_goes_below_zero():
    session = FetchSession(level=LogLevel.DEBUG)
    for _ in range(3):
        session = session.advance(Direction.BACKWARD)
    assert session.page_index == 0
    assert session.fetch_offset == 0


def test_reset_and_current():
    session = FetchSession(level=LogLevel.DEBUG, page_index=4, fresh=False)
    assert session.advance(Direction.CURRENT).page_index == 4
    assert session.advance(Direction.RESET).page_index == 0


def test_advance_does_not_mutate():
    original = FetchSession(level=LogLevel.DEBUG, page_index=2, fresh=False)
    advanced = original.advance(Direction.FORWARD)
    assert original.page_index == 2
    assert advanced.page_index == 3


def test_resync_keeps_cursor_when_filter_unchanged():
    session = FetchSession(level=LogLevel.WARNING, keyword="token", page_index=3, fresh=False)
    assert session.resync(LogLevel.WARNING, "token") is session


@pytest.mark.parametrize(
    "level, keyword",
    [(LogLevel.INFO, "token"), (LogLevel.WARNING, "other"), (LogLevel.WARNING, None)],
)
def test_resync_resets_on_filter_change(level, keyword):
    session = FetchSession(level=LogLevel.WARNING, keyword="token", page_index=3, fresh=False)
    resynced = session.resync(level, keyword)
    assert resynced.page_index == 0
    assert resynced.fresh
    assert resynced.advance(Direction.FORWARD).page_index == 0


def test_level_parse():
    assert LogLevel.parse("warn") is LogLevel.WARNING
    assert LogLevel.parse(" Error ") is LogLevel.ERROR
    assert LogLevel.parse(4) is LogLevel.DEBUG
    assert LogLevel.ERROR < LogLevel.WARNING < LogLevel.INFO < LogLevel.DEBUG
    with pytest.raises(ValueError):
        LogLevel.parse("verbose")


def test_fold_text_ignores_case_and_accents():
    assert fold_text("Tökén REFRESHED") == "token refreshed"
    assert fold_text(None) is None


def test_blank_keyword_means_no_filter():
    assert normalize_keyword("   ") is None
    assert normalize_keyword("") is None
    assert normalize_keyword(" token ") == "token"
