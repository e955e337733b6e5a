# sessionlog/services/fetch_session.py
"""
Severity levels, paging directions and the per-filter fetch cursor.

The cursor is immutable: `resync()` and `advance()` return a new value and
never mutate in place. The store keeps exactly one current cursor.
"""

from __future__ import annotations

import enum
import unicodedata
from dataclasses import dataclass, replace
from typing import Optional, Union

DEFAULT_PAGE_SIZE = 30


class LogLevel(enum.IntEnum):
    """Severity, ordered from most to least severe. Reads use `level <= requested`."""

    ERROR = 1
    WARNING = 2
    INFO = 3
    DEBUG = 4

    @classmethod
    def parse(cls, value: Union["LogLevel", int, str]) -> "LogLevel":
        """Accept a LogLevel, its int value, or a case-insensitive name ("warn" allowed)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        name = (value or "").strip().upper()
        if name == "WARN":
            name = "WARNING"
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown log level: {value!r}") from None


class Direction(str, enum.Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    CURRENT = "current"
    RESET = "reset"


def fold_text(value: Optional[str]) -> Optional[str]:
    """Case-fold and strip combining marks, so "Café" and "cafe" compare equal."""
    if value is None:
        return None
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def normalize_keyword(keyword: Optional[str]) -> Optional[str]:
    """Blank keywords mean "no keyword filter"."""
    if keyword is None:
        return None
    keyword = keyword.strip()
    return keyword or None


@dataclass(frozen=True)
class FetchSession:
    """
    Pagination state scoped to one (level, keyword) filter.

    `fresh` marks a cursor that has not served a page yet: the first FORWARD
    read of a fresh cursor returns page 0 instead of skipping it.
    """

    level: LogLevel
    keyword: Optional[str] = None
    page_index: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    fresh: bool = True

    @property
    def fetch_offset(self) -> int:
        return self.page_index * self.page_size

    @property
    def fetch_limit(self) -> int:
        return self.page_size

    def resync(self, level: LogLevel, keyword: Optional[str]) -> "FetchSession":
        """Restart from the first page if level or keyword changed."""
        if level == self.level and keyword == self.keyword:
            return self
        return replace(self, level=level, keyword=keyword, page_index=0, fresh=True)

    def advance(self, direction: Direction) -> "FetchSession":
        if direction is Direction.FORWARD:
            index = 0 if self.fresh else self.page_index + 1
        elif direction is Direction.BACKWARD:
            index = max(self.page_index - 1, 0)
        elif direction is Direction.RESET:
            index = 0
        else:
            index = self.page_index
        return replace(self, page_index=index, fresh=False)
