from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from sessionlog.services.log_store import BoundedLogStore
from sessionlog.services.storage import SqlLogStorage


class FakeClock:
    """Strictly increasing clock: one second per call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_store(clock):
    """Factory for in-memory stores; every store is closed after the test."""
    stores = []

    def _make(max_items_count: int = 10, storage=None, **kwargs) -> BoundedLogStore:
        kwargs.setdefault("clock", clock)
        store = BoundedLogStore(
            max_items_count,
            storage if storage is not None else SqlLogStorage("sqlite://"),
            **kwargs,
        )
        stores.append(store)
        return store

    yield _make

    for store in stores:
        store.close()
