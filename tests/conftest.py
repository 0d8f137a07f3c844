"""Pytest fixtures for daywise tests."""

from datetime import datetime, timedelta

import pytest

from daywise.backends.memory import MemoryStore
from daywise.storage import SnapshotWriter


class FakeClock:
    """Controllable replacement for datetime.now."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear module-level caches before each test."""
    from daywise.config import clear_config_cache

    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 10, 9, 0, 0))


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def writer(memory_store: MemoryStore):
    w = SnapshotWriter(memory_store)
    yield w
    w.close()
