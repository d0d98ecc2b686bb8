"""Pytest configuration and shared fixtures."""

import tempfile
from pathlib import Path

import pytest  # type: ignore[import-not-found]

from timetree.core.persistence import StorePersistence
from timetree.core.storage import StorageManager
from timetree.core.store import TrackablesStore
from timetree.core.trackables import Activity, Project
from timetree.core.tracker import TimeTracker

# Fixed reference time for tests that inject "now".
NOW = 1_700_000_000.0


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")


class InMemoryPersistence(StorePersistence):
    """Keeps the last snapshot in memory and counts saves."""

    def __init__(self, payload: str = "") -> None:
        self.payload = payload
        self.saves = 0

    def save(self, payload: str) -> bool:
        self.payload = payload
        self.saves += 1
        return True

    def load(self) -> str:
        return self.payload


def add_activity(store: TrackablesStore, name: str) -> Activity:
    activity = Activity(store=store, name=name)
    store.put_trackable(activity)
    return activity


def add_project(store: TrackablesStore, name: str) -> Project:
    project = Project.create(store, name)
    store.put_trackable(project)
    return project


def record(trackable, start: float, end: float) -> None:  # type: ignore[no-untyped-def]
    """Track a trackable from ``start`` to ``end``."""
    trackable.start_tracking(start)
    trackable.stop_tracking(end)


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store() -> TrackablesStore:
    """Create an empty store."""
    return TrackablesStore()


@pytest.fixture
def memory_persistence() -> InMemoryPersistence:
    return InMemoryPersistence()


@pytest.fixture
def tracker(memory_persistence: InMemoryPersistence):
    """Create a time tracker backed by in-memory persistence."""
    tracker = TimeTracker(StorageManager(persistence=memory_persistence))
    yield tracker
    tracker.close()
