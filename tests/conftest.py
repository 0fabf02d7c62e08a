"""
Pytest configuration and fixtures for TrainScope tests.
"""

import os
import pytest
import sys
from pathlib import Path

# Add src to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

# Headless runs (CI) have no display server
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication

from trainscope.core.cache_store import CacheStore


@pytest.fixture(scope="session")
def qapp():
    """Create QApplication once per test session."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


class FakeClock:
    """Manually advanced clock (seconds for caches, ms for playback)."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, delta: float) -> None:
        self.now += delta


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """Small bounded store, closed after the test."""
    cache = CacheStore(max_bytes=100, clock=clock, name="test")
    yield cache
    cache.close()
