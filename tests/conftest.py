"""Shared test fixtures for Network Insight tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from netinsight.core.profiles.loader import build_default_registry  # noqa: E402
from netinsight.core.profiles.registry import ProfileRegistry  # noqa: E402
from netinsight.core.storage.blob_store import MemoryBlobStore  # noqa: E402

# 2026-01-15T12:00:00Z
BASE_TIME_MS = 1_768_478_400_000


# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("PROFILES_DIR", "")
    monkeypatch.setenv("DEFAULT_PROFILE", "campus")


# ---------------------------------------------------------------------------
# Time and scheduling fakes
# ---------------------------------------------------------------------------

class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start_ms: int = BASE_TIME_MS) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class _ManualHandle:
    def __init__(self, delay_s: float, callback: Callable[[], None]) -> None:
        self.delay_s = delay_s
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose timers only fire when the test calls ``run_pending``."""

    def __init__(self) -> None:
        self.handles: list[_ManualHandle] = []

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(delay_s, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> list[_ManualHandle]:
        return [h for h in self.handles if not h.cancelled]

    def run_pending(self) -> int:
        """Fire every non-cancelled timer once. Returns how many fired."""
        due = self.active
        self.handles = []
        for handle in due:
            handle.callback()
        return len(due)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


# ---------------------------------------------------------------------------
# Storage and profile fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def insight_db():
    """Create an in-memory InsightDatabase for testing."""
    from netinsight.core.storage.database import InsightDatabase

    db = InsightDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def profile_registry() -> ProfileRegistry:
    """Registry loaded from the packaged YAML profiles."""
    return build_default_registry()


@pytest.fixture
def campus(profile_registry: ProfileRegistry):
    return profile_registry.require("campus")


@pytest.fixture
def sample_store(memory_store, scheduler, clock):
    from netinsight.domains.wireless.domain_logic.baseline_store import BaselineSampleStore

    return BaselineSampleStore(memory_store, capacity=500, scheduler=scheduler, clock=clock)
