from pathlib import Path

import pytest

from settings import Settings
from tracker.persistence import StateStore


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with state under a temp directory. No backend is contacted in unit tests."""
    return Settings(
        backend_url="http://backend.test",
        backend_api_key="test-key",
        state_dir=tmp_path / "state",
    )


@pytest.fixture
def fast_settings(tmp_path: Path) -> Settings:
    """Settings with watchdog deadlines shrunk so timer tests finish quickly."""
    return Settings(
        backend_url="http://backend.test",
        state_dir=tmp_path / "state",
        hard_timeout_seconds=0.3,
        stall_check_seconds=0.05,
    )


@pytest.fixture
def store(settings: Settings) -> StateStore:
    return StateStore(settings.events_path, settings.state_path)
