from pathlib import Path

import pytest
from pydantic import ValidationError

from settings import Settings


def test_settings_loads_with_required_fields():
    s = Settings(backend_url="http://localhost:8000")
    assert s.backend_url == "http://localhost:8000"
    assert s.backend_api_key is None
    assert s.state_dir == Path("./data")
    assert s.hard_timeout_seconds == 600.0
    assert s.stall_check_seconds == 120.0
    assert s.assume_complete_pass is None
    assert s.status_tail == 10


def test_settings_derived_paths():
    s = Settings(backend_url="http://localhost:8000", state_dir=Path("/tmp/refiner"))
    assert s.events_path == Path("/tmp/refiner/processing_events.json")
    assert s.state_path == Path("/tmp/refiner/processing_state.json")
    assert s.options_path == Path("/tmp/refiner/processing_options.yaml")


def test_settings_missing_backend_url_raises(monkeypatch):
    monkeypatch.delenv("REFINER_BACKEND_URL", raising=False)
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None)
    assert "backend_url" in str(exc_info.value)


def test_backend_url_trailing_slash_is_stripped():
    s = Settings(backend_url="https://api.example.com/")
    assert s.backend_url == "https://api.example.com"


def test_backend_url_must_be_http():
    with pytest.raises(ValidationError):
        Settings(backend_url="ftp://example.com")


def test_timeouts_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(backend_url="http://x", hard_timeout_seconds=0)
    with pytest.raises(ValidationError):
        Settings(backend_url="http://x", stall_check_seconds=-1)


def test_assume_complete_pass_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(backend_url="http://x", assume_complete_pass=0)
    assert Settings(backend_url="http://x", assume_complete_pass=3).assume_complete_pass == 3


def test_settings_env_prefix(monkeypatch):
    monkeypatch.setenv("REFINER_BACKEND_URL", "http://from-env:9000")
    monkeypatch.setenv("REFINER_STALL_CHECK_SECONDS", "5")
    s = Settings()
    assert s.backend_url == "http://from-env:9000"
    assert s.stall_check_seconds == 5.0
