from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    backend_url: str
    backend_api_key: str | None = None

    state_dir: Path = Path("./data")
    hard_timeout_seconds: float = 600.0
    stall_check_seconds: float = 120.0
    # None: the configured pass count of the running job is the final pass
    assume_complete_pass: int | None = None
    request_timeout_seconds: float = 30.0
    status_tail: int = 10
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="REFINER_",
        env_file_encoding="utf-8",
    )

    @field_validator("backend_url")
    @classmethod
    def backend_url_must_be_http(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("backend_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("hard_timeout_seconds", "stall_check_seconds", "request_timeout_seconds")
    @classmethod
    def timeouts_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("assume_complete_pass", "status_tail")
    @classmethod
    def counts_must_be_positive(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def events_path(self) -> Path:
        return self.state_dir / "processing_events.json"

    @property
    def state_path(self) -> Path:
        return self.state_dir / "processing_state.json"

    @property
    def options_path(self) -> Path:
        return self.state_dir / "processing_options.yaml"
