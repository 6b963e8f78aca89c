"""Job submission contract sent to POST /refine/run.

The heuristics and schema levels are pass-through configuration for the
backend; nothing in this client interprets them after the request is built.
"""
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class FileDescriptor(BaseModel):
    """An uploaded file as the backend resolves it.

    ``temp_path`` is the backend-side upload location and is sent under
    ``source``, ``temp_path`` and ``path`` since backend versions differ in
    which key they read.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: Literal["local", "drive"] = "local"
    temp_path: str | None = None
    drive_id: str | None = Field(default=None, alias="driveId")

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "id": self.drive_id or self.id,
            "name": self.name,
            "type": self.type,
            "source": self.temp_path,
            "temp_path": self.temp_path,
            "path": self.temp_path,
        }
        if self.drive_id:
            wire["driveId"] = self.drive_id
        return wire


class OutputTarget(BaseModel):
    type: Literal["local", "drive"] = "local"
    dir: str = "./output"


class FormattingSafeguards(BaseModel):
    enabled: bool
    mode: Literal["smart", "strict"]


class AnnotationMode(BaseModel):
    enabled: bool
    mode: Literal["inline", "sidecar"]
    verbosity: Literal["low", "medium", "high"]


class RefinementRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    files: list[dict[str, Any]]
    output: OutputTarget = Field(default_factory=OutputTarget)
    passes: int = Field(ge=1)
    early_stop: bool = Field(alias="earlyStop")
    aggressiveness: str
    scanner_risk: int = Field(alias="scannerRisk")
    keywords: list[str] = Field(default_factory=list)
    strategy_mode: Literal["model", "rules"]
    formatting_safeguards: FormattingSafeguards
    history_analysis: dict[str, bool]
    refiner_dry_run: bool
    annotation_mode: AnnotationMode
    heuristics: dict[str, Any]
    schema_levels: dict[str, int] = Field(alias="schemaLevels")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
