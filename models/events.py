"""Progress events streamed by the refinement backend.

Every event is one variant of a tagged union keyed by ``type``. Field names
follow the backend's camelCase wire format through aliases; unknown extra
fields are kept so a persisted event round-trips to what the backend sent.

Events that do not parse into a known variant are quarantined by
``parse_event`` (logged and dropped) rather than accessed blindly.
"""
import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

# Event types that end a job successfully
TERMINAL_TYPES = frozenset({"complete", "stream_end", "done"})


class CostInfo(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    total_cost: float | None = Field(default=None, alias="totalCost")


class PassMetrics(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    local_path: str | None = Field(default=None, alias="localPath")


class _EventBase(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    job_id: str | None = Field(default=None, alias="jobId")
    file_id: str | None = Field(default=None, alias="fileId")
    file_name: str | None = Field(default=None, alias="fileName")
    pass_number: int | None = Field(default=None, alias="pass")
    stage: str | None = None
    message: str | None = None
    error: str | None = None
    duration: float | None = None  # milliseconds
    cost: CostInfo | None = None
    output_path: str | None = Field(default=None, alias="outputPath")
    input_chars: int | None = Field(default=None, alias="inputChars")
    output_chars: int | None = Field(default=None, alias="outputChars")
    metrics: PassMetrics | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_TYPES  # type: ignore[attr-defined]


class JobEvent(_EventBase):
    """Stream head; announces the backend job id."""

    type: Literal["job"]


class PassStartEvent(_EventBase):
    type: Literal["pass_start"]


class StageUpdateEvent(_EventBase):
    type: Literal["stage_update"]


class ProgressEvent(_EventBase):
    type: Literal["progress"]
    input_size: int | None = Field(default=None, alias="inputSize")
    output_size: int | None = Field(default=None, alias="outputSize")


class PassCompleteEvent(_EventBase):
    type: Literal["pass_complete"]


class PlanEvent(_EventBase):
    type: Literal["plan"]


class StrategyEvent(_EventBase):
    type: Literal["strategy"]


class ErrorEvent(_EventBase):
    type: Literal["error"]


class WarningEvent(_EventBase):
    """Non-fatal backend notice, e.g. a pass reverted and refinement stopped early."""

    type: Literal["warning"]


class InfoEvent(_EventBase):
    type: Literal["info"]


class CompleteEvent(_EventBase):
    type: Literal["complete"]


class StreamEndEvent(_EventBase):
    type: Literal["stream_end"]


class DoneEvent(_EventBase):
    type: Literal["done"]


ProcessingEvent = Annotated[
    Union[
        JobEvent,
        PassStartEvent,
        StageUpdateEvent,
        ProgressEvent,
        PassCompleteEvent,
        PlanEvent,
        StrategyEvent,
        ErrorEvent,
        WarningEvent,
        InfoEvent,
        CompleteEvent,
        StreamEndEvent,
        DoneEvent,
    ],
    Field(discriminator="type"),
]

_ADAPTER: TypeAdapter[ProcessingEvent] = TypeAdapter(ProcessingEvent)


def parse_event(raw: Any) -> ProcessingEvent | None:
    """Validate a raw event dict. Returns None (and logs) for anything unknown or malformed."""
    if not isinstance(raw, dict):
        logger.warning("Quarantined non-object event: %r", raw)
        return None
    try:
        return _ADAPTER.validate_python(raw)
    except ValidationError as exc:
        logger.warning(
            "Quarantined event of type %r: %d validation error(s)",
            raw.get("type"), exc.error_count(),
        )
        logger.debug("Quarantined event detail: %s", exc)
        return None


def dump_event(event: ProcessingEvent) -> dict[str, Any]:
    """Serialize back to the backend's wire shape (camelCase, no nulls)."""
    return event.model_dump(mode="json", by_alias=True, exclude_none=True)


def alert_text(event: ProcessingEvent) -> str:
    return event.error or event.message or "Unknown error"
