"""Notifications published by the job monitor for sibling views.

Subscribers receive their own deep copy of each notification; nothing they
hold is shared with the monitor's state.
"""
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict

from models.progress import PassState

TerminalReason = Literal[
    "complete",
    "stream_end",
    "done",
    "error",
    "timeout",
    "assumed_complete",
    "manual_reset",
    "manual_force_reset",
]


class _Notice(BaseModel):
    model_config = ConfigDict(frozen=True)


class PassProgressNotice(_Notice):
    kind: Literal["pass_progress"] = "pass_progress"
    passes: tuple[PassState, ...]
    total_passes: int


class DiffMetaNotice(_Notice):
    kind: Literal["diff_meta"] = "diff_meta"
    file_id: str
    file_name: str | None = None
    available_passes: tuple[int, ...]


class PlanNotice(_Notice):
    kind: Literal["plan"] = "plan"
    event: dict[str, Any]


class JobTerminalNotice(_Notice):
    kind: Literal["job_terminal"] = "job_terminal"
    reason: TerminalReason
    # The terminal event itself, or the event that justified an assumed completion
    event: dict[str, Any] | None = None


class AlertNotice(_Notice):
    kind: Literal["alert"] = "alert"
    message: str


Notification = Union[PassProgressNotice, DiffMetaNotice, PlanNotice, JobTerminalNotice, AlertNotice]
