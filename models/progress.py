from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from models.events import CostInfo

PassStatus = Literal["pending", "running", "completed"]
JobPhase = Literal["idle", "running", "completed", "errored", "timed_out"]


class PassState(BaseModel):
    """Lifecycle of one refinement pass within the running job."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    pass_number: int = Field(alias="pass", ge=1)
    status: PassStatus = "pending"
    input_chars: int | None = Field(default=None, alias="inputChars")
    output_chars: int | None = Field(default=None, alias="outputChars")
    current_stage: str | None = Field(default=None, alias="currentStage")


class CompletedPass(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    pass_number: int = Field(alias="passNumber")
    path: str
    size: int | None = None
    cost: CostInfo | None = None


class CompletedFileEntry(BaseModel):
    """Downloadable pass outputs of one file, sorted and unique by pass number."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    file_id: str = Field(alias="fileId")
    file_name: str = Field(alias="fileName")
    passes: tuple[CompletedPass, ...] = ()

    def pass_numbers(self) -> list[int]:
        return [p.pass_number for p in self.passes]


class JobCost(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    current_pass_cost: float = Field(default=0.0, alias="currentPassCost")
    total_job_cost: float = Field(default=0.0, alias="totalJobCost")


class ProcessingState(BaseModel):
    """The persisted processing flag, backend job id and job boundary."""

    model_config = ConfigDict(populate_by_name=True)

    is_processing: bool = Field(default=False, alias="isProcessing")
    current_job_id: str | None = Field(default=None, alias="currentJobId")
    # Index into the event log where the current job starts; resets move it past the log
    job_start: int = Field(default=0, alias="jobStart", ge=0)


class JobStatus(BaseModel):
    """Read-only view of the monitor for reports."""

    model_config = ConfigDict(frozen=True)

    phase: JobPhase
    is_processing: bool
    current_job_id: str | None = None
    total_passes: int
    passes: tuple[PassState, ...] = ()
    completed_files: tuple[CompletedFileEntry, ...] = ()
    cost: JobCost = Field(default_factory=JobCost)
    recent_events: tuple[Any, ...] = ()
