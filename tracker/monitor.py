"""Job monitor: owns the state derived from a refinement job's event stream.

All writers go through this class: stream events (``handle``), transport
failures (``fail``), watchdog callbacks and user actions (``reset``,
``clear_history``). Each runs to completion on the event loop, so the pass
map, artifact index, cost and processing flag are always mutually
consistent. Sibling views learn about changes only through the
notification bus.

Lifecycle of one job:

    idle --start_job--> running --> completed | errored | timed_out
                           `----- reset --> idle

History (the event log) survives job boundaries and restarts; per-job state
(pass map, artifact index, cost) is per run.
"""
import asyncio
import logging
from collections.abc import AsyncIterator, Iterable

from models.events import ErrorEvent, ProcessingEvent, alert_text, dump_event, parse_event
from models.job_request import FileDescriptor
from models.notifications import (
    AlertNotice,
    DiffMetaNotice,
    JobTerminalNotice,
    PassProgressNotice,
    PlanNotice,
    TerminalReason,
)
from models.progress import (
    CompletedFileEntry,
    JobCost,
    JobPhase,
    JobStatus,
    PassState,
    ProcessingState,
)
from settings import Settings
from tracker import artifact_index, cost, pass_progress
from tracker.bus import NotificationBus
from tracker.persistence import StateStore
from tracker.stream_client import BackendError
from tracker.watchdog import LivenessWatchdog, stall_verdict

logger = logging.getLogger(__name__)


class JobMonitor:
    def __init__(
        self,
        settings: Settings,
        store: StateStore | None = None,
        bus: NotificationBus | None = None,
        total_passes: int = 3,
    ) -> None:
        self.settings = settings
        self.store = store or StateStore(settings.events_path, settings.state_path)
        self.bus = bus or NotificationBus()
        self.total_passes = total_passes
        self.watchdog = LivenessWatchdog(
            hard_timeout=settings.hard_timeout_seconds,
            stall_check=settings.stall_check_seconds,
            on_timeout=self._on_hard_timeout,
            on_stall=self._on_stall_probe,
        )

        self.phase: JobPhase = "idle"
        self.current_job_id: str | None = None
        self.events: list[ProcessingEvent] = []
        self.passes: dict[int, PassState] = {}
        self.completed_files: list[CompletedFileEntry] = []
        self.cost = JobCost()
        self.known_files: dict[str, str] = {}

        self._job_start = 0
        self._stream_task: asyncio.Task | None = None
        self._restore()

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def is_processing(self) -> bool:
        return self.phase == "running"

    @property
    def job_events(self) -> list[ProcessingEvent]:
        """Events recorded since the current (or last) job started or the last reset."""
        return self.events[self._job_start:]

    @property
    def final_pass(self) -> int:
        return self.settings.assume_complete_pass or self.total_passes

    def snapshot(self) -> JobStatus:
        return JobStatus(
            phase=self.phase,
            is_processing=self.is_processing,
            current_job_id=self.current_job_id,
            total_passes=self.total_passes,
            passes=tuple(pass_progress.ordered(self.passes)),
            completed_files=tuple(self.completed_files),
            cost=self.cost,
            recent_events=tuple(self.events[-self.settings.status_tail:]),
        )

    # ------------------------------------------------------------------
    # Job lifecycle
    # ------------------------------------------------------------------

    def start_job(
        self,
        total_passes: int,
        files: Iterable[FileDescriptor] = (),
        job_id: str | None = None,
    ) -> None:
        """Enter ``running``: reset per-job state and arm the watchdog.

        Must be called from inside the event loop. History is kept.
        """
        if self.is_processing:
            raise RuntimeError("A job is already running; reset it first")

        self.total_passes = total_passes
        self.known_files = {}
        for f in files:
            self.known_files[f.id] = f.name
            if f.drive_id:
                self.known_files[f.drive_id] = f.name

        self.passes = {}
        self.completed_files = []
        self.cost = JobCost()
        self._job_start = len(self.events)
        self.current_job_id = job_id
        self._set_phase("running")
        self.watchdog.arm()
        logger.info("Job started: %d pass(es), %d file(s)", total_passes, len(self.known_files))

    def start(
        self,
        source: AsyncIterator[dict],
        total_passes: int,
        files: Iterable[FileDescriptor] = (),
    ) -> asyncio.Task:
        """Start a job and consume ``source`` in a task that ``reset`` can abort."""
        self.start_job(total_passes, files)
        self._stream_task = asyncio.create_task(self.consume(source))
        return self._stream_task

    async def consume(self, source: AsyncIterator[dict]) -> None:
        try:
            async for raw in source:
                self.handle(raw)
        except BackendError as exc:
            logger.error("Event stream failed: %s", exc)
            self.fail(str(exc))
            return
        except Exception as exc:
            logger.exception("Event stream raised unexpectedly")
            self.fail(str(exc) or type(exc).__name__)
            return
        if self.is_processing:
            logger.info("Stream closed without a terminal event; waiting on the watchdog")

    def handle(self, raw: dict | ProcessingEvent) -> ProcessingEvent | None:
        """Apply one stream event. Returns the recorded event, or None if quarantined."""
        event = parse_event(raw) if isinstance(raw, dict) else raw
        if event is None:
            return None
        logger.debug("Event %s pass=%s file=%s", event.type, event.pass_number, event.file_id)

        if event.is_terminal:
            self._record(event)
            self._finish("completed", event.type, event)
            return event

        if event.type == "error":
            event = self._backfill_file_name(event)
            self._record(event)
            if self.is_processing:
                self._alert(alert_text(event))
                self._finish("errored", "error", event)
            else:
                logger.warning("Error event after job ended: %s", alert_text(event))
            return event

        event = artifact_index.resolve_output_path(self._backfill_file_name(event))
        self._record(event)

        if event.type == "job" and event.job_id and event.job_id != self.current_job_id:
            self.current_job_id = event.job_id
            self._persist_state()

        passes = pass_progress.apply(self.passes, event, self.total_passes)
        if passes is not self.passes:
            self.passes = dict(passes)
            self.bus.publish(PassProgressNotice(
                passes=tuple(pass_progress.ordered(self.passes)),
                total_passes=self.total_passes,
            ))

        if event.type == "pass_complete":
            if event.file_id:
                self.bus.publish(DiffMetaNotice(
                    file_id=event.file_id,
                    file_name=event.file_name,
                    available_passes=tuple(pass_progress.completed_pass_numbers(self.passes)),
                ))
            self.completed_files = artifact_index.apply(self.completed_files, event)
            self.cost = cost.apply(self.cost, event)

        if event.type in ("plan", "strategy"):
            self.bus.publish(PlanNotice(event=dump_event(event)))
        elif event.type == "warning":
            logger.warning("Backend warning: %s", event.message or event.error)
        return event

    def fail(self, message: str) -> None:
        """Record a transport failure as an error event."""
        self.handle(ErrorEvent(type="error", error=message, job_id=self.current_job_id))

    def reset(self) -> TerminalReason:
        """User reset: Force Reset while running, plain Reset otherwise."""
        reason: TerminalReason = "manual_force_reset" if self.is_processing else "manual_reset"
        self.watchdog.cancel()
        self._cancel_stream()
        self.passes = {}
        self.completed_files = []
        # The artifact index of a later restore starts after this point
        self._job_start = len(self.events)
        self.phase = "idle"
        self._persist_state()
        logger.info("Job monitor reset (%s)", reason)
        self.bus.publish(JobTerminalNotice(reason=reason))
        return reason

    def clear_history(self) -> None:
        self.events = []
        self._job_start = 0
        self.store.clear_events()
        self._persist_state()

    def repair(self) -> None:
        """Rebuild the artifact index from the recorded history of the current job."""
        self.completed_files = artifact_index.rebuild(self.job_events)

    # ------------------------------------------------------------------
    # Watchdog callbacks
    # ------------------------------------------------------------------

    def _on_hard_timeout(self) -> None:
        if self.is_processing:
            self._finish("timed_out", "timeout")

    def _on_stall_probe(self) -> None:
        if not self.is_processing:
            return
        verdict = stall_verdict(self.job_events, self.final_pass)
        if verdict is None:
            logger.info("Stall probe: job still in progress")
            return
        reason, event = verdict
        logger.warning("Stall probe resolved job as %s", reason)
        self._finish("completed", reason, event)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _finish(
        self,
        phase: JobPhase,
        reason: TerminalReason,
        event: ProcessingEvent | None = None,
    ) -> None:
        """Leave ``running`` exactly once per job; later terminal signals are only recorded."""
        if not self.is_processing:
            logger.debug("Terminal signal %s after job already ended", reason)
            return
        self.watchdog.cancel()
        self._cancel_stream()
        self.passes = {}
        self._set_phase(phase)
        logger.info("Job %s (%s), total cost %.4f", phase, reason, self.cost.total_job_cost)
        self.bus.publish(JobTerminalNotice(
            reason=reason,
            event=dump_event(event) if event is not None else None,
        ))

    def _cancel_stream(self) -> None:
        task = self._stream_task
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            return
        task.cancel()

    def _backfill_file_name(self, event: ProcessingEvent) -> ProcessingEvent:
        if event.file_name or not event.file_id:
            return event
        name = self.known_files.get(event.file_id)
        if name is None:
            return event
        return event.model_copy(update={"file_name": name})

    def _record(self, event: ProcessingEvent) -> None:
        self.events.append(event)
        self.store.save_events(self.events)

    def _alert(self, message: str) -> None:
        logger.error("Processing failed: %s", message)
        self.bus.publish(AlertNotice(message=f"Processing failed: {message}"))

    def _set_phase(self, phase: JobPhase) -> None:
        was_processing = self.is_processing
        self.phase = phase
        if was_processing != self.is_processing:
            self._persist_state()

    def _persist_state(self) -> None:
        self.store.save_state(ProcessingState(
            is_processing=self.is_processing,
            current_job_id=self.current_job_id,
            job_start=self._job_start,
        ))

    def _restore(self) -> None:
        self.events = self.store.load_events()
        state = self.store.load_state()
        self.current_job_id = state.current_job_id
        if state.is_processing:
            # Timers are not persisted; the restored job needs a reset to recover
            self.phase = "running"
            logger.warning("Restored a running job %s without a watchdog", state.current_job_id)
        self._job_start = min(state.job_start, len(self.events))
        self.completed_files = artifact_index.rebuild(self.job_events)
        if self.events:
            logger.info("Restored %d event(s) from %s", len(self.events), self.store.events_path)
