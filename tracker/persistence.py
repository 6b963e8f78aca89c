"""Durable mirror of the event log and the processing flag.

Writes are full-snapshot overwrites (temp file + rename). They are best
effort: a failed write is logged and the in-memory state stays
authoritative.

Files:  <state_dir>/processing_events.json  (JSON array of wire-format events)
        <state_dir>/processing_state.json   ({isProcessing, currentJobId})
"""
import json
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from models.events import ProcessingEvent, dump_event, parse_event
from models.progress import ProcessingState

logger = logging.getLogger(__name__)


class StateStore:
    def __init__(self, events_path: Path, state_path: Path) -> None:
        self.events_path = events_path
        self.state_path = state_path

    def save_events(self, events: Sequence[ProcessingEvent]) -> None:
        self._write(self.events_path, json.dumps([dump_event(e) for e in events]))

    def save_state(self, state: ProcessingState) -> None:
        self._write(self.state_path, state.model_dump_json(by_alias=True))

    def load_events(self) -> list[ProcessingEvent]:
        """Return the persisted log. Unreadable files yield an empty log; bad entries are skipped."""
        if not self.events_path.exists():
            return []
        try:
            raw = json.loads(self.events_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read event log %s: %s", self.events_path, exc)
            return []
        if not isinstance(raw, list):
            logger.warning("Event log %s is not a JSON array; ignoring it", self.events_path)
            return []
        events = [e for e in (parse_event(item) for item in raw) if e is not None]
        if len(events) != len(raw):
            logger.warning("Skipped %d unparseable event(s) in %s", len(raw) - len(events), self.events_path)
        return events

    def load_state(self) -> ProcessingState:
        if not self.state_path.exists():
            return ProcessingState()
        try:
            return ProcessingState.model_validate_json(self.state_path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("Could not read processing state %s: %s", self.state_path, exc)
            return ProcessingState()

    def clear_events(self) -> None:
        try:
            self.events_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove event log %s: %s", self.events_path, exc)

    def _write(self, path: Path, text: str) -> None:
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            logger.warning("Persisting %s failed: %s", path.name, exc)
