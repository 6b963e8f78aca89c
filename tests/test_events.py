"""Tests for the event union: parsing, quarantine and wire round-trips."""

import pytest

from models.events import (
    ErrorEvent,
    PassCompleteEvent,
    ProgressEvent,
    StreamEndEvent,
    alert_text,
    dump_event,
    parse_event,
)


class TestParseEvent:
    def test_pass_complete_fields(self):
        event = parse_event({
            "type": "pass_complete",
            "jobId": "j1",
            "fileId": "f1",
            "fileName": "f.md",
            "pass": 2,
            "inputChars": 1000,
            "outputChars": 980,
            "cost": {"totalCost": 0.01, "requestCount": 3},
            "metrics": {"localPath": "/out/f_pass2.md", "changePercent": 12.5},
        })
        assert isinstance(event, PassCompleteEvent)
        assert event.pass_number == 2
        assert event.file_id == "f1"
        assert event.cost.total_cost == 0.01
        assert event.metrics.local_path == "/out/f_pass2.md"
        assert event.output_path is None

    def test_progress_sizes(self):
        event = parse_event({"type": "progress", "pass": 1, "inputSize": 10, "outputSize": 8})
        assert isinstance(event, ProgressEvent)
        assert (event.input_size, event.output_size) == (10, 8)

    def test_missing_optional_fields_are_tolerated(self):
        event = parse_event({"type": "stage_update"})
        assert event is not None
        assert event.pass_number is None
        assert event.stage is None

    @pytest.mark.parametrize("type_", ["complete", "stream_end", "done"])
    def test_terminal_types(self, type_):
        assert parse_event({"type": type_}).is_terminal

    @pytest.mark.parametrize("type_", ["pass_start", "error", "plan", "job", "warning", "info"])
    def test_non_terminal_types(self, type_):
        assert not parse_event({"type": type_}).is_terminal


class TestQuarantine:
    def test_unknown_type_is_quarantined(self, caplog):
        assert parse_event({"type": "heartbeat", "message": "still here"}) is None
        assert "Quarantined" in caplog.text

    def test_missing_type_is_quarantined(self):
        assert parse_event({"pass": 1}) is None

    def test_wrong_field_type_is_quarantined(self):
        assert parse_event({"type": "pass_start", "pass": "second"}) is None

    def test_non_dict_is_quarantined(self):
        assert parse_event(["pass_start"]) is None


class TestDumpEvent:
    def test_dump_uses_wire_names_and_keeps_extras(self):
        raw = {
            "type": "pass_complete",
            "fileId": "f1",
            "pass": 3,
            "outputPath": "/out/f.md",
            "textContent": "refined text",
        }
        dumped = dump_event(parse_event(raw))
        assert dumped == raw

    def test_dump_omits_absent_fields(self):
        assert dump_event(StreamEndEvent(type="stream_end")) == {"type": "stream_end"}


class TestAlertText:
    def test_prefers_error(self):
        assert alert_text(ErrorEvent(type="error", error="boom", message="msg")) == "boom"

    def test_falls_back_to_message(self):
        assert alert_text(ErrorEvent(type="error", message="msg")) == "msg"

    def test_unknown_error(self):
        assert alert_text(ErrorEvent(type="error")) == "Unknown error"
