from models.events import parse_event
from models.progress import PassState
from tracker import pass_progress


def _ev(type_: str, **fields):
    return parse_event({"type": type_, **fields})


def _fold(events, total_passes=3):
    passes = {}
    for event in events:
        passes = pass_progress.apply(passes, event, total_passes)
    return passes


# ---------------------------------------------------------------------------
# advance
# ---------------------------------------------------------------------------

def test_advance_never_moves_backwards():
    assert pass_progress.advance("pending", "running") == "running"
    assert pass_progress.advance("running", "completed") == "completed"
    assert pass_progress.advance("completed", "running") == "completed"
    assert pass_progress.advance("running", "pending") == "running"


# ---------------------------------------------------------------------------
# apply
# ---------------------------------------------------------------------------

class TestPassStart:
    def test_prepopulates_all_passes(self):
        passes = _fold([_ev("pass_start", **{"pass": 1})])
        assert sorted(passes) == [1, 2, 3]
        assert passes[1].status == "running"
        assert passes[1].current_stage == "starting"
        assert passes[2].status == "pending"
        assert passes[3].status == "pending"

    def test_prepopulates_only_missing_entries(self):
        passes = _fold([
            _ev("pass_start", **{"pass": 1}),
            _ev("pass_complete", **{"pass": 1}),
            _ev("pass_start", **{"pass": 2}),
        ])
        assert passes[1].status == "completed"
        assert passes[2].status == "running"
        assert passes[3].status == "pending"

    def test_late_pass_start_does_not_reopen_completed_pass(self):
        passes = _fold([
            _ev("pass_complete", **{"pass": 2}),
            _ev("pass_start", **{"pass": 2}),
        ])
        assert passes[2].status == "completed"


class TestStageUpdate:
    def test_creates_missing_entry_as_running(self):
        passes = _fold([_ev("stage_update", stage="rewriting", **{"pass": 2})])
        assert passes == {2: PassState(pass_number=2, status="running", current_stage="rewriting")}

    def test_keeps_completed_status_but_records_stage(self):
        passes = _fold([
            _ev("pass_complete", **{"pass": 1}),
            _ev("stage_update", stage="finalizing", **{"pass": 1}),
        ])
        assert passes[1].status == "completed"
        assert passes[1].current_stage == "finalizing"


class TestProgress:
    def test_overwrites_only_nonzero_sizes(self):
        passes = _fold([
            _ev("progress", inputSize=100, outputSize=80, **{"pass": 1}),
            _ev("progress", inputSize=0, outputSize=90, **{"pass": 1}),
        ])
        assert passes[1].input_chars == 100
        assert passes[1].output_chars == 90


class TestPassComplete:
    def test_sets_completed_and_chars(self):
        passes = _fold([
            _ev("pass_start", **{"pass": 1}),
            _ev("pass_complete", inputChars=1000, outputChars=950, **{"pass": 1}),
        ])
        assert passes[1].status == "completed"
        assert (passes[1].input_chars, passes[1].output_chars) == (1000, 950)

    def test_out_of_order_arrival_ends_completed(self):
        passes = _fold([
            _ev("pass_complete", **{"pass": 2}),
            _ev("stage_update", stage="late", **{"pass": 2}),
            _ev("progress", inputSize=5, **{"pass": 2}),
        ])
        assert passes[2].status == "completed"
        assert passes[2].input_chars == 5


class TestUnchanged:
    def test_irrelevant_event_returns_same_object(self):
        passes = _fold([_ev("pass_start", **{"pass": 1})])
        assert pass_progress.apply(passes, _ev("plan"), 3) is passes

    def test_event_without_pass_is_skipped(self):
        passes = {}
        assert pass_progress.apply(passes, _ev("stage_update", stage="x"), 3) is passes

    def test_apply_does_not_mutate_input(self):
        before = _fold([_ev("pass_start", **{"pass": 1})])
        snapshot = dict(before)
        pass_progress.apply(before, _ev("pass_complete", **{"pass": 1}), 3)
        assert before == snapshot


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def test_ordered_and_completed_numbers():
    passes = _fold([
        _ev("pass_complete", **{"pass": 3}),
        _ev("pass_start", **{"pass": 1}),
        _ev("pass_complete", **{"pass": 1}),
    ])
    assert [p.pass_number for p in pass_progress.ordered(passes)] == [1, 2, 3]
    assert pass_progress.completed_pass_numbers(passes) == [1, 3]
