from models.events import parse_event
from tracker import artifact_index


def _complete(file_id="f1", pass_number=1, **fields):
    raw = {"type": "pass_complete", "pass": pass_number, **fields}
    if file_id is not None:
        raw["fileId"] = file_id
    return parse_event(raw)


class TestResolveOutputPath:
    def test_falls_back_to_metrics_local_path(self):
        event = _complete(metrics={"localPath": "/out/a_pass1.md"})
        assert artifact_index.resolve_output_path(event).output_path == "/out/a_pass1.md"

    def test_explicit_output_path_wins(self):
        event = _complete(outputPath="/out/explicit.md", metrics={"localPath": "/out/other.md"})
        assert artifact_index.resolve_output_path(event) is event

    def test_other_event_types_untouched(self):
        event = parse_event({"type": "progress", "metrics": {"localPath": "/x"}})
        assert artifact_index.resolve_output_path(event) is event


class TestApply:
    def test_creates_entry_with_default_name(self):
        entries = artifact_index.apply([], _complete(outputPath="/out/a.md", outputChars=42))
        assert len(entries) == 1
        assert entries[0].file_name == "File f1"
        assert entries[0].passes[0].path == "/out/a.md"
        assert entries[0].passes[0].size == 42

    def test_uses_event_file_name(self):
        entries = artifact_index.apply([], _complete(outputPath="/out/a.md", fileName="essay.md"))
        assert entries[0].file_name == "essay.md"

    def test_duplicate_pass_is_ignored(self):
        event = _complete(outputPath="/out/a.md")
        entries = artifact_index.apply([], event)
        assert artifact_index.apply(entries, event) is entries

    def test_passes_stay_sorted(self):
        entries = []
        for n in (3, 1, 2):
            entries = artifact_index.apply(entries, _complete(pass_number=n, outputPath=f"/out/p{n}.md"))
        assert entries[0].pass_numbers() == [1, 2, 3]

    def test_missing_output_path_is_skipped(self):
        entries = []
        assert artifact_index.apply(entries, _complete()) is entries

    def test_missing_file_id_groups_under_unknown(self):
        entries = artifact_index.apply([], _complete(file_id=None, outputPath="/out/a.md"))
        assert entries[0].file_id == artifact_index.UNKNOWN_FILE_ID

    def test_files_keep_arrival_order(self):
        entries = artifact_index.apply([], _complete(file_id="b", outputPath="/out/b.md"))
        entries = artifact_index.apply(entries, _complete(file_id="a", outputPath="/out/a.md"))
        assert [e.file_id for e in entries] == ["b", "a"]


def test_rebuild_matches_incremental_application():
    events = [
        parse_event({"type": "pass_start", "pass": 1}),
        _complete(pass_number=2, metrics={"localPath": "/out/a_2.md"}),
        _complete(file_id="g", pass_number=1, outputPath="/out/g_1.md"),
        _complete(pass_number=1, outputPath="/out/a_1.md"),
        _complete(pass_number=1, outputPath="/out/a_1.md"),
    ]
    incremental = []
    for event in events:
        incremental = artifact_index.apply(incremental, artifact_index.resolve_output_path(event))

    rebuilt = artifact_index.rebuild(events)
    assert rebuilt == incremental
    assert rebuilt[0].pass_numbers() == [1, 2]
    assert [e.file_id for e in rebuilt] == ["f1", "g"]
