"""Completed-artifact index: downloadable pass outputs per file.

The index is a pure projection of the event history: ``rebuild`` folds the
whole log and yields the same list as applying the events one at a time.
The monitor uses that to repair the index after a reload or a missed
update.
"""
from collections.abc import Iterable

from models.events import ProcessingEvent
from models.progress import CompletedFileEntry, CompletedPass

UNKNOWN_FILE_ID = "unknown"


def resolve_output_path(event: ProcessingEvent) -> ProcessingEvent:
    """Fill ``outputPath`` from ``metrics.localPath`` on pass_complete events."""
    if event.type != "pass_complete" or event.output_path:
        return event
    if event.metrics is None or not event.metrics.local_path:
        return event
    return event.model_copy(update={"output_path": event.metrics.local_path})


def apply(entries: list[CompletedFileEntry], event: ProcessingEvent) -> list[CompletedFileEntry]:
    """Index one event. Returns ``entries`` itself when nothing changes.

    Duplicate deliveries of the same pass are ignored.
    """
    if event.type != "pass_complete" or not event.pass_number or not event.output_path:
        return entries

    file_id = event.file_id or UNKNOWN_FILE_ID
    completed = CompletedPass(
        pass_number=event.pass_number,
        path=event.output_path,
        size=event.output_chars,
        cost=event.cost,
    )

    for i, entry in enumerate(entries):
        if entry.file_id != file_id:
            continue
        if event.pass_number in entry.pass_numbers():
            return entries
        passes = tuple(sorted(entry.passes + (completed,), key=lambda p: p.pass_number))
        result = list(entries)
        result[i] = entry.model_copy(update={"passes": passes})
        return result

    entry = CompletedFileEntry(
        file_id=file_id,
        file_name=event.file_name or f"File {file_id}",
        passes=(completed,),
    )
    return [*entries, entry]


def rebuild(events: Iterable[ProcessingEvent]) -> list[CompletedFileEntry]:
    entries: list[CompletedFileEntry] = []
    for event in events:
        entries = apply(entries, resolve_output_path(event))
    return entries
