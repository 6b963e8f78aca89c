"""Pass progress reducer: folds progress events into per-pass state.

Every update is keyed by the event's ``pass`` field, so events may arrive in
any order; a missing intermediate event just means the entry is created by
the next one that names the pass. Status never moves backwards:
pending, running, completed. A late ``stage_update`` for a completed pass
still records the stage label but keeps the pass completed.
"""
import logging
from collections.abc import Mapping

from models.events import ProcessingEvent
from models.progress import PassState, PassStatus

logger = logging.getLogger(__name__)

_STATUS_RANK: dict[str, int] = {"pending": 0, "running": 1, "completed": 2}

PassMap = Mapping[int, PassState]


def advance(current: PassStatus, target: PassStatus) -> PassStatus:
    """Return whichever of the two statuses is further along."""
    return target if _STATUS_RANK[target] > _STATUS_RANK[current] else current


def apply(passes: PassMap, event: ProcessingEvent, total_passes: int) -> PassMap:
    """Return the pass map after ``event``.

    Returns ``passes`` itself when the event does not touch pass state, so
    callers can detect a change with an identity check.
    """
    if event.type == "pass_start":
        return _on_pass_start(passes, event, total_passes)

    if event.type not in ("stage_update", "progress", "pass_complete"):
        return passes

    number = event.pass_number
    if number is None or number < 1:
        logger.debug("%s event without a pass number; pass state unchanged", event.type)
        return passes

    current = passes.get(number) or PassState(pass_number=number, status="running")
    if event.type == "stage_update":
        updated = current.model_copy(update={
            "current_stage": event.stage,
            "status": advance(current.status, "running"),
        })
    elif event.type == "progress":
        changes: dict = {}
        if event.input_size:
            changes["input_chars"] = event.input_size
        if event.output_size:
            changes["output_chars"] = event.output_size
        updated = current.model_copy(update=changes)
    else:
        updated = current.model_copy(update={
            "status": "completed",
            "input_chars": event.input_chars,
            "output_chars": event.output_chars,
        })

    result = dict(passes)
    result[number] = updated
    return result


def _on_pass_start(passes: PassMap, event: ProcessingEvent, total_passes: int) -> PassMap:
    result = dict(passes)
    for n in range(1, total_passes + 1):
        if n not in result:
            result[n] = PassState(pass_number=n, status="pending")

    number = event.pass_number
    if number is None or number < 1:
        return result

    existing = result.get(number)
    if existing is not None and existing.status == "completed":
        logger.debug("pass_start for completed pass %d ignored", number)
        return result
    result[number] = PassState(pass_number=number, status="running", current_stage="starting")
    return result


def ordered(passes: PassMap) -> list[PassState]:
    return [passes[n] for n in sorted(passes)]


def completed_pass_numbers(passes: PassMap) -> list[int]:
    return sorted(n for n, p in passes.items() if p.status == "completed")
