"""Liveness watchdog. Keeps the processing flag from getting stuck.

Two independent deadlines are armed when a job starts:
  - hard timeout: fires unconditionally; the job is timed out
  - stall probe:  fires once and inspects the events seen so far; the job is
                  completed if a terminal event was missed, or assumed
                  complete if the final pass already reported completion

The timers live on the running asyncio loop and are not persisted; after a
restart a restored "processing" job has no watchdog until it is reset.
"""
import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import cast

from models.events import ProcessingEvent
from models.notifications import TerminalReason

logger = logging.getLogger(__name__)


class LivenessWatchdog:
    def __init__(
        self,
        hard_timeout: float,
        stall_check: float,
        on_timeout: Callable[[], None],
        on_stall: Callable[[], None],
    ) -> None:
        self.hard_timeout = hard_timeout
        self.stall_check = stall_check
        self._on_timeout = on_timeout
        self._on_stall = on_stall
        self._hard: asyncio.TimerHandle | None = None
        self._stall: asyncio.TimerHandle | None = None

    @property
    def armed(self) -> bool:
        return self._hard is not None or self._stall is not None

    def arm(self) -> None:
        """Start both deadlines. Must be called from inside the event loop."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._hard = loop.call_later(self.hard_timeout, self._fire_hard)
        self._stall = loop.call_later(self.stall_check, self._fire_stall)
        logger.debug("Watchdog armed: hard=%.1fs stall=%.1fs", self.hard_timeout, self.stall_check)

    def cancel(self) -> None:
        """Stop both deadlines. Safe to call any number of times."""
        for handle in (self._hard, self._stall):
            if handle is not None:
                handle.cancel()
        self._hard = None
        self._stall = None

    def _fire_hard(self) -> None:
        self._hard = None
        logger.warning("Hard timeout of %.1fs reached", self.hard_timeout)
        self._on_timeout()

    def _fire_stall(self) -> None:
        self._stall = None
        logger.debug("Stall probe fired after %.1fs", self.stall_check)
        self._on_stall()


def stall_verdict(
    events: Sequence[ProcessingEvent],
    final_pass: int,
) -> tuple[TerminalReason, ProcessingEvent] | None:
    """Decide whether a silent job is actually finished.

    Returns ``(reason, event)`` where reason is the terminal event type or
    ``"assumed_complete"``, or None when the job should keep running.
    """
    if not events:
        return None
    last = events[-1]
    if last.is_terminal:
        return cast(TerminalReason, last.type), last

    final_completions = [
        e for e in events
        if e.type == "pass_complete" and e.pass_number and e.pass_number >= final_pass
    ]
    if final_completions:
        return "assumed_complete", final_completions[-1]
    return None
