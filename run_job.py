#!/usr/bin/env python3
"""Submit a refinement job and follow its progress.

Usage:
    python run_job.py --file ID:NAME:TEMP_PATH [--file ...]   # submit and follow a job
    python run_job.py --file ... --passes 2                     # override the pass count
    python run_job.py --status                                  # print the persisted status
    python run_job.py --reset                                   # reset (force reset if running)
    python run_job.py --clear-history                           # drop the persisted event log
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from models.job_request import FileDescriptor
from models.notifications import AlertNotice, JobTerminalNotice, PassProgressNotice
from models.options import ProcessingOptions
from settings import Settings
from tracker.monitor import JobMonitor
from tracker.report import render_status
from tracker.request_builder import build_request
from tracker.stream_client import BackendError, RefinerClient

logger = logging.getLogger("run_job")


def _parse_file(value: str) -> FileDescriptor:
    parts = value.split(":", 2)
    if len(parts) != 3 or not all(parts):
        raise argparse.ArgumentTypeError(f"expected ID:NAME:TEMP_PATH, got {value!r}")
    file_id, name, temp_path = parts
    return FileDescriptor(id=file_id, name=name, temp_path=temp_path)


async def _follow(monitor: JobMonitor, queue: asyncio.Queue) -> None:
    """Log notifications until the job reaches a terminal state."""
    try:
        while True:
            notice = await queue.get()
            if isinstance(notice, PassProgressNotice):
                summary = ", ".join(f"{p.pass_number}:{p.status}" for p in notice.passes)
                logger.info("Passes %s", summary)
            elif isinstance(notice, AlertNotice):
                logger.error(notice.message)
            elif isinstance(notice, JobTerminalNotice):
                logger.info("Job ended: %s", notice.reason)
                return
    finally:
        monitor.bus.unsubscribe(queue)


async def _run(settings: Settings, options: ProcessingOptions, files: list[FileDescriptor]) -> JobMonitor:
    monitor = JobMonitor(settings, total_passes=options.passes)
    if monitor.is_processing:
        logger.warning("A previous job is still marked as processing; resetting it")
        monitor.reset()

    request = build_request(options, files)
    async with RefinerClient(settings) as client:
        follower = asyncio.create_task(_follow(monitor, monitor.bus.subscribe()))
        task = monitor.start(client.stream_refinement(request), options.passes, files)
        await follower
        if not task.done():
            await asyncio.wait([task], timeout=settings.request_timeout_seconds)
    return monitor


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", action="append", type=_parse_file, default=[], dest="files",
                        help="Uploaded file as ID:NAME:TEMP_PATH (repeatable)")
    parser.add_argument("--options", type=Path, default=None,
                        help="Processing options YAML (default: <state_dir>/processing_options.yaml)")
    parser.add_argument("--passes", type=int, default=None, help="Override the configured pass count")
    parser.add_argument("--status", action="store_true", help="Print the persisted status and exit")
    parser.add_argument("--reset", action="store_true", help="Reset the processing state")
    parser.add_argument("--clear-history", action="store_true", dest="clear_history",
                        help="Remove the persisted event log")
    args = parser.parse_args()

    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.status or args.reset or args.clear_history:
        monitor = JobMonitor(settings)
        if args.clear_history:
            monitor.clear_history()
            logger.info("Event history cleared")
        if args.reset:
            logger.info("Reset: %s", monitor.reset())
        print(render_status(monitor.snapshot()))
        return

    options = ProcessingOptions.load_or_default(args.options or settings.options_path)

    try:
        if args.passes is not None:
            options = ProcessingOptions.model_validate({**options.model_dump(), "passes": args.passes})
        monitor = asyncio.run(_run(settings, options, args.files))
    except (ValueError, BackendError) as exc:
        logger.error("%s", exc)
        sys.exit(1)

    print(render_status(monitor.snapshot()))
    if monitor.phase != "completed":
        sys.exit(1)


if __name__ == "__main__":
    main()
