"""Plain-text status report of a job monitor, rendered via Jinja2.

Mirrors the live progress panel: processing flag, per-pass state, cost,
downloadable outputs and the most recent events.
"""
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from models.progress import JobStatus

# Templates live at the project root, beside settings.py
_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def render_status(status: JobStatus) -> str:
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATE_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    return env.get_template("status.txt.j2").render(status=status)
