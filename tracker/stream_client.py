"""HTTP client for the refinement backend.

``stream_refinement`` posts a job and yields the backend's progress events
as raw dicts. The backend answers with Server-Sent Events:

    :ok                                  comment or keepalive, ignored
    data: {"type": "pass_start", ...}    one JSON event per frame
    event: done                          named frame; an empty data object
    data: {}                             becomes {"type": "done"}

Frames whose data is not a JSON object are logged and skipped. Validation
into typed events happens in the monitor, not here.
"""
import json
import logging
from collections.abc import AsyncIterator
from pathlib import PurePosixPath
from typing import Any

import httpx

from models.job_request import RefinementRequest
from settings import Settings

logger = logging.getLogger(__name__)


class BackendError(RuntimeError):
    """The backend rejected a request or the connection failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RefinerClient:
    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        # Reads on the event stream may legitimately wait for minutes between passes
        timeout = httpx.Timeout(settings.request_timeout_seconds, read=None)
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "RefinerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def stream_refinement(self, request: RefinementRequest) -> AsyncIterator[dict[str, Any]]:
        """POST the job and yield each event the backend streams back."""
        url = self._url("/refine/run")
        logger.info("Submitting refinement job to %s", url)
        try:
            async with self._client.stream(
                "POST", url, json=request.to_payload(), headers=self._headers(),
            ) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise BackendError(
                        body or f"Backend returned {response.status_code}",
                        status_code=response.status_code,
                    )
                async for event in iter_sse_events(response.aiter_lines()):
                    yield event
        except httpx.HTTPError as exc:
            raise BackendError(f"Stream read failed: {exc}") from exc

    async def download_output(self, path: str) -> bytes:
        """Fetch a pass output file. Only the basename is sent; the backend resolves it."""
        file_name = PurePosixPath(path).name or path
        response = await self._get("/files/serve", params={"file_path": file_name})
        return response.content

    async def fetch_logs(self, lines: int = 200) -> dict[str, Any]:
        response = await self._get("/logs", params={"lines": lines})
        return response.json()

    async def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        try:
            response = await self._client.get(self._url(path), params=params, headers=self._headers())
        except httpx.HTTPError as exc:
            raise BackendError(f"Request to {path} failed: {exc}") from exc
        if response.is_error:
            raise BackendError(
                response.text or f"Backend returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def _url(self, path: str) -> str:
        return f"{self.settings.backend_url}{path}"

    def _headers(self) -> dict[str, str]:
        return {"X-API-Key": self.settings.backend_api_key or ""}


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[dict[str, Any]]:
    """Decode SSE lines into event dicts."""
    data_lines: list[str] = []
    event_name: str | None = None
    async for line in lines:
        if not line:
            event = _decode_frame(data_lines, event_name)
            if event is not None:
                yield event
            data_lines, event_name = [], None
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            data_lines.append(value)
        elif field == "event":
            event_name = value
    event = _decode_frame(data_lines, event_name)
    if event is not None:
        yield event


def _decode_frame(data_lines: list[str], event_name: str | None) -> dict[str, Any] | None:
    if not data_lines:
        return None
    payload = "\n".join(data_lines)
    try:
        obj = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Skipping undecodable SSE frame: %.200s", payload)
        return None
    if not isinstance(obj, dict):
        logger.warning("Skipping non-object SSE frame: %.200s", payload)
        return None
    if event_name and "type" not in obj:
        obj["type"] = event_name
    return obj
