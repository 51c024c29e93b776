"""Fetch frame activity — download one year's WMS image to working storage.

This activity takes a ``FrameRequest``, performs a single HTTP GET with
``httpx``, and decides from the declared ``Content-Type`` whether the
body is a usable frame:

- **image/*** → body written to the request's destination path,
  ``FetchResult.success``.
- **anything else** (WMS ``ServiceException`` XML, HTML error pages, a
  missing header) → body preserved under the run's diagnostics
  directory, ``FetchResult.failed`` with ``NonImageResponse``.
- **transport error or HTTP error status** → ``FetchResult.failed``
  with ``NetworkFailure``.
- **disk write failure** (frame or diagnostic) → ``FetchResult.failed``
  with ``FrameWriteError``.

Per-frame failures are returned, never raised, so one bad year cannot
abort the run.  The activity does **not** retry; retry policy belongs to
the orchestrator, which reads ``FetchResult.retryable``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

import httpx

from sat_timelapse.core.constants import extension_for_content_type
from sat_timelapse.core.exceptions import FrameWriteError, NetworkFailure, NonImageResponse
from sat_timelapse.models.frames import FetchResult

if TYPE_CHECKING:
    from pathlib import Path

    from sat_timelapse.models.geo import FrameRequest
    from sat_timelapse.utils.workspace import RunWorkspace

logger = logging.getLogger("sat_timelapse.activities.fetch_frame")

# HTTP statuses worth retrying: throttling and server-side errors.
_RETRYABLE_STATUS_MIN = 500
_TOO_MANY_REQUESTS = 429


def is_image_content_type(content_type: str) -> bool:
    """Return whether a ``Content-Type`` header declares image data."""
    return content_type.strip().lower().startswith("image")


async def fetch_frame(
    request: FrameRequest,
    *,
    client: httpx.AsyncClient,
    workspace: RunWorkspace,
) -> FetchResult:
    """Download the frame for *request* and report the outcome.

    Args:
        request: The per-year WMS request.
        client: Shared async HTTP client (owns timeouts and redirects).
        workspace: Run workspace used for diagnostic files.

    Returns:
        ``FetchResult.success`` with the stored path, or
        ``FetchResult.failed`` carrying the reason and whether a retry
        could help.
    """
    run_id = workspace.run_id
    logger.info(
        "fetch_frame started | run=%s | year=%d | time=%s", run_id, request.year, request.time_param
    )

    start_time = time.monotonic()
    try:
        response = await client.get(request.url)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        error = NetworkFailure(
            f"Imagery service returned HTTP {status}",
            retryable=status >= _RETRYABLE_STATUS_MIN or status == _TOO_MANY_REQUESTS,
            correlation_id=run_id,
        )
        return _failed(request, error, run_id)
    except httpx.HTTPError as exc:
        error = NetworkFailure(
            f"Download failed: {exc.__class__.__name__}: {exc}",
            correlation_id=run_id,
        )
        return _failed(request, error, run_id)

    content_type = response.headers.get("content-type", "")
    body = response.content

    if not is_image_content_type(content_type):
        diagnostic_path = workspace.diagnostic_path(
            request.year, extension_for_content_type(content_type)
        )
        try:
            await asyncio.to_thread(_write_bytes, diagnostic_path, body)
        except OSError as exc:
            return _write_failed(request, diagnostic_path, exc, run_id)
        error = NonImageResponse(
            content_type=content_type,
            diagnostic_path=str(diagnostic_path),
            correlation_id=run_id,
        )
        logger.warning(
            "Server did not return an image | run=%s | year=%d | content_type=%s | "
            "diagnostic=%s",
            run_id,
            request.year,
            content_type or "<missing>",
            diagnostic_path,
        )
        return FetchResult.failed(request, error, diagnostic_path=diagnostic_path)

    if not body:
        error = NonImageResponse(
            "empty image response",
            content_type=content_type,
            correlation_id=run_id,
        )
        return _failed(request, error, run_id)

    try:
        await asyncio.to_thread(_write_bytes, request.destination_path, body)
    except OSError as exc:
        return _write_failed(request, request.destination_path, exc, run_id)
    duration = time.monotonic() - start_time

    logger.info(
        "fetch_frame completed | run=%s | year=%d | path=%s | size=%d bytes | duration=%.2fs",
        run_id,
        request.year,
        request.destination_path,
        len(body),
        duration,
    )
    return FetchResult.success(request, request.destination_path, size_bytes=len(body))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _failed(
    request: FrameRequest,
    error: NetworkFailure | NonImageResponse | FrameWriteError,
    run_id: str,
) -> FetchResult:
    logger.warning(
        "fetch_frame failed | run=%s | year=%d | code=%s | retryable=%s | reason=%s",
        run_id,
        request.year,
        error.code,
        error.retryable,
        error.message,
    )
    return FetchResult.failed(request, error)


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def _write_failed(request: FrameRequest, path: Path, exc: OSError, run_id: str) -> FetchResult:
    error = FrameWriteError(
        f"Cannot write {path}: {exc.__class__.__name__}: {exc}",
        correlation_id=run_id,
    )
    return _failed(request, error, run_id)
