"""Transcode video activity — convert the animated GIF to MP4 with ffmpeg.

The external ``ffmpeg`` process is awaited as a single-shot result:
``transcode_video`` either returns one ``VideoArtifact`` or raises one
``TranscodeError`` carrying ffmpeg's diagnostic output.  It never
reports both, and never fails silently.

Cancelling the awaiting task kills the ffmpeg process before the
cancellation propagates, so an abandoned run leaves no orphan encoder.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING

from sat_timelapse.core.exceptions import TranscodeError
from sat_timelapse.models.frames import VideoArtifact

if TYPE_CHECKING:
    from pathlib import Path

    from sat_timelapse.models.frames import AnimatedArtifact

logger = logging.getLogger("sat_timelapse.activities.transcode_video")

DEFAULT_TRANSCODE_TIMEOUT_S = 300.0

# Keep only the end of ffmpeg's stderr in error payloads.
_DIAGNOSTICS_MAX_CHARS = 4000


def build_ffmpeg_command(source: Path, output_path: Path, *, ffmpeg_binary: str = "ffmpeg") -> list[str]:
    """Return the ffmpeg argument vector for a GIF → MP4 conversion.

    ``yuv420p`` and even frame dimensions keep the output playable in
    browsers and mobile players; everything else is ffmpeg's default.
    """
    return [
        ffmpeg_binary,
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-i",
        str(source),
        "-movflags",
        "+faststart",
        "-pix_fmt",
        "yuv420p",
        "-vf",
        "scale=trunc(iw/2)*2:trunc(ih/2)*2",
        str(output_path),
    ]


async def transcode_video(
    artifact: AnimatedArtifact,
    output_path: Path,
    *,
    ffmpeg_binary: str = "ffmpeg",
    timeout_s: float = DEFAULT_TRANSCODE_TIMEOUT_S,
    correlation_id: str = "",
) -> VideoArtifact:
    """Transcode *artifact* into a video container at *output_path*.

    Args:
        artifact: The assembled animation.
        output_path: Destination of the video (overwritten if present).
        ffmpeg_binary: Name or path of the ffmpeg executable.
        timeout_s: Kill ffmpeg and fail after this many seconds.
        correlation_id: Run identifier attached to raised errors.

    Returns:
        A ``VideoArtifact`` for the written file.

    Raises:
        TranscodeError: If the input is missing, ffmpeg cannot be started,
            exits non-zero, times out, or writes no output.
    """
    if not artifact.path.is_file():
        msg = f"Animated artifact not found: {artifact.path}"
        raise TranscodeError(msg, correlation_id=correlation_id)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    command = build_ffmpeg_command(artifact.path, output_path, ffmpeg_binary=ffmpeg_binary)

    logger.info(
        "transcode_video started | run=%s | source=%s | frames=%d | output=%s",
        correlation_id,
        artifact.path,
        artifact.frame_count,
        output_path,
    )
    start_time = time.monotonic()

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        msg = f"Cannot start transcoder {ffmpeg_binary!r}: {exc}"
        raise TranscodeError(msg, diagnostics=str(exc), correlation_id=correlation_id) from exc

    try:
        _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_s)
    except TimeoutError as exc:
        await _terminate(process)
        msg = f"ffmpeg timed out after {timeout_s:g}s"
        raise TranscodeError(msg, correlation_id=correlation_id) from exc
    except asyncio.CancelledError:
        await _terminate(process)
        logger.warning("transcode_video cancelled | run=%s", correlation_id)
        raise

    diagnostics = _tail(stderr)
    if process.returncode != 0:
        msg = f"ffmpeg exited with code {process.returncode}"
        raise TranscodeError(msg, diagnostics=diagnostics, correlation_id=correlation_id)

    if not output_path.is_file() or output_path.stat().st_size == 0:
        msg = f"ffmpeg reported success but wrote no output at {output_path}"
        raise TranscodeError(msg, diagnostics=diagnostics, correlation_id=correlation_id)

    size_bytes = output_path.stat().st_size
    duration = time.monotonic() - start_time
    logger.info(
        "transcode_video completed | run=%s | path=%s | size=%d bytes | duration=%.2fs",
        correlation_id,
        output_path,
        size_bytes,
        duration,
    )
    return VideoArtifact(path=output_path, size_bytes=size_bytes)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill *process* if still running and reap it."""
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()


def _tail(stderr: bytes | None) -> str:
    text = (stderr or b"").decode("utf-8", errors="replace").strip()
    return text[-_DIAGNOSTICS_MAX_CHARS:]
