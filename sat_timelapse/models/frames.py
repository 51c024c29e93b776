"""Typed models for the frame pipeline.

Defines the data exchanged between the orchestrator and the activities:

- ``FetchResult``: Outcome of downloading one year's frame
- ``FrameSet``: Year-ordered successful frames, the animation's time axis
- ``AnimationSettings``: Canvas size, frame delay, loop and quality
- ``AnimatedArtifact``: The assembled GIF
- ``VideoArtifact``: The transcoded MP4 handed to delivery

Design notes:
- All models are frozen dataclasses; nothing is mutated after creation.
- Explicit units on every numeric field.
- No magic strings — fetch outcomes are a ``FetchStatus`` enum.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sat_timelapse.core.exceptions import NoFramesAvailable, PipelineError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

    from sat_timelapse.models.geo import FrameRequest

# Quantizer sampling factor bounds (1 = best colours, 30 = fastest).
MIN_ANIMATION_QUALITY = 1
MAX_ANIMATION_QUALITY = 30


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, PipelineError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        PipelineError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Fetch results
# ---------------------------------------------------------------------------


class FetchStatus(enum.Enum):
    """Outcome of one frame download."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of fetching the frame for one year.

    Build instances with ``FetchResult.success`` or ``FetchResult.failed``.

    Attributes:
        request: The request that was fetched.
        status: Whether a usable frame was stored.
        local_path: Stored frame (successes only).
        failure_reason: Human-readable reason (failures only).
        failure_code: Error code of the failure (e.g. ``"NETWORK_FAILURE"``).
        retryable: Whether the orchestrator may retry the fetch.
        diagnostic_path: Preserved non-image response body, if any.
        size_bytes: Bytes written for the frame.
        attempts: Number of fetch attempts made for this year.
    """

    request: FrameRequest
    status: FetchStatus
    local_path: Path | None = None
    failure_reason: str = ""
    failure_code: str = ""
    retryable: bool = False
    diagnostic_path: Path | None = None
    size_bytes: int = 0
    attempts: int = 1

    def __post_init__(self) -> None:
        if self.status is FetchStatus.SUCCESS and self.local_path is None:
            raise ModelValidationError(
                "FetchResult", "local_path", None, "required for successful fetches"
            )
        if self.status is FetchStatus.FAILED and not self.failure_reason:
            raise ModelValidationError(
                "FetchResult", "failure_reason", "", "required for failed fetches"
            )
        _check_min("FetchResult", "attempts", self.attempts, 1)

    @classmethod
    def success(cls, request: FrameRequest, local_path: Path, *, size_bytes: int = 0) -> FetchResult:
        """Record a frame stored at *local_path*."""
        return cls(
            request=request,
            status=FetchStatus.SUCCESS,
            local_path=local_path,
            size_bytes=size_bytes,
        )

    @classmethod
    def failed(
        cls,
        request: FrameRequest,
        error: PipelineError,
        *,
        diagnostic_path: Path | None = None,
    ) -> FetchResult:
        """Record a per-frame failure described by *error*."""
        return cls(
            request=request,
            status=FetchStatus.FAILED,
            failure_reason=error.message or error.code,
            failure_code=error.code,
            retryable=error.retryable,
            diagnostic_path=diagnostic_path,
        )

    @property
    def year(self) -> int:
        return self.request.year

    @property
    def succeeded(self) -> bool:
        return self.status is FetchStatus.SUCCESS


# ---------------------------------------------------------------------------
# Frame set
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Frame:
    """One successfully fetched frame."""

    year: int
    path: Path


@dataclass(frozen=True, slots=True)
class FrameSet:
    """Successfully fetched frames in strictly ascending year order.

    The order of ``frames`` is the temporal axis of the animation.
    """

    frames: tuple[Frame, ...] = ()

    def __post_init__(self) -> None:
        years = [f.year for f in self.frames]
        if any(a >= b for a, b in zip(years, years[1:], strict=False)):
            raise ModelValidationError(
                "FrameSet", "frames", years, "years must be strictly ascending"
            )

    @classmethod
    def from_results(cls, results: Iterable[FetchResult]) -> FrameSet:
        """Keep the successful results and order them by year."""
        frames = [
            Frame(year=r.year, path=r.local_path)  # type: ignore[arg-type]
            for r in results
            if r.succeeded
        ]
        frames.sort(key=lambda f: f.year)
        return cls(frames=tuple(frames))

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)

    @property
    def years(self) -> list[int]:
        return [f.year for f in self.frames]

    @property
    def paths(self) -> list[Path]:
        return [f.path for f in self.frames]

    def require_non_empty(self, *, correlation_id: str = "") -> FrameSet:
        """Return ``self``, or raise ``NoFramesAvailable`` if empty."""
        if not self.frames:
            msg = "No valid images downloaded"
            raise NoFramesAvailable(msg, correlation_id=correlation_id)
        return self


# ---------------------------------------------------------------------------
# Animation and video
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AnimationSettings:
    """Parameters of the assembled animation.

    Attributes:
        canvas_size: Width and height of the square canvas in pixels.
        frame_delay_ms: Display time of each frame in milliseconds.
        loop: Loop forever (``True``) or play once (``False``).
        quality: Quantizer sampling factor, 1 (best) to 30 (fastest).
    """

    canvas_size: int = 512
    frame_delay_ms: int = 800
    loop: bool = True
    quality: int = 10

    def __post_init__(self) -> None:
        _check_min("AnimationSettings", "canvas_size", self.canvas_size, 1)
        _check_min("AnimationSettings", "frame_delay_ms", self.frame_delay_ms, 1)
        _check_range(
            "AnimationSettings",
            "quality",
            self.quality,
            MIN_ANIMATION_QUALITY,
            MAX_ANIMATION_QUALITY,
        )


@dataclass(frozen=True, slots=True)
class AnimatedArtifact:
    """An assembled animation on local disk.

    Attributes:
        path: Location of the animated image.
        frame_count: Number of frames encoded.
        per_frame_delay_ms: Display time of each frame in milliseconds.
        loop: Whether the animation loops forever.
    """

    path: Path
    frame_count: int
    per_frame_delay_ms: int
    loop: bool

    def __post_init__(self) -> None:
        _check_min("AnimatedArtifact", "frame_count", self.frame_count, 1)
        _check_min("AnimatedArtifact", "per_frame_delay_ms", self.per_frame_delay_ms, 1)


@dataclass(frozen=True, slots=True)
class VideoArtifact:
    """The transcoded video, ready for delivery.

    Attributes:
        path: Location of the video container.
        size_bytes: Size of the video file in bytes.
    """

    path: Path
    size_bytes: int = 0

    def __post_init__(self) -> None:
        _check_min("VideoArtifact", "size_bytes", self.size_bytes, 0)


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_range(model: str, field_name: str, value: float, lo: float, hi: float) -> None:
    """Raise `ModelValidationError` if *value* falls outside [lo, hi]."""
    if value < lo or value > hi:
        raise ModelValidationError(model, field_name, value, f"must be between {lo} and {hi}")


def _check_min(model: str, field_name: str, value: float | int, lo: float | int) -> None:
    """Raise `ModelValidationError` if *value* is below *lo*."""
    if value < lo:
        raise ModelValidationError(model, field_name, value, f"must be >= {lo}")
