"""Unified pipeline exception taxonomy.

Provides a shared base exception hierarchy for all pipeline activities
and both entry points. Every domain exception inherits from
``PipelineError`` and carries structured context fields that enable
consistent retry decisions, HTTP status mapping, and operator
diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``   — input/contract violations, never retryable.
- ``TransientError``    — temporary failures (network, throttle), retryable.
- ``PermanentError``    — unrecoverable domain failures, not retryable.
- ``ContractError``     — malformed payloads at the ingress boundary.

Per-frame errors (``NetworkFailure``, ``NonImageResponse``,
``FrameWriteError``) are recorded on the fetch result and never abort a
run. Stage errors (``NoFramesAvailable``, ``FrameDecodeError``,
``AnimationEncodeError``, ``TranscodeError``) abort the run and are
surfaced to the caller.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and HTTP error bodies.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"fetch_frame"``, ``"transcode_video"``).
        code: Machine-readable error code (e.g. ``"TRANSCODE_FAILED"``).
        retryable: Whether the orchestrator may retry the operation.
        correlation_id: Run identifier of the failing pipeline run.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(PipelineError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PipelineError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(PipelineError):
    """Malformed payload at a pipeline boundary. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InvalidInput(ValidationError):
    """Missing or malformed trigger input (latitude, longitude, years)."""

    default_stage = "validate_input"
    default_code = "INVALID_INPUT"


class InvalidGeoQuery(InvalidInput):
    """Geographic parameters absent, non-finite, or out of range."""

    default_stage = "build_request"
    default_code = "INVALID_GEO_QUERY"


# ---------------------------------------------------------------------------
# Per-frame errors (recovered by skipping the frame)
# ---------------------------------------------------------------------------


class NetworkFailure(TransientError):
    """Transport-level failure or HTTP error status for one frame."""

    default_stage = "fetch_frame"
    default_code = "NETWORK_FAILURE"


class NonImageResponse(PermanentError):
    """Upstream answered with something other than image data.

    Attributes:
        content_type: The declared ``Content-Type`` header (may be empty).
        diagnostic_path: Where the response body was preserved.
    """

    default_stage = "fetch_frame"
    default_code = "NON_IMAGE_RESPONSE"

    def __init__(
        self,
        message: str = "non-image response",
        *,
        content_type: str = "",
        diagnostic_path: str = "",
        **kwargs: object,
    ) -> None:
        self.content_type = content_type
        self.diagnostic_path = diagnostic_path
        super().__init__(message, **kwargs)


class FrameWriteError(PermanentError):
    """A downloaded body could not be written to working storage."""

    default_stage = "fetch_frame"
    default_code = "FRAME_WRITE_FAILED"


# ---------------------------------------------------------------------------
# Stage errors (fatal for the run)
# ---------------------------------------------------------------------------


class NoFramesAvailable(PermanentError):
    """Every requested year failed to fetch."""

    default_stage = "fetch_frames"
    default_code = "NO_FRAMES_AVAILABLE"


class FrameDecodeError(PermanentError):
    """A fetched frame could not be decoded during assembly."""

    default_stage = "assemble_frames"
    default_code = "FRAME_DECODE_FAILED"


class AnimationEncodeError(PermanentError):
    """The encoded animation does not hold one frame per input frame."""

    default_stage = "assemble_frames"
    default_code = "ANIMATION_ENCODE_FAILED"


class TranscodeError(PermanentError):
    """The external transcoder failed to produce a video.

    Attributes:
        diagnostics: Diagnostic output of the transcoding process
            (typically the tail of ffmpeg's stderr).
    """

    default_stage = "transcode_video"
    default_code = "TRANSCODE_FAILED"

    def __init__(self, message: str = "", *, diagnostics: str = "", **kwargs: object) -> None:
        self.diagnostics = diagnostics
        super().__init__(message, **kwargs)

    def to_error_dict(self) -> dict[str, object]:
        """Include the transcoder diagnostics in the structured payload."""
        payload = super().to_error_dict()
        payload["diagnostics"] = self.diagnostics
        return payload
