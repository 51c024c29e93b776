"""Pipeline configuration loaded from environment variables.

Every configuration value has a working default: NASA GIBS MODIS
true-colour imagery, a 0.5° box around the point, 512 px frames and
800 ms per frame.  Azure Functions
app settings (or ``local.settings.json`` for local dev) and the shell
environment for the CLI are the source of truth.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out
    of its valid range, so bad configuration is caught at startup
    rather than halfway through a run.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from sat_timelapse.core.constants import (
    DEFAULT_ANIMATION_LOOP,
    DEFAULT_ANIMATION_QUALITY,
    DEFAULT_BBOX_HALF_WIDTH_DEG,
    DEFAULT_CANVAS_SIZE_PX,
    DEFAULT_FRAME_DELAY_MS,
    DEFAULT_WMS_BASE_URL,
    DEFAULT_WMS_CRS,
    DEFAULT_WMS_IMAGE_FORMAT,
    DEFAULT_WMS_LAYER,
    DEFAULT_YEAR,
    FRAMES_DIRNAME,
    OUTPUT_DIRNAME,
)
from sat_timelapse.core.exceptions import PipelineError
from sat_timelapse.models.frames import (
    MAX_ANIMATION_QUALITY,
    MIN_ANIMATION_QUALITY,
    AnimationSettings,
)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class ConfigValidationError(PipelineError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable pipeline configuration.

    Loaded once per process and threaded through the orchestrator.

    Attributes:
        wms_base_url: GetMap endpoint of the WMS imagery service.
        wms_layer: WMS layer identifier requested for every frame.
        wms_image_format: Output raster format requested from the WMS.
        wms_crs: Coordinate reference system of the bounding box.
        bbox_half_width_deg: Half-width of the box around the point (degrees).
        default_year: Year fetched when a request lists none.
        work_dir: Root of the working storage (frames and output areas).
        canvas_size_px: Square canvas size of the animation (pixels).
        frame_delay_ms: Display time of each animation frame (milliseconds).
        animation_loop: Whether the animation loops forever.
        animation_quality: Quantizer sampling factor, 1 (best) to 30 (fastest).
        http_timeout_s: Timeout for one WMS request (seconds).
        fetch_concurrency: Maximum simultaneous frame downloads (1 = sequential).
        fetch_max_retries: Orchestrator retries for retryable network failures.
        fetch_retry_base_s: Exponential backoff base between retries (seconds).
        ffmpeg_binary: Name or path of the ffmpeg executable.
        transcode_timeout_s: Upper bound on one ffmpeg invocation (seconds).
        keep_intermediates: Keep frames, diagnostics and GIF after a run.
    """

    wms_base_url: str = DEFAULT_WMS_BASE_URL
    wms_layer: str = DEFAULT_WMS_LAYER
    wms_image_format: str = DEFAULT_WMS_IMAGE_FORMAT
    wms_crs: str = DEFAULT_WMS_CRS
    bbox_half_width_deg: float = DEFAULT_BBOX_HALF_WIDTH_DEG
    default_year: int = DEFAULT_YEAR
    work_dir: Path = field(default_factory=Path.cwd)
    canvas_size_px: int = DEFAULT_CANVAS_SIZE_PX
    frame_delay_ms: int = DEFAULT_FRAME_DELAY_MS
    animation_loop: bool = DEFAULT_ANIMATION_LOOP
    animation_quality: int = DEFAULT_ANIMATION_QUALITY
    http_timeout_s: float = 60.0
    fetch_concurrency: int = 4
    fetch_max_retries: int = 0
    fetch_retry_base_s: float = 1.0
    ffmpeg_binary: str = "ffmpeg"
    transcode_timeout_s: float = 300.0
    keep_intermediates: bool = False

    @property
    def frames_dir(self) -> Path:
        """Staging area for downloaded frames and diagnostics."""
        return self.work_dir / FRAMES_DIRNAME

    @property
    def output_dir(self) -> Path:
        """Area for the assembled GIF and the transcoded video."""
        return self.work_dir / OUTPUT_DIRNAME

    def animation_settings(self) -> AnimationSettings:
        """Return the animation parameters passed to the frame assembler."""
        return AnimationSettings(
            canvas_size=self.canvas_size_px,
            frame_delay_ms=self.frame_delay_ms,
            loop=self.animation_loop,
            quality=self.animation_quality,
        )

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range, a required
                string is empty, or a boolean flag is unrecognised.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``FRAME_DELAY_MS=abc``).
        """
        config = cls(
            wms_base_url=os.getenv("WMS_BASE_URL", DEFAULT_WMS_BASE_URL),
            wms_layer=os.getenv("WMS_LAYER", DEFAULT_WMS_LAYER),
            wms_image_format=os.getenv("WMS_IMAGE_FORMAT", DEFAULT_WMS_IMAGE_FORMAT),
            wms_crs=os.getenv("WMS_CRS", DEFAULT_WMS_CRS),
            bbox_half_width_deg=float(
                os.getenv("BBOX_HALF_WIDTH_DEG", str(DEFAULT_BBOX_HALF_WIDTH_DEG))
            ),
            default_year=int(os.getenv("DEFAULT_YEAR", str(DEFAULT_YEAR))),
            work_dir=Path(os.getenv("WORK_DIR", "") or Path.cwd()),
            canvas_size_px=int(os.getenv("CANVAS_SIZE_PX", str(DEFAULT_CANVAS_SIZE_PX))),
            frame_delay_ms=int(os.getenv("FRAME_DELAY_MS", str(DEFAULT_FRAME_DELAY_MS))),
            animation_loop=_env_bool("ANIMATION_LOOP", default=DEFAULT_ANIMATION_LOOP),
            animation_quality=int(
                os.getenv("ANIMATION_QUALITY", str(DEFAULT_ANIMATION_QUALITY))
            ),
            http_timeout_s=float(os.getenv("HTTP_TIMEOUT_S", "60")),
            fetch_concurrency=int(os.getenv("FETCH_CONCURRENCY", "4")),
            fetch_max_retries=int(os.getenv("FETCH_MAX_RETRIES", "0")),
            fetch_retry_base_s=float(os.getenv("FETCH_RETRY_BASE_S", "1")),
            ffmpeg_binary=os.getenv("FFMPEG_BINARY", "ffmpeg"),
            transcode_timeout_s=float(os.getenv("TRANSCODE_TIMEOUT_S", "300")),
            keep_intermediates=_env_bool("KEEP_INTERMEDIATES", default=False),
        )
        _validate(config)
        return config


def _env_bool(key: str, *, default: bool) -> bool:
    """Parse a boolean flag from the environment."""
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigValidationError(key, raw, "must be one of true/false/1/0/yes/no/on/off")


def _validate(config: PipelineConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    for key, value in (
        ("WMS_BASE_URL", config.wms_base_url),
        ("WMS_LAYER", config.wms_layer),
        ("WMS_IMAGE_FORMAT", config.wms_image_format),
        ("WMS_CRS", config.wms_crs),
        ("FFMPEG_BINARY", config.ffmpeg_binary),
    ):
        if not value.strip():
            raise ConfigValidationError(key, value, "must not be empty")

    if not config.wms_image_format.lower().startswith("image/"):
        raise ConfigValidationError(
            "WMS_IMAGE_FORMAT",
            config.wms_image_format,
            "must be an image MIME type",
        )

    if config.bbox_half_width_deg <= 0:
        raise ConfigValidationError(
            "BBOX_HALF_WIDTH_DEG",
            config.bbox_half_width_deg,
            "must be > 0 (degrees)",
        )

    if not 1 <= config.default_year <= 9999:
        raise ConfigValidationError(
            "DEFAULT_YEAR",
            config.default_year,
            "must be between 1 and 9999",
        )

    if config.canvas_size_px <= 0:
        raise ConfigValidationError(
            "CANVAS_SIZE_PX",
            config.canvas_size_px,
            "must be > 0 (pixels)",
        )

    if config.frame_delay_ms <= 0:
        raise ConfigValidationError(
            "FRAME_DELAY_MS",
            config.frame_delay_ms,
            "must be > 0 (milliseconds)",
        )

    if not MIN_ANIMATION_QUALITY <= config.animation_quality <= MAX_ANIMATION_QUALITY:
        raise ConfigValidationError(
            "ANIMATION_QUALITY",
            config.animation_quality,
            f"must be between {MIN_ANIMATION_QUALITY} and {MAX_ANIMATION_QUALITY}",
        )

    if config.http_timeout_s <= 0:
        raise ConfigValidationError(
            "HTTP_TIMEOUT_S",
            config.http_timeout_s,
            "must be > 0 (seconds)",
        )

    if config.fetch_concurrency < 1:
        raise ConfigValidationError(
            "FETCH_CONCURRENCY",
            config.fetch_concurrency,
            "must be >= 1",
        )

    if config.fetch_max_retries < 0:
        raise ConfigValidationError(
            "FETCH_MAX_RETRIES",
            config.fetch_max_retries,
            "must be >= 0",
        )

    if config.fetch_retry_base_s < 0:
        raise ConfigValidationError(
            "FETCH_RETRY_BASE_S",
            config.fetch_retry_base_s,
            "must be >= 0 (seconds)",
        )

    if config.transcode_timeout_s <= 0:
        raise ConfigValidationError(
            "TRANSCODE_TIMEOUT_S",
            config.transcode_timeout_s,
            "must be > 0 (seconds)",
        )
