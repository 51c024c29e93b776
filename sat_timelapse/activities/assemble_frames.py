"""Assemble frames activity — render year-ordered frames into a looping GIF.

Each frame is decoded with Pillow, scaled to the square canvas and
composited onto a freshly cleared canvas, so frames of differing size
or transparency never bleed into each other.  Frames are encoded in
``FrameSet`` order: that order is the animation's time axis.

Every frame is stamped with its year and a progress bar.  The GIF
encoder folds a frame into its predecessor when the two are identical
(e.g. consecutive blank no-data tiles); the stamp keeps every year a
distinct frame, and the written file is checked to hold exactly one
frame per year.

Failure policy: a frame that cannot be decoded aborts the whole
assembly with ``FrameDecodeError``.  Skipping it would silently produce
an animation with a missing year.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from PIL import Image, ImageDraw, ImageFont

from sat_timelapse.core.exceptions import AnimationEncodeError, FrameDecodeError
from sat_timelapse.models.frames import AnimatedArtifact, AnimationSettings

if TYPE_CHECKING:
    from pathlib import Path

    from sat_timelapse.models.frames import Frame, FrameSet

logger = logging.getLogger("sat_timelapse.activities.assemble_frames")

# GIF loop count meaning "repeat forever".
LOOP_FOREVER = 0

# Canvas colour behind transparent frame pixels.
_CANVAS_BACKGROUND = (0, 0, 0, 255)
_LABEL_COLOUR = (255, 255, 255, 255)

# Quality thresholds: 1-10 best palette, 11-20 balanced, 21-30 fastest.
_BEST_QUALITY_MAX = 10
_BALANCED_QUALITY_MAX = 20


def assemble_frames(
    frame_set: FrameSet,
    output_path: Path,
    settings: AnimationSettings | None = None,
    *,
    correlation_id: str = "",
) -> AnimatedArtifact:
    """Encode *frame_set* as an animated GIF at *output_path*.

    Args:
        frame_set: Non-empty, year-ordered frames.
        output_path: Destination of the GIF.
        settings: Canvas size, frame delay, loop and quality.
            Defaults to ``AnimationSettings()``.
        correlation_id: Run identifier attached to raised errors.

    Returns:
        An ``AnimatedArtifact`` whose ``frame_count`` equals ``len(frame_set)``.

    Raises:
        NoFramesAvailable: If *frame_set* is empty.
        FrameDecodeError: If any frame cannot be decoded.
        AnimationEncodeError: If the written GIF does not hold one frame
            per entry of *frame_set*.
    """
    settings = settings or AnimationSettings()
    frame_set.require_non_empty(correlation_id=correlation_id)

    logger.info(
        "assemble_frames started | run=%s | frames=%d | years=%s | canvas=%dpx | delay=%dms",
        correlation_id,
        len(frame_set),
        frame_set.years,
        settings.canvas_size,
        settings.frame_delay_ms,
    )
    start_time = time.monotonic()

    font = ImageFont.load_default(size=max(10, settings.canvas_size // 16))
    total = len(frame_set)
    rendered = [
        _render_frame(frame, index, total, settings, font, correlation_id)
        for index, frame in enumerate(frame_set)
    ]

    save_kwargs: dict[str, object] = {
        "format": "GIF",
        "save_all": True,
        "append_images": rendered[1:],
        "duration": settings.frame_delay_ms,
        "disposal": 1,
    }
    if settings.loop:
        save_kwargs["loop"] = LOOP_FOREVER

    output_path.parent.mkdir(parents=True, exist_ok=True)
    rendered[0].save(output_path, **save_kwargs)

    encoded = _encoded_frame_count(output_path)
    if encoded != total:
        output_path.unlink(missing_ok=True)
        msg = f"GIF holds {encoded} frames for {total} years {frame_set.years}"
        raise AnimationEncodeError(msg, correlation_id=correlation_id)

    duration = time.monotonic() - start_time
    logger.info(
        "assemble_frames completed | run=%s | path=%s | frames=%d | duration=%.2fs",
        correlation_id,
        output_path,
        encoded,
        duration,
    )

    return AnimatedArtifact(
        path=output_path,
        frame_count=encoded,
        per_frame_delay_ms=settings.frame_delay_ms,
        loop=settings.loop,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _render_frame(
    frame: Frame,
    index: int,
    total: int,
    settings: AnimationSettings,
    font: ImageFont.ImageFont | ImageFont.FreeTypeFont,
    correlation_id: str,
) -> Image.Image:
    """Decode *frame*, draw it on a cleared canvas, stamp it, and quantize."""
    try:
        with Image.open(frame.path) as img:
            img.load()
            source = img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        msg = f"Cannot decode frame for year {frame.year} at {frame.path}: {exc}"
        raise FrameDecodeError(msg, correlation_id=correlation_id) from exc

    size = (settings.canvas_size, settings.canvas_size)
    if source.size != size:
        source = source.resize(size, Image.Resampling.LANCZOS)

    canvas = Image.new("RGBA", size, _CANVAS_BACKGROUND)
    canvas.alpha_composite(source)
    _stamp(canvas, str(frame.year), (index + 1) / total, font)
    return canvas.convert("RGB").quantize(colors=256, method=_quantize_method(settings.quality))


def _stamp(
    canvas: Image.Image,
    label: str,
    progress: float,
    font: ImageFont.ImageFont | ImageFont.FreeTypeFont,
) -> None:
    """Draw the year label top-left and a progress bar along the bottom."""
    width, height = canvas.size
    draw = ImageDraw.Draw(canvas)
    margin = max(2, width * 2 // 100)
    draw.text((margin, margin), label, font=font, fill=_LABEL_COLOUR)

    bar_height = max(2, height // 64)
    bar_width = max(1, round(width * progress))
    draw.rectangle([(0, height - bar_height), (bar_width - 1, height - 1)], fill=_LABEL_COLOUR)


def _encoded_frame_count(path: Path) -> int:
    with Image.open(path) as gif:
        return getattr(gif, "n_frames", 1)


def _quantize_method(quality: int) -> Image.Quantize:
    """Map the quality setting to a Pillow palette quantizer."""
    if quality <= _BEST_QUALITY_MAX:
        return Image.Quantize.MEDIANCUT
    if quality <= _BALANCED_QUALITY_MAX:
        return Image.Quantize.MAXCOVERAGE
    return Image.Quantize.FASTOCTREE
