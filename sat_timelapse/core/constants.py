"""Shared pipeline constants.

Centralises the WMS request parameters, working-storage directory names
and output filenames used by the activities, the orchestrator and both
entry points.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Upstream WMS service (NASA GIBS, EPSG:4326 "best" endpoint)
# ---------------------------------------------------------------------------

DEFAULT_WMS_BASE_URL: str = "https://gibs.earthdata.nasa.gov/wms/epsg4326/best/wms.cgi"
DEFAULT_WMS_LAYER: str = "MODIS_Terra_CorrectedReflectance_TrueColor"
DEFAULT_WMS_IMAGE_FORMAT: str = "image/png"
DEFAULT_WMS_CRS: str = "EPSG:4326"
WMS_SERVICE: str = "WMS"
WMS_VERSION: str = "1.3.0"
WMS_REQUEST: str = "GetMap"

# Fixed output raster dimensions requested from the WMS (pixels).
FRAME_RASTER_SIZE_PX: int = 512

# ---------------------------------------------------------------------------
# Geographic defaults
# ---------------------------------------------------------------------------

DEFAULT_BBOX_HALF_WIDTH_DEG: float = 0.5
"""Half-width of the bounding box around the point (~50 km at the equator)."""

DEFAULT_YEAR: int = 2025
"""Year used when a request does not list any."""

# ---------------------------------------------------------------------------
# Animation defaults
# ---------------------------------------------------------------------------

DEFAULT_CANVAS_SIZE_PX: int = 512
DEFAULT_FRAME_DELAY_MS: int = 800
DEFAULT_ANIMATION_LOOP: bool = True
DEFAULT_ANIMATION_QUALITY: int = 10

# ---------------------------------------------------------------------------
# Working storage layout
# ---------------------------------------------------------------------------

FRAMES_DIRNAME: str = "frames"
OUTPUT_DIRNAME: str = "output"
DIAGNOSTICS_DIRNAME: str = "diagnostics"

ANIMATION_FILENAME: str = "forest_loss.gif"
VIDEO_FILENAME: str = "forest_loss.mp4"
"""Filename offered to clients when the video is delivered."""

VIDEO_CONTENT_TYPE: str = "video/mp4"

# MIME type → file extension for frames and diagnostic bodies.
CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/tiff": "tif",
    "image/webp": "webp",
    "text/html": "html",
    "text/xml": "xml",
    "application/xml": "xml",
    "application/vnd.ogc.se_xml": "xml",
    "application/json": "json",
    "text/plain": "txt",
}


def extension_for_content_type(content_type: str, default: str = "bin") -> str:
    """Return the file extension for a MIME type, ignoring parameters.

    Args:
        content_type: A MIME type, optionally with parameters
            (e.g. ``"text/xml; charset=utf-8"``).
        default: Extension returned for unknown or empty types.
    """
    mime = content_type.split(";", 1)[0].strip().lower()
    return CONTENT_TYPE_EXTENSIONS.get(mime, default)
