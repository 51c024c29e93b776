"""Build request activity — per-year WMS GetMap requests.

Pure construction, no I/O: given a ``GeoQuery`` and a year, returns a
``FrameRequest`` whose URL asks the WMS for a fixed-size raster of the
query's bounding box at ``<year>-01-01``, and whose destination path is
the run-scoped frame file for that year.

The query string keeps the parameter order and literal ``,``/``:``
characters of a hand-written GetMap URL, so the same inputs always
produce the same URL byte for byte.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from sat_timelapse.core.constants import (
    DEFAULT_WMS_BASE_URL,
    DEFAULT_WMS_CRS,
    DEFAULT_WMS_IMAGE_FORMAT,
    DEFAULT_WMS_LAYER,
    FRAME_RASTER_SIZE_PX,
    WMS_REQUEST,
    WMS_SERVICE,
    WMS_VERSION,
    extension_for_content_type,
)
from sat_timelapse.core.exceptions import InvalidInput
from sat_timelapse.models.geo import FrameRequest, GeoQuery, format_wms_time

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sat_timelapse.utils.workspace import RunWorkspace

logger = logging.getLogger("sat_timelapse.activities.build_request")


def build_geo_query(
    latitude: float | None,
    longitude: float | None,
    half_width_deg: float,
) -> GeoQuery:
    """Validate raw coordinates and return a ``GeoQuery``.

    Raises:
        InvalidGeoQuery: If a coordinate is absent or out of range, or the
            half-width is not positive.
    """
    return GeoQuery(
        latitude=latitude,  # type: ignore[arg-type]
        longitude=longitude,  # type: ignore[arg-type]
        half_width_deg=half_width_deg,
    )


def build_wms_url(
    query: GeoQuery,
    year: int,
    *,
    base_url: str = DEFAULT_WMS_BASE_URL,
    layer: str = DEFAULT_WMS_LAYER,
    image_format: str = DEFAULT_WMS_IMAGE_FORMAT,
    crs: str = DEFAULT_WMS_CRS,
    size_px: int = FRAME_RASTER_SIZE_PX,
) -> str:
    """Return the GetMap URL for *query* at ``<year>-01-01``."""
    _check_year(year)
    params = [
        ("service", WMS_SERVICE),
        ("version", WMS_VERSION),
        ("request", WMS_REQUEST),
        ("layers", layer),
        ("styles", ""),
        ("format", image_format),
        ("transparent", "false"),
        ("height", str(size_px)),
        ("width", str(size_px)),
        ("bbox", query.bbox_param),
        ("CRS", crs),
        ("time", format_wms_time(year)),
    ]
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode(params, safe=',:/')}"


def build_frame_request(
    query: GeoQuery,
    year: int,
    *,
    workspace: RunWorkspace,
    base_url: str = DEFAULT_WMS_BASE_URL,
    layer: str = DEFAULT_WMS_LAYER,
    image_format: str = DEFAULT_WMS_IMAGE_FORMAT,
    crs: str = DEFAULT_WMS_CRS,
) -> FrameRequest:
    """Build the ``FrameRequest`` for one year.

    Args:
        query: Validated point and box half-width.
        year: Year to request (``time=<year>-01-01``).
        workspace: Run workspace that owns the destination path.
        base_url: WMS GetMap endpoint.
        layer: WMS layer identifier.
        image_format: Raster MIME type requested from the WMS.
        crs: Coordinate reference system of the bounding box.

    Returns:
        A ``FrameRequest`` with a deterministic, per-year destination path.

    Raises:
        InvalidInput: If *year* is not an integer between 1 and 9999.
    """
    url = build_wms_url(
        query,
        year,
        base_url=base_url,
        layer=layer,
        image_format=image_format,
        crs=crs,
    )
    extension = extension_for_content_type(image_format, default="img")
    return FrameRequest(
        year=year,
        bbox=query.bbox,
        url=url,
        destination_path=workspace.frame_path(year, extension),
    )


def build_frame_requests(
    query: GeoQuery,
    years: Iterable[int],
    *,
    workspace: RunWorkspace,
    **wms_options: str,
) -> list[FrameRequest]:
    """Build one ``FrameRequest`` per year, in the order given."""
    requests = [
        build_frame_request(query, year, workspace=workspace, **wms_options) for year in years
    ]
    logger.debug(
        "Built frame requests | run=%s | years=%s | bbox=%s",
        workspace.run_id,
        [r.year for r in requests],
        query.bbox_param,
    )
    return requests


def _check_year(year: object) -> None:
    if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9999:
        msg = f"year must be an integer between 1 and 9999, got {year!r}"
        raise InvalidInput(msg, stage="build_request")
