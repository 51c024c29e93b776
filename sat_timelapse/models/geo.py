"""Geographic request models.

- ``GeoQuery``: the point of interest plus the half-width of the box
  requested around it.
- ``FrameRequest``: one fully built WMS request for one year, with the
  local path the downloaded frame is written to.

All coordinates are WGS 84 degrees.  The bounding box is expressed in
the axis order WMS 1.3.0 mandates for EPSG:4326: latitude first, so
``(south, west, north, east)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sat_timelapse.core.exceptions import InvalidGeoQuery

if TYPE_CHECKING:
    from pathlib import Path

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


@dataclass(frozen=True, slots=True)
class GeoQuery:
    """A point of interest and the box requested around it.

    Attributes:
        latitude: Latitude of the point in degrees (-90 to 90).
        longitude: Longitude of the point in degrees (-180 to 180).
        half_width_deg: Distance from the point to each box edge, in degrees.

    Raises:
        InvalidGeoQuery: If a coordinate is absent, non-finite or out of
            range, or the half-width is not positive.
    """

    latitude: float
    longitude: float
    half_width_deg: float = 0.5

    def __post_init__(self) -> None:
        _check_coordinate("latitude", self.latitude, LATITUDE_RANGE)
        _check_coordinate("longitude", self.longitude, LONGITUDE_RANGE)
        if not _is_number(self.half_width_deg) or not self.half_width_deg > 0:
            msg = f"half_width_deg must be > 0, got {self.half_width_deg!r}"
            raise InvalidGeoQuery(msg)

    @property
    def bbox(self) -> tuple[float, float, float, float]:
        """Bounding box as ``(south, west, north, east)``."""
        h = self.half_width_deg
        return (
            self.latitude - h,
            self.longitude - h,
            self.latitude + h,
            self.longitude + h,
        )

    @property
    def bbox_param(self) -> str:
        """Bounding box formatted for the WMS ``bbox`` query parameter."""
        return ",".join(format_coordinate(v) for v in self.bbox)


@dataclass(frozen=True, slots=True)
class FrameRequest:
    """A fully built imagery request for one year.

    Attributes:
        year: Calendar year the frame represents.
        bbox: Requested box as ``(south, west, north, east)``.
        url: Fully qualified WMS GetMap URL.
        destination_path: Where the downloaded frame is written.
    """

    year: int
    bbox: tuple[float, float, float, float]
    url: str
    destination_path: Path

    @property
    def time_param(self) -> str:
        """The ``time`` value sent to the WMS (``YYYY-01-01``)."""
        return format_wms_time(self.year)


def format_coordinate(value: float) -> str:
    """Format a coordinate without float noise or trailing zeros.

    ``4.0`` → ``"4"``, ``-0.5`` → ``"-0.5"``, ``12.3456789`` → ``"12.345679"``.
    """
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_wms_time(year: int) -> str:
    """Return the WMS ``time`` token for *year*: ``987`` → ``"0987-01-01"``."""
    return f"{year:04d}-01-01"


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _check_coordinate(name: str, value: object, bounds: tuple[float, float]) -> None:
    """Raise ``InvalidGeoQuery`` unless *value* is a finite number within *bounds*."""
    if value is None:
        msg = f"{name} is required"
        raise InvalidGeoQuery(msg)
    if not _is_number(value) or not math.isfinite(value):  # type: ignore[arg-type]
        msg = f"{name} must be a finite number, got {value!r}"
        raise InvalidGeoQuery(msg)
    lo, hi = bounds
    if not lo <= value <= hi:  # type: ignore[operator]
        msg = f"{name} must be between {lo:g} and {hi:g}, got {value!r}"
        raise InvalidGeoQuery(msg)
