"""Pydantic schema for the trigger payload.

Both entry points (HTTP route and CLI) describe a run with the same
``TimelapseRequest``: a point and an optional list of years.  Presence
of ``lat``/``lon`` is checked by the orchestrator, not here, so that a
missing coordinate is reported as ``InvalidInput`` before any network
call regardless of the entry point.

Example body::

    {"lat": 4.5, "lon": 12.5, "years": [2023, 2024, 2025]}
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt

Year = Annotated[int, Field(ge=1, le=9999)]
# JSON numbers only: booleans and numeric strings are rejected.
Coordinate = StrictFloat | StrictInt


class TimelapseRequest(BaseModel):
    """Input of one pipeline run.

    Attributes:
        lat: Latitude of the point in degrees (required by the pipeline).
        lon: Longitude of the point in degrees (required by the pipeline).
        years: Years to render, one frame each.  ``None`` or empty means
            the configured default year.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    lat: Coordinate | None = None
    lon: Coordinate | None = None
    years: list[Year] | None = Field(default=None)
