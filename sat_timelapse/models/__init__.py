"""Data models and schemas.

Defines the data structures used throughout the pipeline:
- GeoQuery / FrameRequest: Point of interest and per-year WMS request
- FetchResult / FrameSet: Download outcomes and the year-ordered frames
- AnimationSettings / AnimatedArtifact / VideoArtifact: Rendering outputs
- TimelapseRequest: Trigger payload shared by the HTTP and CLI adapters
"""

from sat_timelapse.models.frames import (
    AnimatedArtifact,
    AnimationSettings,
    FetchResult,
    FetchStatus,
    Frame,
    FrameSet,
    ModelValidationError,
    VideoArtifact,
)
from sat_timelapse.models.geo import FrameRequest, GeoQuery
from sat_timelapse.models.payloads import TimelapseRequest

__all__ = [
    "AnimatedArtifact",
    "AnimationSettings",
    "FetchResult",
    "FetchStatus",
    "Frame",
    "FrameRequest",
    "FrameSet",
    "GeoQuery",
    "ModelValidationError",
    "TimelapseRequest",
    "VideoArtifact",
]
