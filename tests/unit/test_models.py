"""Tests for the frame pipeline models.

Covers FetchResult construction rules, FrameSet ordering, and the
animation/video value objects.
"""

from __future__ import annotations

import unittest
from pathlib import Path

import pytest

from sat_timelapse.core.exceptions import NetworkFailure, NoFramesAvailable, NonImageResponse
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
from sat_timelapse.models.geo import FrameRequest


def _request(year: int) -> FrameRequest:
    return FrameRequest(
        year=year,
        bbox=(4.0, 12.0, 5.0, 13.0),
        url=f"https://wms.example/map?time={year}-01-01",
        destination_path=Path(f"/work/frames/run/frame_{year}.png"),
    )


class TestFetchResult(unittest.TestCase):
    """FetchResult factories and invariants."""

    def test_success(self) -> None:
        result = FetchResult.success(_request(2024), Path("/f.png"), size_bytes=10)
        assert result.status is FetchStatus.SUCCESS
        assert result.succeeded
        assert result.year == 2024
        assert result.local_path == Path("/f.png")
        assert result.size_bytes == 10
        assert result.attempts == 1

    def test_failed_from_error(self) -> None:
        error = NetworkFailure("Imagery service returned HTTP 503")
        result = FetchResult.failed(_request(2024), error)
        assert not result.succeeded
        assert result.failure_reason == "Imagery service returned HTTP 503"
        assert result.failure_code == "NETWORK_FAILURE"
        assert result.retryable is True
        assert result.local_path is None

    def test_failed_keeps_diagnostic_path(self) -> None:
        result = FetchResult.failed(
            _request(2024), NonImageResponse(), diagnostic_path=Path("/d.xml")
        )
        assert result.failure_reason == "non-image response"
        assert result.diagnostic_path == Path("/d.xml")
        assert result.retryable is False

    def test_success_requires_path(self) -> None:
        with pytest.raises(ModelValidationError, match="local_path"):
            FetchResult(request=_request(2024), status=FetchStatus.SUCCESS)

    def test_failure_requires_reason(self) -> None:
        with pytest.raises(ModelValidationError, match="failure_reason"):
            FetchResult(request=_request(2024), status=FetchStatus.FAILED)

    def test_attempts_at_least_one(self) -> None:
        with pytest.raises(ModelValidationError, match="attempts"):
            FetchResult(
                request=_request(2024),
                status=FetchStatus.FAILED,
                failure_reason="x",
                attempts=0,
            )


class TestFrameSet(unittest.TestCase):
    """FrameSet ordering and emptiness."""

    def test_from_results_keeps_successes_in_year_order(self) -> None:
        results = [
            FetchResult.success(_request(2025), Path("/2025.png")),
            FetchResult.failed(_request(2024), NetworkFailure("down")),
            FetchResult.success(_request(2023), Path("/2023.png")),
        ]
        frame_set = FrameSet.from_results(results)
        assert frame_set.years == [2023, 2025]
        assert frame_set.paths == [Path("/2023.png"), Path("/2025.png")]
        assert len(frame_set) == 2
        assert [f.year for f in frame_set] == [2023, 2025]

    def test_from_results_all_failed_is_empty(self) -> None:
        frame_set = FrameSet.from_results(
            [FetchResult.failed(_request(2024), NetworkFailure("down"))]
        )
        assert len(frame_set) == 0

    def test_rejects_unordered_frames(self) -> None:
        with pytest.raises(ModelValidationError, match="strictly ascending"):
            FrameSet(frames=(Frame(2025, Path("/a")), Frame(2023, Path("/b"))))

    def test_rejects_duplicate_years(self) -> None:
        with pytest.raises(ModelValidationError):
            FrameSet(frames=(Frame(2024, Path("/a")), Frame(2024, Path("/b"))))

    def test_require_non_empty(self) -> None:
        frame_set = FrameSet(frames=(Frame(2024, Path("/a")),))
        assert frame_set.require_non_empty() is frame_set

    def test_require_non_empty_raises(self) -> None:
        with pytest.raises(NoFramesAvailable, match="No valid images downloaded") as exc_info:
            FrameSet().require_non_empty(correlation_id="run-2")
        assert exc_info.value.correlation_id == "run-2"


class TestArtifacts(unittest.TestCase):
    def test_animation_settings_defaults(self) -> None:
        settings = AnimationSettings()
        assert settings.canvas_size == 512
        assert settings.frame_delay_ms == 800
        assert settings.loop is True
        assert settings.quality == 10

    def test_animation_settings_validation(self) -> None:
        with pytest.raises(ModelValidationError, match="quality"):
            AnimationSettings(quality=0)
        with pytest.raises(ModelValidationError, match="frame_delay_ms"):
            AnimationSettings(frame_delay_ms=0)
        with pytest.raises(ModelValidationError, match="canvas_size"):
            AnimationSettings(canvas_size=0)

    def test_animated_artifact_needs_a_frame(self) -> None:
        with pytest.raises(ModelValidationError, match="frame_count"):
            AnimatedArtifact(path=Path("/a.gif"), frame_count=0, per_frame_delay_ms=800, loop=True)

    def test_video_artifact_size_non_negative(self) -> None:
        with pytest.raises(ModelValidationError, match="size_bytes"):
            VideoArtifact(path=Path("/v.mp4"), size_bytes=-1)
