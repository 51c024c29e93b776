"""Tests for the HTTP entry point.

The handler is exercised through ``handle_generate_video`` with a real
``TimelapsePipeline`` over a mock imagery service; only ffmpeg is faked.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import httpx
import pytest

import function_app
from sat_timelapse.models.frames import VideoArtifact
from sat_timelapse.orchestrators import timelapse_pipeline
from sat_timelapse.orchestrators.timelapse_pipeline import TimelapsePipeline

if TYPE_CHECKING:
    from pathlib import Path

    from sat_timelapse.core.config import PipelineConfig
    from sat_timelapse.models.frames import AnimatedArtifact

_MP4 = b"\x00\x00\x00\x18ftypmp42-video"


async def _fake_transcode(
    artifact: AnimatedArtifact, output_path: Path, **kwargs: object
) -> VideoArtifact:
    output_path.write_bytes(_MP4)
    return VideoArtifact(path=output_path, size_bytes=len(_MP4))


@pytest.fixture(autouse=True)
def fake_transcoder(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    mock = AsyncMock(side_effect=_fake_transcode)
    monkeypatch.setattr(timelapse_pipeline, "transcode_video", mock)
    return mock


def _pipeline(config: PipelineConfig, png: bytes, *, failing_status: int | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if failing_status is not None:
            return httpx.Response(failing_status)
        return httpx.Response(200, content=png, headers={"Content-Type": "image/png"})

    return TimelapsePipeline(config, transport=httpx.MockTransport(handler))


def _json(response) -> dict[str, object]:  # noqa: ANN001
    return json.loads(response.get_body())


class TestGenerateVideo:
    async def test_returns_mp4(self, config: PipelineConfig, sample_png: bytes) -> None:
        body = json.dumps({"lat": 4.5, "lon": 12.5, "years": [2024]}).encode()

        response = await function_app.handle_generate_video(
            body, pipeline=_pipeline(config, sample_png)
        )

        assert response.status_code == 200
        assert response.mimetype == "video/mp4"
        assert response.get_body() == _MP4
        assert response.headers["Content-Disposition"] == 'attachment; filename="forest_loss.mp4"'

    async def test_workspace_cleaned_after_delivery(
        self, config: PipelineConfig, sample_png: bytes
    ) -> None:
        body = json.dumps({"lat": 4.5, "lon": 12.5, "years": [2024]}).encode()

        await function_app.handle_generate_video(body, pipeline=_pipeline(config, sample_png))

        assert list(config.output_dir.iterdir()) == []

    async def test_workspace_kept_when_configured(
        self, config: PipelineConfig, sample_png: bytes
    ) -> None:
        config = replace(config, keep_intermediates=True)
        body = json.dumps({"lat": 4.5, "lon": 12.5, "years": [2024]}).encode()

        await function_app.handle_generate_video(body, pipeline=_pipeline(config, sample_png))

        assert len(list(config.output_dir.iterdir())) == 1

    async def test_missing_coordinates_is_400(
        self, config: PipelineConfig, sample_png: bytes
    ) -> None:
        response = await function_app.handle_generate_video(
            b'{"years": [2024]}', pipeline=_pipeline(config, sample_png)
        )

        assert response.status_code == 400
        payload = _json(response)
        assert payload["error"] == "Latitude and longitude are required"
        assert payload["code"] == "INVALID_INPUT"

    async def test_malformed_json_is_400(self, config: PipelineConfig, sample_png: bytes) -> None:
        response = await function_app.handle_generate_video(
            b"not json", pipeline=_pipeline(config, sample_png)
        )

        assert response.status_code == 400
        assert _json(response)["code"] == "INVALID_JSON"

    async def test_boolean_coordinates_are_400(
        self, config: PipelineConfig, sample_png: bytes
    ) -> None:
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(200, content=sample_png, headers={"Content-Type": "image/png"})

        pipeline = TimelapsePipeline(config, transport=httpx.MockTransport(handler))
        response = await function_app.handle_generate_video(
            b'{"lat": true, "lon": false}', pipeline=pipeline
        )

        assert response.status_code == 400
        assert _json(response)["code"] == "INVALID_INPUT"
        assert calls == []

    async def test_no_frames_is_500(self, config: PipelineConfig, sample_png: bytes) -> None:
        body = json.dumps({"lat": 4.5, "lon": 12.5, "years": [2023, 2024]}).encode()

        response = await function_app.handle_generate_video(
            body, pipeline=_pipeline(config, sample_png, failing_status=503)
        )

        assert response.status_code == 500
        payload = _json(response)
        assert payload["error"] == "No valid images downloaded"
        assert payload["code"] == "NO_FRAMES_AVAILABLE"

    async def test_unexpected_error_is_500(self, config: PipelineConfig, sample_png: bytes) -> None:
        pipeline = _pipeline(config, sample_png)
        pipeline.run = AsyncMock(side_effect=RuntimeError("disk full"))  # type: ignore[method-assign]

        response = await function_app.handle_generate_video(
            b'{"lat": 1, "lon": 2}', pipeline=pipeline
        )

        assert response.status_code == 500
        assert _json(response) == {"error": "disk full"}

    async def test_bad_configuration_is_500(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FRAME_DELAY_MS", "0")

        response = await function_app.handle_generate_video(b'{"lat": 1, "lon": 2}')

        assert response.status_code == 500
        assert _json(response)["code"] == "CONFIG_VALIDATION_FAILED"


class TestRegistration:
    def test_route_registered(self) -> None:
        names = [f.get_function_name() for f in function_app.app.get_functions()]
        assert "generate_video" in names
