"""Tests for pipeline configuration loading and fail-fast validation."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from sat_timelapse.core.config import ConfigValidationError, PipelineConfig
from sat_timelapse.core.constants import DEFAULT_WMS_BASE_URL, DEFAULT_WMS_LAYER
from sat_timelapse.models.frames import AnimationSettings


class TestPipelineConfig:
    """Defaults, environment loading and derived values."""

    def test_defaults(self) -> None:
        cfg = PipelineConfig()
        assert cfg.wms_base_url == DEFAULT_WMS_BASE_URL
        assert cfg.wms_layer == DEFAULT_WMS_LAYER
        assert cfg.wms_image_format == "image/png"
        assert cfg.bbox_half_width_deg == 0.5
        assert cfg.default_year == 2025
        assert cfg.frame_delay_ms == 800
        assert cfg.fetch_max_retries == 0
        assert cfg.keep_intermediates is False

    def test_from_env_reads_values(self) -> None:
        env = {
            "WMS_BASE_URL": "https://wms.example/map",
            "WMS_LAYER": "Landsat_WELD",
            "BBOX_HALF_WIDTH_DEG": "0.25",
            "DEFAULT_YEAR": "2020",
            "WORK_DIR": "/srv/timelapse",
            "CANVAS_SIZE_PX": "256",
            "FRAME_DELAY_MS": "500",
            "ANIMATION_LOOP": "off",
            "ANIMATION_QUALITY": "20",
            "FETCH_CONCURRENCY": "2",
            "FETCH_MAX_RETRIES": "3",
            "FFMPEG_BINARY": "/usr/local/bin/ffmpeg",
            "KEEP_INTERMEDIATES": "yes",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = PipelineConfig.from_env()

        assert cfg.wms_base_url == "https://wms.example/map"
        assert cfg.wms_layer == "Landsat_WELD"
        assert cfg.bbox_half_width_deg == 0.25
        assert cfg.default_year == 2020
        assert cfg.work_dir == Path("/srv/timelapse")
        assert cfg.canvas_size_px == 256
        assert cfg.frame_delay_ms == 500
        assert cfg.animation_loop is False
        assert cfg.animation_quality == 20
        assert cfg.fetch_concurrency == 2
        assert cfg.fetch_max_retries == 3
        assert cfg.ffmpeg_binary == "/usr/local/bin/ffmpeg"
        assert cfg.keep_intermediates is True

    def test_defaults_when_env_missing(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            cfg = PipelineConfig.from_env()

        assert cfg.work_dir == Path.cwd()
        assert cfg.animation_loop is True
        assert cfg.http_timeout_s == 60.0

    def test_derived_directories(self) -> None:
        cfg = PipelineConfig(work_dir=Path("/data"))
        assert cfg.frames_dir == Path("/data/frames")
        assert cfg.output_dir == Path("/data/output")

    def test_animation_settings(self) -> None:
        cfg = PipelineConfig(canvas_size_px=128, frame_delay_ms=250, animation_loop=False)
        assert cfg.animation_settings() == AnimationSettings(
            canvas_size=128, frame_delay_ms=250, loop=False, quality=10
        )

    def test_frozen_immutability(self) -> None:
        cfg = PipelineConfig()
        with pytest.raises(AttributeError):
            cfg.frame_delay_ms = 100  # type: ignore[misc]


class TestPipelineConfigValidation:
    """Fail-fast range validation in from_env."""

    @pytest.mark.parametrize(
        ("key", "value", "match"),
        [
            ("WMS_LAYER", "  ", "must not be empty"),
            ("WMS_IMAGE_FORMAT", "text/html", "image MIME type"),
            ("BBOX_HALF_WIDTH_DEG", "0", "must be > 0"),
            ("DEFAULT_YEAR", "0", "between 1 and 9999"),
            ("CANVAS_SIZE_PX", "-5", "CANVAS_SIZE_PX"),
            ("FRAME_DELAY_MS", "0", "FRAME_DELAY_MS"),
            ("ANIMATION_QUALITY", "31", "between 1 and 30"),
            ("HTTP_TIMEOUT_S", "0", "HTTP_TIMEOUT_S"),
            ("FETCH_CONCURRENCY", "0", "must be >= 1"),
            ("FETCH_MAX_RETRIES", "-1", "must be >= 0"),
            ("FETCH_RETRY_BASE_S", "-0.5", "FETCH_RETRY_BASE_S"),
            ("TRANSCODE_TIMEOUT_S", "0", "TRANSCODE_TIMEOUT_S"),
            ("ANIMATION_LOOP", "maybe", "true/false"),
        ],
    )
    def test_invalid_value_rejected(self, key: str, value: str, match: str) -> None:
        with (
            patch.dict(os.environ, {key: value}, clear=True),
            pytest.raises(ConfigValidationError, match=match) as exc_info,
        ):
            PipelineConfig.from_env()

        assert exc_info.value.key == key
        assert exc_info.value.code == "CONFIG_VALIDATION_FAILED"

    def test_unparseable_number_raises_value_error(self) -> None:
        with (
            patch.dict(os.environ, {"FRAME_DELAY_MS": "abc"}, clear=True),
            pytest.raises(ValueError, match="abc"),
        ):
            PipelineConfig.from_env()

    def test_boundary_values_accepted(self) -> None:
        env = {"ANIMATION_QUALITY": "1", "FETCH_CONCURRENCY": "1", "FETCH_RETRY_BASE_S": "0"}
        with patch.dict(os.environ, env, clear=True):
            cfg = PipelineConfig.from_env()

        assert cfg.animation_quality == 1
        assert cfg.fetch_concurrency == 1
        assert cfg.fetch_retry_base_s == 0.0

    def test_error_message_names_key_and_value(self) -> None:
        err = ConfigValidationError("FRAME_DELAY_MS", 0, "must be > 0 (milliseconds)")
        assert str(err) == "Invalid configuration FRAME_DELAY_MS=0: must be > 0 (milliseconds)"
        assert err.value == 0
