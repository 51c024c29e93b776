"""Shared pytest fixtures for the satellite timelapse test suite."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from PIL import Image

from sat_timelapse.core.config import PipelineConfig
from sat_timelapse.models.frames import Frame, FrameSet
from sat_timelapse.utils.workspace import RunWorkspace

# Per-year fill colours, used to check frame order in the encoded GIF.
FRAME_COLOURS: dict[int, tuple[int, int, int]] = {
    2021: (200, 30, 30),
    2022: (30, 200, 30),
    2023: (30, 30, 200),
    2024: (200, 200, 30),
    2025: (30, 200, 200),
}


def make_png(path: Path, colour: tuple[int, int, int] = (10, 120, 40), size: int = 64) -> Path:
    """Write a solid-colour PNG to *path* and return it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (size, size), colour).save(path, format="PNG")
    return path


def png_bytes(colour: tuple[int, int, int] = (10, 120, 40), size: int = 16) -> bytes:
    """Return the encoded bytes of a small solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (size, size), colour).save(buffer, format="PNG")
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Configuration and workspace
# ---------------------------------------------------------------------------


@pytest.fixture()
def config(tmp_path: Path) -> PipelineConfig:
    """Fast test configuration rooted in ``tmp_path``."""
    return PipelineConfig(
        work_dir=tmp_path / "work",
        canvas_size_px=32,
        fetch_retry_base_s=0.0,
        transcode_timeout_s=5.0,
    )


@pytest.fixture()
def workspace(tmp_path: Path) -> RunWorkspace:
    """A created workspace for the run id ``testrun``."""
    return RunWorkspace.for_run(tmp_path / "frames", tmp_path / "output", "testrun").ensure()


# ---------------------------------------------------------------------------
# Frame fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def frame_set(tmp_path: Path) -> FrameSet:
    """Three valid frames for 2023, 2024 and 2025."""
    frames = tuple(
        Frame(year=year, path=make_png(tmp_path / "src" / f"frame_{year}.png", FRAME_COLOURS[year]))
        for year in (2023, 2024, 2025)
    )
    return FrameSet(frames=frames)


@pytest.fixture()
def sample_png() -> bytes:
    """Encoded bytes of a small PNG, as served by the imagery service."""
    return png_bytes()


@pytest.fixture()
def png_factory():
    """Return ``make_png`` for tests that build their own frames."""
    return make_png


@pytest.fixture()
def png_bytes_factory():
    """Return ``png_bytes`` for tests that serve frames of several colours."""
    return png_bytes


@pytest.fixture()
def frame_colours() -> dict[int, tuple[int, int, int]]:
    return dict(FRAME_COLOURS)
