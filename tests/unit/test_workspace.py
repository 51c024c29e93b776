"""Tests for run-scoped working storage paths."""

from __future__ import annotations

import unittest
from pathlib import Path

import pytest

from sat_timelapse.utils.workspace import RunWorkspace, new_run_id


class TestRunWorkspacePaths(unittest.TestCase):
    """Pure path construction."""

    def setUp(self) -> None:
        self.ws = RunWorkspace.for_run(Path("/w/frames"), Path("/w/output"), "abc123")

    def test_frames_and_output_dirs(self) -> None:
        assert self.ws.frames_dir == Path("/w/frames/abc123")
        assert self.ws.output_dir == Path("/w/output/abc123")
        assert self.ws.diagnostics_dir == Path("/w/frames/abc123/diagnostics")

    def test_frame_path(self) -> None:
        assert self.ws.frame_path(2024) == Path("/w/frames/abc123/frame_2024.png")
        assert self.ws.frame_path(2024, "jpg").name == "frame_2024.jpg"

    def test_diagnostic_path(self) -> None:
        assert self.ws.diagnostic_path(2024, "xml") == Path(
            "/w/frames/abc123/diagnostics/response_2024.xml"
        )

    def test_artifact_paths(self) -> None:
        assert self.ws.animation_path == Path("/w/output/abc123/forest_loss.gif")
        assert self.ws.video_path == Path("/w/output/abc123/forest_loss.mp4")

    def test_deterministic(self) -> None:
        other = RunWorkspace.for_run(Path("/w/frames"), Path("/w/output"), "abc123")
        assert other.frame_path(2023) == self.ws.frame_path(2023)

    def test_distinct_runs_never_share_paths(self) -> None:
        other = RunWorkspace.for_run(Path("/w/frames"), Path("/w/output"))
        assert other.run_id != self.ws.run_id
        assert other.video_path != self.ws.video_path

    def test_invalid_run_id(self) -> None:
        for run_id in ("../etc", "UPPER", "a/b", "-lead"):
            with self.subTest(run_id=run_id), pytest.raises(ValueError, match="run_id"):
                RunWorkspace(run_id=run_id, frames_root=Path("/f"), output_root=Path("/o"))

    def test_new_run_id_is_unique_hex(self) -> None:
        ids = {new_run_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(len(i) == 32 and int(i, 16) >= 0 for i in ids)


class TestRunWorkspaceFilesystem:
    """ensure / discard against a real directory."""

    def test_ensure_creates_directories(self, tmp_path: Path) -> None:
        ws = RunWorkspace.for_run(tmp_path / "frames", tmp_path / "output", "run1").ensure()
        assert ws.frames_dir.is_dir()
        assert ws.output_dir.is_dir()

    def test_discard_intermediates_keeps_video(self, tmp_path: Path) -> None:
        ws = RunWorkspace.for_run(tmp_path / "frames", tmp_path / "output", "run1").ensure()
        ws.frame_path(2024).write_bytes(b"png")
        ws.animation_path.write_bytes(b"gif")
        ws.video_path.write_bytes(b"mp4")

        ws.discard_intermediates()

        assert not ws.frames_dir.exists()
        assert not ws.animation_path.exists()
        assert ws.video_path.read_bytes() == b"mp4"

    def test_discard_removes_everything(self, tmp_path: Path) -> None:
        ws = RunWorkspace.for_run(tmp_path / "frames", tmp_path / "output", "run1").ensure()
        ws.video_path.write_bytes(b"mp4")

        ws.discard()

        assert not ws.frames_dir.exists()
        assert not ws.output_dir.exists()

    def test_discard_is_idempotent(self, tmp_path: Path) -> None:
        ws = RunWorkspace.for_run(tmp_path / "frames", tmp_path / "output", "run1")
        ws.discard_intermediates()
        ws.discard()
