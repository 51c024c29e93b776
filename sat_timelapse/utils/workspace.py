"""Run-scoped working storage layout.

Every pipeline run gets its own subdirectory in both working areas, so
concurrent runs never overwrite each other's frames, diagnostics,
animations or videos:

    {frames_dir}/{run_id}/frame_{YYYY}.{ext}
    {frames_dir}/{run_id}/diagnostics/response_{YYYY}.{ext}
    {output_dir}/{run_id}/forest_loss.gif
    {output_dir}/{run_id}/forest_loss.mp4

Path builders are pure: the same run id and year always give the same
path.  Directories are only created by ``RunWorkspace.ensure()``.
"""

from __future__ import annotations

import logging
import re
import shutil
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sat_timelapse.core.constants import (
    ANIMATION_FILENAME,
    DIAGNOSTICS_DIRNAME,
    VIDEO_FILENAME,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger("sat_timelapse.utils.workspace")

# Run ids become directory names: lowercase alphanumerics and hyphens only.
_RUN_ID_RE = re.compile(r"^[a-z0-9][a-z0-9-]{0,63}$")


def new_run_id() -> str:
    """Return a fresh, collision-resistant run identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class RunWorkspace:
    """Working-storage paths of one pipeline run.

    Attributes:
        run_id: Identifier of the run; namespaces every path below.
        frames_root: Shared frame staging area.
        output_root: Shared output area.
    """

    run_id: str
    frames_root: Path
    output_root: Path

    def __post_init__(self) -> None:
        if not _RUN_ID_RE.match(self.run_id):
            msg = f"run_id must match {_RUN_ID_RE.pattern}, got {self.run_id!r}"
            raise ValueError(msg)

    @classmethod
    def for_run(cls, frames_root: Path, output_root: Path, run_id: str = "") -> RunWorkspace:
        """Build the workspace for *run_id* (a new id when empty)."""
        return cls(run_id=run_id or new_run_id(), frames_root=frames_root, output_root=output_root)

    @property
    def frames_dir(self) -> Path:
        return self.frames_root / self.run_id

    @property
    def diagnostics_dir(self) -> Path:
        return self.frames_dir / DIAGNOSTICS_DIRNAME

    @property
    def output_dir(self) -> Path:
        return self.output_root / self.run_id

    @property
    def animation_path(self) -> Path:
        return self.output_dir / ANIMATION_FILENAME

    @property
    def video_path(self) -> Path:
        return self.output_dir / VIDEO_FILENAME

    def frame_path(self, year: int, extension: str = "png") -> Path:
        """Destination of the frame for *year*."""
        return self.frames_dir / f"frame_{year:04d}.{extension}"

    def diagnostic_path(self, year: int, extension: str = "bin") -> Path:
        """Where a non-image response for *year* is preserved."""
        return self.diagnostics_dir / f"response_{year:04d}.{extension}"

    def ensure(self) -> RunWorkspace:
        """Create the run's directories (idempotent) and return ``self``."""
        self.frames_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self

    def discard_intermediates(self) -> None:
        """Remove frames, diagnostics and the animation; keep the video."""
        shutil.rmtree(self.frames_dir, ignore_errors=True)
        self.animation_path.unlink(missing_ok=True)
        logger.debug("Discarded intermediates | run=%s", self.run_id)

    def discard(self) -> None:
        """Remove everything the run wrote, video included."""
        shutil.rmtree(self.frames_dir, ignore_errors=True)
        shutil.rmtree(self.output_dir, ignore_errors=True)
        logger.debug("Discarded workspace | run=%s", self.run_id)
