"""Timelapse pipeline orchestrator.

Receives a ``TimelapseRequest`` from either entry point and drives one
run through its states:

1. VALIDATING   — require lat/lon, build the ``GeoQuery``, default the years
2. FETCHING     — build + fetch one frame per year (concurrently), keep successes
3. ASSEMBLING   — encode the year-ordered frames as a looping GIF
4. TRANSCODING  — convert the GIF to MP4 with ffmpeg
5. DELIVERING   — hand the video to the caller's delivery collaborator
6. DONE

``FAILED`` is reachable from every non-terminal state.  Per-frame fetch
failures are recorded on the run and never abort it; stage errors
(no frames, undecodable frame, transcode failure) abort it and are kept
on ``PipelineRun.error`` for the adapter to surface.

Every working-storage path is scoped to the run id, so concurrent runs
in one process (or across processes sharing ``WORK_DIR``) never collide.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import httpx

from sat_timelapse.activities.assemble_frames import assemble_frames
from sat_timelapse.activities.build_request import build_frame_requests, build_geo_query
from sat_timelapse.activities.fetch_frame import fetch_frame
from sat_timelapse.activities.transcode_video import transcode_video
from sat_timelapse.core.config import PipelineConfig
from sat_timelapse.core.exceptions import InvalidInput, PipelineError
from sat_timelapse.models.frames import FrameSet
from sat_timelapse.models.payloads import TimelapseRequest
from sat_timelapse.utils.workspace import RunWorkspace, new_run_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from sat_timelapse.models.frames import AnimatedArtifact, FetchResult, VideoArtifact
    from sat_timelapse.models.geo import FrameRequest, GeoQuery

    Delivery = Callable[[VideoArtifact], Awaitable[object] | object]

logger = logging.getLogger("sat_timelapse.orchestrators.timelapse_pipeline")


class PipelineState(enum.Enum):
    """Lifecycle state of one pipeline run."""

    VALIDATING = "validating"
    FETCHING = "fetching"
    ASSEMBLING = "assembling"
    TRANSCODING = "transcoding"
    DELIVERING = "delivering"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.FAILED)


@dataclass
class PipelineRun:
    """Mutable record of one run, updated as it moves through its states.

    Attributes:
        run_id: Identifier namespacing the run's working storage.
        state: Current state.
        history: Every state entered, in order.
        years: Years requested after defaulting, de-duplication and sorting.
        fetch_results: One result per year, in ascending year order.
        frame_set: Frames that went into the animation.
        animation: The assembled GIF.
        video: The transcoded MP4.
        workspace: Working-storage paths of the run.
        error: The stage error that failed the run, if any.
    """

    run_id: str
    state: PipelineState = PipelineState.VALIDATING
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.VALIDATING])
    years: list[int] = field(default_factory=list)
    fetch_results: list[FetchResult] = field(default_factory=list)
    frame_set: FrameSet | None = None
    animation: AnimatedArtifact | None = None
    video: VideoArtifact | None = None
    workspace: RunWorkspace | None = None
    error: PipelineError | None = None

    def transition(self, state: PipelineState) -> None:
        """Enter *state*.  Terminal states cannot be left."""
        if self.state.is_terminal:
            msg = f"Run {self.run_id} is already {self.state.value}; cannot enter {state.value}"
            raise RuntimeError(msg)
        self.state = state
        self.history.append(state)
        logger.debug("Run state | run=%s | state=%s", self.run_id, state.value)

    def fail(self, error: PipelineError | None) -> None:
        """Enter ``FAILED`` and remember *error* (``None`` when cancelled)."""
        if not self.state.is_terminal:
            self.transition(PipelineState.FAILED)
        self.error = error

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def failed_fetches(self) -> list[FetchResult]:
        return [r for r in self.fetch_results if not r.succeeded]

    def raise_for_error(self) -> PipelineRun:
        """Return ``self``, or raise the stage error that failed the run."""
        if self.error is not None:
            raise self.error
        return self

    def to_summary(self) -> dict[str, Any]:
        """Serialise the run outcome for logs and CLI output."""
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "years": list(self.years),
            "frames": self.frame_set.years if self.frame_set else [],
            "failures": [
                {
                    "year": r.year,
                    "code": r.failure_code,
                    "reason": r.failure_reason,
                    "attempts": r.attempts,
                    "diagnostic_path": str(r.diagnostic_path) if r.diagnostic_path else "",
                }
                for r in self.failed_fetches
            ],
            "video_path": str(self.video.path) if self.video else "",
            "error": self.error.to_error_dict() if self.error else None,
        }


class TimelapsePipeline:
    """Runs the fetch → assemble → transcode → deliver sequence.

    One instance can serve many concurrent runs: it holds configuration
    only, and every run gets its own ``PipelineRun`` and workspace.

    Args:
        config: Pipeline configuration.  Defaults to ``PipelineConfig()``.
        transport: Optional ``httpx`` transport for the imagery client
            (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or PipelineConfig()
        self._transport = transport

    @property
    def config(self) -> PipelineConfig:
        return self._config

    async def run(
        self,
        request: TimelapseRequest,
        *,
        delivery: Delivery | None = None,
        run_id: str = "",
    ) -> PipelineRun:
        """Execute one run and return its record.

        Stage errors do not raise: the run ends ``FAILED`` with the error
        on ``PipelineRun.error`` (use ``raise_for_error()`` to re-raise).
        Cancellation marks the run ``FAILED`` and propagates.

        Args:
            request: Point and years to render.
            delivery: Called with the ``VideoArtifact`` in the DELIVERING
                state; may be a coroutine function.  When ``None`` the
                video path is logged instead.
            run_id: Explicit run identifier (a fresh one when empty).
        """
        run = PipelineRun(run_id=run_id or new_run_id())
        logger.info(
            "Pipeline started | run=%s | lat=%s | lon=%s | years=%s",
            run.run_id,
            request.lat,
            request.lon,
            request.years,
        )

        try:
            query = self._validate(request, run)

            run.transition(PipelineState.FETCHING)
            workspace = await self._open_workspace(run)
            frame_set = await self._fetch_frames(query, run, workspace)

            run.transition(PipelineState.ASSEMBLING)
            run.animation = await asyncio.to_thread(
                assemble_frames,
                frame_set,
                workspace.animation_path,
                self._config.animation_settings(),
                correlation_id=run.run_id,
            )

            run.transition(PipelineState.TRANSCODING)
            run.video = await transcode_video(
                run.animation,
                workspace.video_path,
                ffmpeg_binary=self._config.ffmpeg_binary,
                timeout_s=self._config.transcode_timeout_s,
                correlation_id=run.run_id,
            )

            run.transition(PipelineState.DELIVERING)
            await self._deliver(run.video, run, delivery)

            run.transition(PipelineState.DONE)
        except PipelineError as exc:
            exc.correlation_id = exc.correlation_id or run.run_id
            failed_in = run.state
            run.fail(exc)
            logger.error(
                "Pipeline failed | run=%s | state=%s | code=%s | error=%s",
                run.run_id,
                failed_in.value,
                exc.code,
                exc.message,
            )
            return run
        except asyncio.CancelledError:
            logger.warning("Pipeline cancelled | run=%s | state=%s", run.run_id, run.state.value)
            run.fail(None)
            raise
        except Exception:
            run.fail(None)
            raise

        if run.workspace is not None and not self._config.keep_intermediates:
            await asyncio.to_thread(run.workspace.discard_intermediates)

        logger.info(
            "Pipeline completed | run=%s | frames=%d/%d | video=%s",
            run.run_id,
            len(run.frame_set or ()),
            len(run.years),
            run.video.path if run.video else "",
        )
        return run

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _validate(self, request: TimelapseRequest, run: PipelineRun) -> GeoQuery:
        """VALIDATING: require the point, normalise the years."""
        if request.lat is None or request.lon is None:
            msg = "Latitude and longitude are required"
            raise InvalidInput(msg, correlation_id=run.run_id)

        query = build_geo_query(request.lat, request.lon, self._config.bbox_half_width_deg)

        requested = list(request.years or [])
        run.years = sorted(set(requested)) or [self._config.default_year]
        if len(run.years) != len(requested) and requested:
            logger.info(
                "Duplicate years ignored | run=%s | requested=%s | years=%s",
                run.run_id,
                requested,
                run.years,
            )
        return query

    async def _open_workspace(self, run: PipelineRun) -> RunWorkspace:
        """Create the run's directories and attach them to *run*."""
        workspace = RunWorkspace.for_run(
            self._config.frames_dir,
            self._config.output_dir,
            run.run_id,
        )
        await asyncio.to_thread(workspace.ensure)
        run.workspace = workspace
        return workspace

    async def _fetch_frames(
        self, query: GeoQuery, run: PipelineRun, workspace: RunWorkspace
    ) -> FrameSet:
        """FETCHING: one fetch per year; fail only when nothing succeeded."""
        requests = build_frame_requests(
            query,
            run.years,
            workspace=workspace,
            base_url=self._config.wms_base_url,
            layer=self._config.wms_layer,
            image_format=self._config.wms_image_format,
            crs=self._config.wms_crs,
        )

        async with self._make_client() as client:
            results = await asyncio.gather(
                *(self._fetch_with_retry(r, client, workspace) for r in requests)
            )

        # Arrival order is irrelevant; year order is the animation's time axis.
        run.fetch_results = sorted(results, key=lambda r: r.year)
        for result in run.failed_fetches:
            logger.warning(
                "Frame discarded | run=%s | year=%d | code=%s | reason=%s | attempts=%d",
                run.run_id,
                result.year,
                result.failure_code,
                result.failure_reason,
                result.attempts,
            )

        frame_set = FrameSet.from_results(run.fetch_results)
        run.frame_set = frame_set
        logger.info(
            "Frames fetched | run=%s | ok=%d/%d | years=%s",
            run.run_id,
            len(frame_set),
            len(run.fetch_results),
            frame_set.years,
        )
        return frame_set.require_non_empty(correlation_id=run.run_id)

    async def _deliver(
        self,
        video: VideoArtifact,
        run: PipelineRun,
        delivery: Delivery | None,
    ) -> None:
        """DELIVERING: hand the video over, or log where it is."""
        if delivery is None:
            logger.info("MP4 created | run=%s | path=%s", run.run_id, video.path)
            return
        outcome = delivery(video)
        if inspect.isawaitable(outcome):
            await outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _make_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._config.http_timeout_s,
            follow_redirects=True,
            limits=httpx.Limits(max_connections=self._config.fetch_concurrency),
            transport=self._transport,
        )

    async def _fetch_with_retry(
        self,
        request: FrameRequest,
        client: httpx.AsyncClient,
        workspace: RunWorkspace,
    ) -> FetchResult:
        """Fetch one frame, retrying retryable failures with backoff."""
        max_retries = self._config.fetch_max_retries
        attempt = 0
        while True:
            result = await fetch_frame(request, client=client, workspace=workspace)
            if result.succeeded or not result.retryable or attempt >= max_retries:
                return replace(result, attempts=attempt + 1)

            delay = self._config.fetch_retry_base_s * (2**attempt)
            logger.warning(
                "Fetch attempt %d/%d failed (retryable) | run=%s | year=%d | retry_in=%.1fs",
                attempt + 1,
                max_retries + 1,
                workspace.run_id,
                request.year,
                delay,
            )
            attempt += 1
            await asyncio.sleep(delay)


async def run_timelapse(
    lat: float | None,
    lon: float | None,
    years: Sequence[int] | None = None,
    *,
    config: PipelineConfig | None = None,
    delivery: Delivery | None = None,
) -> PipelineRun:
    """Convenience wrapper: run the pipeline for one point."""
    request = TimelapseRequest(lat=lat, lon=lon, years=list(years) if years else None)
    return await TimelapsePipeline(config).run(request, delivery=delivery)
