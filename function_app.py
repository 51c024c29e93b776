"""Azure Functions entry point — Satellite Timelapse Pipeline.

Registers the HTTP trigger using the Python v2 programming model.

All business logic lives in the sat_timelapse package. This file is purely
the wiring layer between the Azure Functions HTTP binding and the
``TimelapsePipeline`` orchestrator, which the CLI shares.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

import azure.functions as func

from sat_timelapse.core.config import ConfigValidationError, PipelineConfig
from sat_timelapse.core.constants import VIDEO_CONTENT_TYPE, VIDEO_FILENAME
from sat_timelapse.core.exceptions import PipelineError
from sat_timelapse.core.ingress import error_response_body, http_status_for, parse_trigger_body
from sat_timelapse.orchestrators.timelapse_pipeline import TimelapsePipeline

if TYPE_CHECKING:
    from sat_timelapse.models.frames import VideoArtifact

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

logger = logging.getLogger("sat_timelapse.function_app")


# ---------------------------------------------------------------------------
# HTTP: POST /api/generate-video → MP4
# ---------------------------------------------------------------------------


@app.function_name("generate_video")
@app.route(route="generate-video", methods=["POST"])
async def generate_video(req: func.HttpRequest) -> func.HttpResponse:
    """Render the timelapse for ``{lat, lon, years}`` and return the MP4.

    Responses:
        200: ``video/mp4`` body with a ``forest_loss.mp4`` attachment name.
        400: ``{"error": ...}`` for malformed or missing input.
        500: ``{"error": ...}`` for pipeline failures (no frames,
            undecodable frame, transcode failure).
    """
    return await handle_generate_video(req.get_body())


async def handle_generate_video(
    body: bytes,
    *,
    pipeline: TimelapsePipeline | None = None,
) -> func.HttpResponse:
    """Run the pipeline for a raw request body and build the HTTP response."""
    try:
        request = parse_trigger_body(body)
    except PipelineError as exc:
        logger.warning("generate_video rejected | code=%s | error=%s", exc.code, exc.message)
        return _error_response(exc)

    if pipeline is None:
        try:
            pipeline = TimelapsePipeline(PipelineConfig.from_env())
        except (ConfigValidationError, ValueError) as exc:
            logger.error("generate_video misconfigured | error=%s", exc)
            return _error_response(exc)

    delivered: dict[str, bytes] = {}

    async def deliver(video: VideoArtifact) -> None:
        delivered["body"] = await asyncio.to_thread(video.path.read_bytes)

    try:
        run = await pipeline.run(request, delivery=deliver)
    except Exception as exc:
        logger.exception("generate_video crashed | lat=%s | lon=%s", request.lat, request.lon)
        return _error_response(exc)

    if run.error is not None:
        return _error_response(run.error)

    if run.workspace is not None and not pipeline.config.keep_intermediates:
        await asyncio.to_thread(run.workspace.discard)

    logger.info(
        "generate_video completed | run=%s | frames=%s | size=%d bytes",
        run.run_id,
        run.frame_set.years if run.frame_set else [],
        len(delivered["body"]),
    )
    return func.HttpResponse(
        body=delivered["body"],
        status_code=200,
        mimetype=VIDEO_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{VIDEO_FILENAME}"'},
    )


def _error_response(exc: BaseException) -> func.HttpResponse:
    return func.HttpResponse(
        body=json.dumps(error_response_body(exc)),
        status_code=http_status_for(exc),
        mimetype="application/json",
    )
