"""Command-line entry point — run the pipeline once without a server.

Usage::

    python -m sat_timelapse --lat 4.5 --lon 12.5 --years 2023 2024 2025

The defaults render a point in Cameroon for the three most recent
years.  The MP4 stays in ``$WORK_DIR/output/<run_id>/``; its path is
printed on success.

Exit codes: 0 success, 2 invalid input or configuration, 1 pipeline failure.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import TYPE_CHECKING

from sat_timelapse.core.config import ConfigValidationError, PipelineConfig
from sat_timelapse.core.exceptions import PipelineError
from sat_timelapse.core.ingress import HTTP_BAD_REQUEST, http_status_for
from sat_timelapse.models.payloads import TimelapseRequest
from sat_timelapse.orchestrators.timelapse_pipeline import TimelapsePipeline

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger("sat_timelapse.cli")

DEFAULT_LAT = 4.5
DEFAULT_LON = 12.5
DEFAULT_YEARS = (2023, 2024, 2025)

EXIT_OK = 0
EXIT_PIPELINE_FAILED = 1
EXIT_INVALID_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sat-timelapse",
        description="Render a satellite imagery timelapse MP4 for a point.",
    )
    parser.add_argument("--lat", type=float, default=DEFAULT_LAT, help="Latitude in degrees.")
    parser.add_argument("--lon", type=float, default=DEFAULT_LON, help="Longitude in degrees.")
    parser.add_argument(
        "--years",
        type=int,
        nargs="+",
        default=list(DEFAULT_YEARS),
        help="Years to render, one frame each.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the run summary as JSON instead of the video path.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the pipeline, and return the exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = PipelineConfig.from_env()
        request = TimelapseRequest(lat=args.lat, lon=args.lon, years=args.years)
    except (ConfigValidationError, ValueError) as exc:
        logger.error("Invalid configuration or input: %s", exc)
        return EXIT_INVALID_INPUT

    run = asyncio.run(TimelapsePipeline(config).run(request))

    if args.json:
        print(json.dumps(run.to_summary(), indent=2))

    if run.error is not None:
        return _exit_code_for(run.error)

    if not args.json and run.video is not None:
        print(run.video.path)
    return EXIT_OK


def _exit_code_for(error: PipelineError) -> int:
    if http_status_for(error) == HTTP_BAD_REQUEST:
        return EXIT_INVALID_INPUT
    return EXIT_PIPELINE_FAILED


if __name__ == "__main__":
    sys.exit(main())
