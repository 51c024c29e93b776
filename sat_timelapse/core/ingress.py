"""Thin ingress boundary helpers for the entry points.

Centralises the transport concerns shared by ``function_app.py`` and the
CLI so that both adapters contain only binding and handoff:

- **parse_trigger_body** — turns a raw JSON body (bytes, str or dict)
  into a validated ``TimelapseRequest``.
- **http_status_for** — maps a pipeline error to an HTTP status
  (400 for invalid input, 500 for pipeline failures).
- **error_response_body** — builds the ``{"error": ...}`` payload
  returned to clients, extended with the structured error fields.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import pydantic

from sat_timelapse.core.exceptions import ContractError, InvalidInput, PipelineError, ValidationError
from sat_timelapse.models.payloads import TimelapseRequest

logger = logging.getLogger("sat_timelapse.core.ingress")

HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_ERROR = 500


def parse_trigger_body(raw: bytes | str | dict[str, Any] | None) -> TimelapseRequest:
    """Parse a trigger payload into a ``TimelapseRequest``.

    An empty body is treated as ``{}`` so that the missing-coordinate
    case is reported by the orchestrator as ``InvalidInput``.

    Raises:
        ContractError: If the body is not a JSON object.
        InvalidInput: If a field has the wrong type or range
            (e.g. ``"lat": "north"`` or ``"years": [0]``).
    """
    if raw is None or raw in (b"", ""):
        payload: object = {}
    elif isinstance(raw, dict):
        payload = raw
    else:
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
            msg = f"Request body is not valid JSON: {exc}"
            raise ContractError(msg, stage="ingress", code="INVALID_JSON") from exc

    if not isinstance(payload, dict):
        msg = f"Request body must be a JSON object, got {type(payload).__name__}"
        raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")

    try:
        request = TimelapseRequest.model_validate(payload)
    except pydantic.ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        msg = f"Invalid request: {details}"
        raise InvalidInput(msg, stage="ingress") from exc

    logger.debug(
        "Parsed trigger body | lat=%s | lon=%s | years=%s",
        request.lat,
        request.lon,
        request.years,
    )
    return request


def http_status_for(exc: BaseException) -> int:
    """Return the HTTP status for *exc*: 400 for bad input, else 500."""
    if isinstance(exc, ValidationError | ContractError):
        return HTTP_BAD_REQUEST
    return HTTP_INTERNAL_ERROR


def error_response_body(exc: BaseException) -> dict[str, object]:
    """Build the JSON error payload returned to clients."""
    if isinstance(exc, PipelineError):
        return {"error": exc.message or exc.code, **exc.to_error_dict()}
    return {"error": str(exc) or exc.__class__.__name__}
