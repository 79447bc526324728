"""JSON responses for the HTTP API."""

from __future__ import annotations

import dataclasses
import json
import logging
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from werkzeug.wrappers import Response

logger = logging.getLogger(__name__)

_JSON_CONTENT_TYPE = "application/json"

_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _format_time(value: datetime) -> str:
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    if offset is None or not offset:
        return text + "Z"
    zone = value.strftime("%z")
    return f"{text}{zone[:3]}:{zone[3:5]}"


def to_jsonable(payload: Any) -> Any:
    """Turn dataclasses, UUIDs and datetimes into plain JSON values."""
    if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        return {
            field.name: to_jsonable(getattr(payload, field.name))
            for field in dataclasses.fields(payload)
        }
    if isinstance(payload, uuid.UUID):
        return str(payload)
    if isinstance(payload, datetime):
        return _format_time(payload)
    if isinstance(payload, Mapping):
        return {str(key): to_jsonable(value) for key, value in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [to_jsonable(item) for item in payload]
    return payload


def _encode(payload: Any) -> bytes:
    text = json.dumps(
        to_jsonable(payload),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    for char, escaped in _ESCAPES.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def json_response(code: int, payload: Any) -> Response:
    """Build a JSON response; an unencodable payload gives an empty 500."""
    try:
        body = _encode(payload)
    except (TypeError, ValueError) as exc:
        logger.error("Error marshalling JSON: %s", exc)
        return Response(status=500, content_type=_JSON_CONTENT_TYPE)
    return Response(body, status=code, content_type=_JSON_CONTENT_TYPE)


def error_response(code: int, message: str, error: Optional[BaseException]) -> Response:
    """Log the error and build a JSON body of the form {"error": message}."""
    if error is not None:
        logger.warning("%s", error)
    if code > 499:
        logger.error("Responding with 5XX error: %s", message)
    return json_response(code, {"error": message})