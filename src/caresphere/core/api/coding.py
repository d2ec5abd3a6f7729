"""JSON coding for the API client

Request bodies are encoded to JSON with ISO-8601 dates. Response bodies are
decoded in two shapes because the backend is inconsistent about wrapping:

    envelope: {"success": true, "data": <T>, "error": null, "metadata": {...}}
    bare:     <T>

decode_response() treats these as a tagged variant: the envelope shape is
tried first and the bare shape is the fallback.
"""

import json
import re
from dataclasses import fields, is_dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from caresphere.core.exceptions import DecodingError, EncodingError, NoDataError, ServerError

# Exceptions a from_dict()/constructor raises on a payload of the wrong shape
DECODE_ERRORS: Tuple[type, ...] = (KeyError, TypeError, ValueError, AttributeError)

# Status reported for {"success": false} envelopes delivered with a 2xx status
ENVELOPE_FAILURE_STATUS = 400

# Seconds fraction of a timestamp; fromisoformat on 3.10 wants 3 or 6 digits
_FRACTION = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


# ============================================================================
# Dates
# ============================================================================


def format_datetime(value: datetime) -> str:
    """Format a datetime as ISO-8601 in UTC with a ``Z`` suffix.

    Naive datetimes are taken to be UTC. Sub-second precision is kept to
    milliseconds and dropped entirely when zero.

    Examples:
        >>> format_datetime(datetime(2024, 3, 1, 9, 30))
        '2024-03-01T09:30:00Z'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc).replace(tzinfo=None)
    if value.microsecond:
        return value.isoformat(timespec="milliseconds") + "Z"
    return value.isoformat(timespec="seconds") + "Z"


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Raises:
        ValueError: value is not an ISO-8601 timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO-8601 string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_optional_datetime(value: Optional[str]) -> Optional[datetime]:
    return parse_datetime(value) if value is not None else None


# ============================================================================
# Encoding
# ============================================================================


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return format_datetime(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if is_dataclass(obj) and not isinstance(obj, type):
        # shallow: nested values go back through this hook
        return {f.name: getattr(obj, f.name) for f in fields(obj)}
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_json(value: Any) -> bytes:
    """Serialize ``value`` to compact UTF-8 JSON.

    Raises:
        EncodingError: value (or something inside it) is not representable
    """
    try:
        return json.dumps(
            value, default=_json_default, allow_nan=False, ensure_ascii=False, separators=(",", ":")
        ).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodingError(cause=e) from e


def encode_body(body: Any) -> Optional[bytes]:
    """Encode an optional request body; None means no body."""
    if body is None:
        return None
    return encode_json(body)


# ============================================================================
# Decoding
# ============================================================================


def decode_json(body: bytes) -> Any:
    """Parse raw response bytes as JSON.

    Raises:
        DecodingError: body is not valid UTF-8 JSON
    """
    try:
        return json.loads(body)
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodingError(cause=e) from e


def decode_value(value: Any, response_type: Optional[Callable[..., Any]]) -> Any:
    """Convert a parsed JSON value into ``response_type``.

    ``response_type`` is either None (the JSON value is returned as is), a
    class exposing ``from_dict()``, or any callable taking the JSON value.
    """
    if response_type is None:
        return value
    from_dict = getattr(response_type, "from_dict", None)
    if from_dict is not None:
        return from_dict(value)
    return response_type(value)


def _as_envelope(payload: Any):
    """Return an APIResponse when ``payload`` has the envelope shape, else None."""
    if not isinstance(payload, dict) or not isinstance(payload.get("success"), bool):
        return None

    from caresphere.core.api.models import APIResponse

    try:
        return APIResponse.from_dict(payload)
    except DECODE_ERRORS:
        return None


def decode_response(
    body: bytes,
    response_type: Optional[Callable[..., Any]] = None,
    status_code: int = 200,
) -> Any:
    """Decode a successful response body.

    Untyped (``response_type`` None): an envelope yields its ``data`` on
    success and raises ServerError on ``success: false`` with an ``error``
    object. A body that merely has a boolean ``success`` key but neither
    ``data`` nor ``error`` is returned as parsed, like any other bare body.

    Typed: the envelope's ``data`` is decoded first; when there is no
    envelope, the envelope carries no data, or ``data`` does not fit the
    type, the whole body is decoded as the bare shape.

    Raises:
        NoDataError: empty body, or an envelope without data
        DecodingError: body fits neither shape
        ServerError: ``success: false`` envelope that the type cannot absorb
    """
    if not body or not body.strip():
        if getattr(response_type, "accepts_empty_body", False):
            return response_type()
        raise NoDataError(status_code=status_code)

    payload = decode_json(body)
    envelope = _as_envelope(payload)

    if response_type is None:
        if envelope is None:
            return payload
        if envelope.success and envelope.data is not None:
            return envelope.data
        if not envelope.success and envelope.error is not None:
            raise ServerError(ENVELOPE_FAILURE_STATUS, envelope.error.message)
        # no data and no error: the body itself is the payload
        return payload

    if envelope is not None and envelope.success and envelope.data is not None:
        try:
            return decode_value(envelope.data, response_type)
        except DECODE_ERRORS:
            # data did not fit; the bare shape is tried next
            pass

    try:
        return decode_value(payload, response_type)
    except DECODE_ERRORS as e:
        if envelope is not None and envelope.error is not None:
            raise ServerError(ENVELOPE_FAILURE_STATUS, envelope.error.message, cause=e) from e
        if envelope is not None and envelope.data is None:
            raise NoDataError(status_code=status_code, cause=e) from e
        raise DecodingError(cause=e, status_code=status_code) from e


def extract_error_message(body: bytes) -> Optional[str]:
    """Pull a human readable message out of an error response body.

    Understands ``{"error": {"message": ...}}`` and ``{"message": ...}``;
    returns None for anything else, including non-JSON bodies.
    """
    if not body:
        return None
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None

    error = payload.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(payload.get("message"), str):
        return payload["message"]
    return None
