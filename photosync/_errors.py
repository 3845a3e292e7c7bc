"""Collapse heterogeneous server error shapes into one PhotoSyncError.

Errors reach the client in several shapes: a JSON body on a non-2xx response,
a plain-text body, the payload of an ``error`` stream event, or nothing at all
when the transport failed. The helpers here pull a message and a numeric code
out of whatever arrived and build the matching exception.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
import math
import re
from typing import Any, Literal

from ._exceptions import STATUS_MAP, APIError, PhotoSyncError, ServerReportedError

# Checked in order on mapping payloads; the first non-empty one wins.
MESSAGE_FIELDS = ("message", "error", "detail", "description", "reason")

PLAN_LIMIT_CODE = 40
STORAGE_LIMIT_CODE = 41

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

UpgradeCategory = Literal["plan", "storage"]


@dataclass
class ServerErrorInfo:
    """Message, numeric code and raw payload extracted from a server error."""

    message: str | None = None
    code: int | None = None
    raw: Any = None


def error_message(value: Any) -> str | None:
    """Depth-first search for the first non-empty message in ``value``."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        return value if value.strip() else None

    if isinstance(value, int | float):
        return str(value) if math.isfinite(value) else None

    if isinstance(value, PhotoSyncError):
        return error_message(value.message)

    if isinstance(value, BaseException):
        return error_message(str(value))

    if isinstance(value, list | tuple):
        for entry in value:
            message = error_message(entry)
            if message:
                return message
        return None

    if isinstance(value, Mapping):
        for field in MESSAGE_FIELDS:
            message = error_message(value.get(field))
            if message:
                return message

    return None


def parse_number_like(value: Any) -> int | float | None:
    """Accept finite numbers and integer-prefixed strings ("41", "41 quota")."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def parse_raw_payload(raw: str | bytes | None) -> Any:
    """Decode a response body as JSON, falling back to the trimmed text."""
    if not raw:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    trimmed = raw.strip()
    if not trimmed:
        return None
    try:
        return json.loads(trimmed)
    except ValueError:
        return trimmed


def extract_error_info(payload: Any) -> ServerErrorInfo:
    """Build a ServerErrorInfo from an already-decoded payload."""
    code = None
    if isinstance(payload, Mapping):
        parsed = parse_number_like(payload.get("code"))
        code = int(parsed) if parsed is not None else None
    return ServerErrorInfo(message=error_message(payload), code=code, raw=payload)


def extract_error_info_from_raw(raw: str | bytes | None) -> ServerErrorInfo:
    """Build a ServerErrorInfo from an undecoded response body."""
    payload = parse_raw_payload(raw)
    if payload is None:
        payload = raw or None
    return extract_error_info(payload)


def build_error(
    info: ServerErrorInfo,
    fallback: str,
    status_code: int | None = None,
    *,
    error_cls: type[PhotoSyncError] | None = None,
) -> PhotoSyncError:
    """Create the unified exception for ``info``.

    Without an explicit ``error_cls`` a non-2xx ``status_code`` selects the class
    from STATUS_MAP (APIError when unmapped); otherwise the failure is treated
    as server-reported.
    """
    if error_cls is None:
        if status_code is not None and not 200 <= status_code < 300:
            error_cls = STATUS_MAP.get(status_code, APIError)
        else:
            error_cls = ServerReportedError
    return error_cls(
        info.message or fallback,
        status_code=status_code,
        code=info.code,
        data=info.raw,
    )


def get_error_message(error: Any, fallback: str = "Request failed") -> str:
    """Best human-readable message for any error a caller may hold."""
    if isinstance(error, PhotoSyncError):
        message = error_message(error.data) or error_message(error.message)
        if message:
            return message
    return error_message(error) or fallback


def get_status_code(error: Any) -> int | None:
    if isinstance(error, PhotoSyncError):
        return error.status_code
    return None


def get_error_code(error: Any) -> int | None:
    """Numeric classification code carried by ``error`` or its payload."""
    if not isinstance(error, PhotoSyncError):
        return None
    if error.code is not None:
        return error.code
    if isinstance(error.data, Mapping):
        parsed = parse_number_like(error.data.get("code"))
        if parsed is not None:
            return int(parsed)
    return None


def resolve_upgrade_category(error: Any) -> UpgradeCategory | None:
    """Tell whether ``error`` means the tenant hit a plan or storage limit."""
    code = get_error_code(error)
    if code == PLAN_LIMIT_CODE:
        return "plan"
    if code == STORAGE_LIMIT_CODE:
        return "storage"
    if get_status_code(error) == 402:
        return "plan"
    return None
