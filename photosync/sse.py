"""
Event-stream framing for the sync and upload progress protocols.

The server answers both job endpoints with Server-Sent Events. Each frame is
a block of lines terminated by a blank line:

    event: progress
    data: {"type": "progress", "payload": {"stage": "scan", "processed": 10}}

Only frames named ``progress`` belong to the protocol. Their data is a JSON
object ``{"type": "progress" | "complete" | "error", "payload": ...}``.

Protocol: https://html.spec.whatwg.org/multipage/server-sent-events.html
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
import json
import logging
import re
from typing import Any

from ._case import snake_case_keys
from ._exceptions import DecodeError

logger = logging.getLogger(__name__)

PROGRESS_EVENT_NAME = "progress"

# A blank line: two consecutive line breaks, each "\n" or "\r\n".
_FRAME_BOUNDARY = re.compile(r"\r?\n\r?\n")
_LINE_BREAK = re.compile(r"\r?\n")


class ProgressEventType(str, Enum):
    """Types carried inside a ``progress`` frame."""

    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"

    # Reserved for future extension; consumers ignore these.
    UNKNOWN = "unknown"


def extract_frames(buffer: str) -> tuple[list[str], str]:
    """Split every complete frame off the front of ``buffer``.

    Returns the frames in order and the remainder, which holds a partial frame
    (or nothing) and must be prepended to the next chunk.
    """
    frames: list[str] = []
    start = 0
    match = _FRAME_BOUNDARY.search(buffer, start)
    while match is not None:
        frames.append(buffer[start : match.start()])
        start = match.end()
        match = _FRAME_BOUNDARY.search(buffer, start)
    return frames, buffer[start:]


class FrameBuffer:
    """Accumulates raw text for one job and hands out complete frames.

    Usage:
        frames = FrameBuffer()
        for chunk in chunks:
            for frame in frames.feed(chunk):
                ...
        for frame in frames.flush():
            ...
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received but not yet framed."""
        return self._buffer

    def feed(self, text: str) -> list[str]:
        """Append a chunk and return the frames it completed."""
        if not text:
            return []
        frames, self._buffer = extract_frames(self._buffer + text)
        return frames

    def flush(self) -> list[str]:
        """End of stream: a non-blank remainder is one last, unterminated frame."""
        remainder, self._buffer = self._buffer, ""
        if not remainder.strip():
            return []
        return [remainder]


@dataclass
class DecodedFrame:
    """Event name and data lines of one frame."""

    name: str
    data_lines: list[str] = field(default_factory=list)

    @property
    def data(self) -> str:
        return "\n".join(self.data_lines)


def decode_frame(raw: str) -> DecodedFrame | None:
    """Parse one frame. Returns None when it has no name or no data."""
    name: str | None = None
    data_lines: list[str] = []

    for line in _LINE_BREAK.split(raw):
        if not line or line.startswith(":"):
            continue
        if line.startswith("event:"):
            # Repeated event lines: the last one wins.
            name = line[6:].strip()
            continue
        if line.startswith("data:"):
            data_lines.append(line[5:].strip())

    if not name or not data_lines:
        return None
    return DecodedFrame(name=name, data_lines=data_lines)


@dataclass
class ProgressEvent:
    """One typed event from a ``progress`` frame, keys already snake_cased."""

    type: ProgressEventType
    payload: Any
    raw: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressEvent":
        try:
            event_type = ProgressEventType(data.get("type"))
        except ValueError:
            event_type = ProgressEventType.UNKNOWN
        return cls(type=event_type, payload=data.get("payload"), raw=data)

    @property
    def is_terminal(self) -> bool:
        return self.type in (ProgressEventType.COMPLETE, ProgressEventType.ERROR)


def decode_event_payload(text: str) -> dict[str, Any]:
    """JSON-decode a frame's data. Raises DecodeError on anything but an object."""
    try:
        parsed = json.loads(text)
    except ValueError as e:
        raise DecodeError(f"Invalid event JSON: {e}", data=text) from e
    if not isinstance(parsed, dict):
        raise DecodeError("Event payload is not a JSON object", data=parsed)
    return parsed


def normalize_event(name: str | None, payload_text: str) -> ProgressEvent | None:
    """Turn a decoded frame into a ProgressEvent, or None if it is not one.

    Malformed payloads are logged and dropped; they never abort the stream.
    """
    if name != PROGRESS_EVENT_NAME:
        return None
    try:
        data = decode_event_payload(payload_text)
    except DecodeError as e:
        logger.warning("Failed to parse progress event: %s (%s)", e.message, payload_text[:200])
        return None
    return ProgressEvent.from_dict(snake_case_keys(data))


def events_from_frames(frames: Iterable[str]) -> list[ProgressEvent]:
    """Decode and normalize a batch of frames, skipping everything else."""
    events: list[ProgressEvent] = []
    for raw in frames:
        decoded = decode_frame(raw)
        if decoded is None:
            continue
        event = normalize_event(decoded.name, decoded.data)
        if event is not None:
            events.append(event)
    return events
