"""
CLI display components for sync and upload events.

- CompactDisplay: one line per event and coarse upload percentages
- JsonDisplay: raw JSON lines for scripting and debugging
"""

from abc import ABC, abstractmethod
import dataclasses
import json
from typing import Any

from rich.console import Console

from .._types import SyncResult, UploadProgressSnapshot
from ..sse import ProgressEvent, ProgressEventType


def _format_payload(payload: Any) -> str:
    """Render scalar payload fields as ``key=value`` pairs."""
    if isinstance(payload, dict):
        parts = [
            f"{key}={value}"
            for key, value in payload.items()
            if isinstance(value, str | int | float | bool) or value is None
        ]
        return " ".join(parts)
    if payload is None:
        return ""
    return str(payload)


class EventDisplay(ABC):
    """Base class for event renderers."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    @abstractmethod
    def on_event(self, event: ProgressEvent) -> None:
        """Handle one server event."""

    @abstractmethod
    def on_upload_progress(self, snapshot: UploadProgressSnapshot) -> None:
        """Handle one upload byte-count tick."""

    @abstractmethod
    def show_result(self, result: SyncResult) -> None:
        """Render the final sync result."""


class CompactDisplay(EventDisplay):
    """Line-oriented output for humans."""

    def __init__(self, console: Console | None = None) -> None:
        super().__init__(console=console)
        self._last_percent = -1

    def on_event(self, event: ProgressEvent) -> None:
        details = _format_payload(event.payload)
        if event.type is ProgressEventType.ERROR:
            self.console.print(f"[red]❌ {details or 'error'}[/red]")
        elif event.type is ProgressEventType.COMPLETE:
            self.console.print("[green]✅ complete[/green]")
        elif event.type is ProgressEventType.PROGRESS:
            self.console.print(f"• {details}" if details else "•", highlight=False)

    def on_upload_progress(self, snapshot: UploadProgressSnapshot) -> None:
        if not snapshot.total_bytes:
            return
        percent = snapshot.uploaded_bytes * 100 // snapshot.total_bytes
        # Only print every 10%
        if percent // 10 == self._last_percent // 10:
            return
        self._last_percent = percent
        done = sum(1 for f in snapshot.files if f.progress >= 1)
        self.console.print(
            f"⬆ {percent}% ({snapshot.uploaded_bytes}/{snapshot.total_bytes} bytes, "
            f"{done}/{len(snapshot.files)} files)",
            highlight=False,
        )

    def show_result(self, result: SyncResult) -> None:
        summary = result.summary
        if summary is None:
            self.console.print("[green]Sync finished[/green]")
            return
        self.console.print(
            f"[green]Sync finished[/green]: inserted={summary.inserted} "
            f"updated={summary.updated} conflicts={summary.conflicts} errors={summary.errors}",
            highlight=False,
        )


class JsonDisplay(EventDisplay):
    """One JSON document per line."""

    def _emit(self, data: dict[str, Any]) -> None:
        self.console.print_json(json.dumps(data, default=str), indent=None)

    def on_event(self, event: ProgressEvent) -> None:
        self._emit({"type": event.type.value, "payload": event.payload})

    def on_upload_progress(self, snapshot: UploadProgressSnapshot) -> None:
        self._emit({"type": "upload-progress", **dataclasses.asdict(snapshot)})

    def show_result(self, result: SyncResult) -> None:
        self._emit({"type": "result", "payload": result.raw})


def create_display(format: str = "compact", console: Console | None = None) -> EventDisplay:
    """Factory for display renderers ("compact" or "json")."""
    if format == "json":
        return JsonDisplay(console=console)
    if format == "compact":
        return CompactDisplay(console=console)
    raise ValueError(f"Unknown display format: {format}")
