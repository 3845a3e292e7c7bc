"""Dataclass models for job results and progress snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class JobState(str, Enum):
    """Lifecycle of one job invocation."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SyncSummary:
    """Counters reported when a sync run completes."""

    inserted: int = 0
    updated: int = 0
    conflicts: int = 0
    errors: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> SyncSummary:
        return cls(
            inserted=data.get("inserted", 0),
            updated=data.get("updated", 0),
            conflicts=data.get("conflicts", 0),
            errors=data.get("errors", 0),
        )


@dataclass
class SyncResult:
    """Final payload of a sync run. ``raw`` holds every field the server sent."""

    summary: SyncSummary | None
    actions: list[dict[str, Any]]
    raw: Any

    @classmethod
    def from_dict(cls, data: Any) -> SyncResult:
        if not isinstance(data, dict):
            return cls(summary=None, actions=[], raw=data)
        summary = data.get("summary")
        actions = data.get("actions")
        return cls(
            summary=SyncSummary.from_dict(summary) if isinstance(summary, dict) else None,
            actions=[a for a in actions if isinstance(a, dict)] if isinstance(actions, list) else [],
            raw=data,
        )


@dataclass
class UploadFileProgress:
    """Estimated upload progress of one submitted file.

    Projected client-side from the aggregate byte counter; the server does not
    acknowledge files individually.
    """

    index: int
    name: str
    size: int
    uploaded_bytes: int
    progress: float


@dataclass
class UploadProgressSnapshot:
    """Aggregate upload progress plus the per-file projection."""

    total_bytes: int
    uploaded_bytes: int
    files: list[UploadFileProgress] = field(default_factory=list)
