"""Data sync resource — run sync jobs and manage their conflicts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .._case import snake_case_keys
from .._exceptions import AbortError
from .._sync import ProgressCallback, SyncStream, raise_for_stream_status
from .._transports import CancelToken, ResponseChunkSource
from .._types import SyncResult

if TYPE_CHECKING:
    from .._http import HTTPClient


class DataSync:
    """client.sync — run the storage-to-library sync and resolve conflicts."""

    def __init__(self, http: HTTPClient):
        self._http = http

    def stream(self, dry_run: bool = False, *, cancel: CancelToken | None = None) -> SyncStream:
        """Start a sync run and return its event stream.

        A rejected request (non-2xx or no body) raises here, before any event
        is read. Iterate the returned SyncStream to follow progress; the
        iteration raises if the run fails.
        """
        if cancel is not None and cancel.cancelled:
            raise AbortError("Sync aborted")

        resp = self._http.open_stream(
            "POST",
            "/data-sync/run",
            cancel=cancel,
            action="sync",
            json={"dryRun": dry_run},
            headers={"Accept": "text/event-stream"},
        )
        raise_for_stream_status(resp)
        return SyncStream(ResponseChunkSource(resp), cancel=cancel)

    def run(
        self,
        dry_run: bool = False,
        *,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SyncResult:
        """Run a sync job to completion and return its result.

        ``on_progress`` receives every event of the run, including the
        terminal one. Set ``dry_run=True`` to preview the actions without
        applying them.
        """
        with self.stream(dry_run, cancel=cancel) as stream:
            return stream.until_done(on_progress)

    def status(self) -> dict[str, Any]:
        """Current sync status (last run, whether one is in progress)."""
        resp = self._http.request("GET", "/data-sync/status")
        result: dict[str, Any] = snake_case_keys(resp.json())
        return result

    def conflicts(self) -> list[dict[str, Any]]:
        """Conflicts left by previous runs that need a decision."""
        resp = self._http.request("GET", "/data-sync/conflicts")
        return [snake_case_keys(c) for c in resp.json()]

    def resolve_conflict(
        self, conflict_id: str, *, strategy: str, dry_run: bool = False
    ) -> dict[str, Any]:
        """Resolve one conflict with ``strategy`` and return the resulting action."""
        body = {"strategy": strategy, "dryRun": dry_run}
        resp = self._http.request("POST", f"/data-sync/conflicts/{conflict_id}/resolve", json=body)
        result: dict[str, Any] = snake_case_keys(resp.json())
        return result
