"""photosync client — entry point for sync runs and photo uploads."""

from __future__ import annotations

from collections.abc import Sequence
import os

from ._exceptions import AuthenticationError
from ._http import HTTPClient
from ._resources import Assets, DataSync
from ._sync import ProgressCallback
from ._transports import CancelToken
from ._types import SyncResult
from ._upload import DEFAULT_UPLOAD_TIMEOUT, ServerEventCallback, UploadProgressCallback

DEFAULT_BASE_URL = "http://localhost:1841/api"


class PhotoSync:
    """Client for the photo library's data-sync and upload API.

    Usage:
        client = PhotoSync(api_key="...")
        result = client.sync.run(dry_run=True, on_progress=print)
        client.assets.upload(["a.jpg", "b.jpg"], directory="2024/trip")
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 30,
        upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT,
        language: str | None = None,
    ):
        api_key = api_key or os.environ.get("PHOTOSYNC_API_KEY")
        if not api_key:
            raise AuthenticationError(
                "No API key provided. Pass api_key= or set PHOTOSYNC_API_KEY env var."
            )
        base_url = base_url or os.environ.get("PHOTOSYNC_BASE_URL") or DEFAULT_BASE_URL
        language = language or os.environ.get("PHOTOSYNC_LANGUAGE")

        self._http = HTTPClient(
            api_key=api_key, base_url=base_url, timeout=timeout, language=language
        )
        self.sync = DataSync(self._http)
        self.assets = Assets(self._http, upload_timeout=upload_timeout)

    def run_sync(
        self,
        dry_run: bool = False,
        *,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SyncResult:
        """Shortcut for ``client.sync.run``."""
        return self.sync.run(dry_run, cancel=cancel, on_progress=on_progress)

    def upload_files(
        self,
        files: Sequence[object],
        *,
        directory: str | None = None,
        cancel: CancelToken | None = None,
        on_progress: UploadProgressCallback | None = None,
        on_server_event: ServerEventCallback | None = None,
        timeout: float | None = None,
    ) -> None:
        """Shortcut for ``client.assets.upload``."""
        self.assets.upload(
            files,
            directory=directory,
            cancel=cancel,
            on_progress=on_progress,
            on_server_event=on_server_event,
            timeout=timeout,
        )
