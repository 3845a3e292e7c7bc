"""Assets resource — upload photos with per-file progress."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from .._multipart import MultipartBody, UploadFile
from .._transports import CancelToken, HTTPPollingTransport
from .._upload import (
    DEFAULT_UPLOAD_TIMEOUT,
    ServerEventCallback,
    UploadProgressCallback,
    UploadStream,
)

if TYPE_CHECKING:
    from .._http import HTTPClient


class Assets:
    """client.assets — upload photo files into the library."""

    def __init__(self, http: HTTPClient, upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT):
        self._http = http
        self._upload_timeout = upload_timeout

    def upload(
        self,
        files: Sequence[object],
        *,
        directory: str | None = None,
        cancel: CancelToken | None = None,
        on_progress: UploadProgressCallback | None = None,
        on_server_event: ServerEventCallback | None = None,
        timeout: float | None = None,
    ) -> None:
        """Upload ``files`` and block until the server finishes processing them.

        ``files`` holds paths, ``(name, bytes | binary file[, content_type])``
        tuples or UploadFile objects. ``on_progress`` receives an
        UploadProgressSnapshot as bytes are sent; its per-file figures are a
        client-side estimate, attributed to files in submission order, not a
        per-file acknowledgment. ``on_server_event`` receives the server's
        processing events. ``timeout`` caps the whole upload in seconds.
        """
        uploads = [UploadFile.coerce(f) for f in files]
        if not uploads:
            return

        transport = HTTPPollingTransport(
            self._http.session,
            self._http.url("/photos/assets/upload"),
            MultipartBody(uploads, directory=directory),
            headers={"Accept": "text/event-stream"},
            timeout=timeout if timeout is not None else self._upload_timeout,
            cancel=cancel,
        )
        UploadStream(
            transport,
            uploads,
            cancel=cancel,
            on_progress=on_progress,
            on_server_event=on_server_event,
        ).run()
