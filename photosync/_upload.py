"""UploadStream: drive a multi-file upload over a polling transport."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
import logging

from ._errors import ServerErrorInfo, build_error, extract_error_info, extract_error_info_from_raw
from ._exceptions import AbortError, PhotoSyncError, ProtocolViolationError, ServerReportedError
from ._multipart import UploadFile
from ._transports import CancelToken, PollingTransport
from ._types import JobState, UploadFileProgress, UploadProgressSnapshot
from .sse import FrameBuffer, ProgressEvent, ProgressEventType, events_from_frames

logger = logging.getLogger(__name__)

UploadProgressCallback = Callable[[UploadProgressSnapshot], None]
ServerEventCallback = Callable[[ProgressEvent], None]

# Application-level ceiling on one upload, in seconds.
DEFAULT_UPLOAD_TIMEOUT = 600.0


def project_upload_progress(files: Sequence[UploadFile], loaded: int) -> UploadProgressSnapshot:
    """Estimate per-file progress from the aggregate byte counter.

    Bytes are attributed greedily in submission order: each file takes
    ``min(size, remaining)``. A zero-size file is always complete. This is a
    client-side projection, not a per-file acknowledgment from the server.
    """
    total = sum(f.size for f in files)
    remaining = loaded
    projected: list[UploadFileProgress] = []
    for index, upload in enumerate(files):
        uploaded = max(0, min(upload.size, remaining))
        remaining -= uploaded
        projected.append(
            UploadFileProgress(
                index=index,
                name=upload.name,
                size=upload.size,
                uploaded_bytes=uploaded,
                progress=1.0 if upload.size == 0 else min(1.0, uploaded / upload.size),
            )
        )
    return UploadProgressSnapshot(
        total_bytes=total, uploaded_bytes=min(loaded, total), files=projected
    )


class UploadStream:
    """One upload job over a transport that only exposes all text received so far.

    Each response tick frames only the text added since the previous tick, so
    every byte is framed exactly once.
    """

    def __init__(
        self,
        transport: PollingTransport,
        files: Sequence[UploadFile],
        *,
        cancel: CancelToken | None = None,
        on_progress: UploadProgressCallback | None = None,
        on_server_event: ServerEventCallback | None = None,
    ):
        self._transport = transport
        self._files = list(files)
        self._cancel = cancel
        self._on_progress = on_progress
        self._on_server_event = on_server_event
        self._frames = FrameBuffer()
        self._last_index = 0
        self._completed = False
        self._state = JobState.IDLE
        self._error: PhotoSyncError | None = None

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def error(self) -> PhotoSyncError | None:
        return self._error

    @property
    def _cancelled(self) -> bool:
        return self._cancel is not None and self._cancel.cancelled

    def _fail(self, error: PhotoSyncError) -> PhotoSyncError:
        self._state = JobState.FAILED
        self._error = error
        return error

    def _handle_upload_progress(self, loaded: int) -> None:
        if self._on_progress is None or self._cancelled:
            return
        self._on_progress(project_upload_progress(self._files, loaded))

    def _process_buffer(self) -> None:
        text = self._transport.response_text
        if not text or len(text) == self._last_index:
            return
        delta = text[self._last_index :]
        self._last_index = len(text)
        self._dispatch(self._frames.feed(delta))

    def _dispatch(self, frames: Iterable[str]) -> None:
        for event in events_from_frames(frames):
            if self._cancelled:
                raise AbortError("Upload aborted")
            if self._on_server_event is not None:
                self._on_server_event(event)
            if event.type is ProgressEventType.ERROR:
                info = extract_error_info(event.payload)
                self._transport.abort()
                raise build_error(info, "Server processing failed", error_cls=ServerReportedError)
            if event.type is ProgressEventType.COMPLETE:
                self._completed = True

    def _settle(self, status: int) -> None:
        success = 200 <= status < 300
        if success and self._completed:
            self._state = JobState.COMPLETED
            return
        if success:
            raise self._fail(
                build_error(
                    ServerErrorInfo(raw=self._transport.response_text or None),
                    "Upload response incomplete",
                    status,
                    error_cls=ProtocolViolationError,
                )
            )
        info = extract_error_info_from_raw(self._transport.response_text)
        raise self._fail(build_error(info, f"Upload failed: {status}", status))

    def run(self) -> None:
        """Send the upload and block until it settles. Returns None on success."""
        if self._state is not JobState.IDLE:
            raise RuntimeError("UploadStream can only be run once")
        self._state = JobState.RUNNING

        if self._cancelled:
            raise self._fail(AbortError("Upload aborted"))

        if self._cancel is not None:
            self._cancel.add_callback(self._transport.abort)
        try:
            status = self._transport.send(
                on_upload_progress=self._handle_upload_progress,
                on_tick=self._process_buffer,
            )
            self._process_buffer()
            self._dispatch(self._frames.flush())
        except PhotoSyncError as e:
            self._fail(e)
            raise
        finally:
            if self._cancel is not None:
                self._cancel.remove_callback(self._transport.abort)

        logger.debug("Upload finished with status %s (completed=%s)", status, self._completed)
        self._settle(status)
