"""SyncStream: consume the sync job's event stream down to one terminal outcome."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
import logging
from typing import Any

import requests

from ._errors import ServerErrorInfo, build_error, extract_error_info, extract_error_info_from_raw
from ._exceptions import AbortError, PhotoSyncError, ProtocolViolationError, ServerReportedError
from ._transports import CancelToken, ChunkSource, translate_transport_error
from ._types import JobState, SyncResult
from .sse import FrameBuffer, ProgressEvent, ProgressEventType, events_from_frames

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


def raise_for_stream_status(response: requests.Response) -> None:
    """Fail before any framing when the sync request was not accepted."""
    if response.ok and response.raw is not None:
        return

    fallback = f"Sync request failed: {response.status_code} {response.reason or ''}".rstrip()
    try:
        info = extract_error_info_from_raw(response.text)
    except (requests.RequestException, OSError, ValueError):
        logger.debug("Failed to read sync error body", exc_info=True)
        info = ServerErrorInfo()
    finally:
        response.close()
    raise build_error(info, fallback, response.status_code)


class SyncStream:
    """Iterable stream of sync progress events. Use as context manager or iterate directly.

    Iteration yields every ``progress`` frame's event in order and ends at
    settlement: it returns normally once a ``complete`` event was seen, and
    raises the unified error otherwise. The stream cannot be restarted.

    Usage:
        with client.sync.stream(dry_run=True) as stream:
            for event in stream:
                print(event.type, event.payload)
        print(stream.result.summary)
    """

    def __init__(self, source: ChunkSource, cancel: CancelToken | None = None):
        self._source = source
        self._cancel = cancel
        self._frames = FrameBuffer()
        self._state = JobState.IDLE
        self._pending_result: Any = None
        self._failure: ServerErrorInfo | None = None
        self._result: SyncResult | None = None
        self._error: PhotoSyncError | None = None

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def result(self) -> SyncResult:
        """Final result. Raises the job's error if it did not complete."""
        if self._result is not None:
            return self._result
        if self._error is not None:
            raise self._error
        raise RuntimeError(f"Sync stream has not settled (state: {self._state.value})")

    @property
    def error(self) -> PhotoSyncError | None:
        return self._error

    def _close(self) -> None:
        self._source.close()

    def __enter__(self) -> SyncStream:
        return self

    def __exit__(self, *_: object) -> None:
        self._close()

    @property
    def _cancelled(self) -> bool:
        return self._cancel is not None and self._cancel.cancelled

    def _raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise AbortError("Sync aborted")

    def _fail(self, error: PhotoSyncError) -> PhotoSyncError:
        self._state = JobState.FAILED
        self._error = error
        return error

    def _stage(self, event: ProgressEvent) -> None:
        if event.type is ProgressEventType.COMPLETE:
            if event.payload is not None:
                self._pending_result = event.payload
        elif event.type is ProgressEventType.ERROR:
            # Keep draining; the failure is raised at end of stream.
            self._failure = extract_error_info(event.payload)
            logger.debug("Sync reported error: %s", self._failure.message)

    def _dispatch(self, frames: Iterable[str]) -> Iterator[ProgressEvent]:
        for event in events_from_frames(frames):
            self._raise_if_cancelled()
            self._stage(event)
            yield event

    def _settle(self) -> None:
        if self._failure is not None:
            raise self._fail(
                build_error(self._failure, "Sync failed", error_cls=ServerReportedError)
            )
        if self._pending_result is None:
            raise self._fail(
                ProtocolViolationError(
                    "Sync completed without a final result. Connection terminated."
                )
            )
        self._result = SyncResult.from_dict(self._pending_result)
        self._state = JobState.COMPLETED

    def __iter__(self) -> Iterator[ProgressEvent]:
        if self._state is not JobState.IDLE:
            raise RuntimeError("SyncStream can only be consumed once")
        self._state = JobState.RUNNING

        if self._cancel is not None:
            self._cancel.add_callback(self._close)
        try:
            self._raise_if_cancelled()
            for chunk in self._source.iter_chunks():
                self._raise_if_cancelled()
                yield from self._dispatch(self._frames.feed(chunk))
            self._raise_if_cancelled()
            yield from self._dispatch(self._frames.flush())
        except PhotoSyncError as e:
            self._fail(e)
            raise
        except (requests.RequestException, OSError) as e:
            raise self._fail(translate_transport_error(e, self._cancel, action="sync")) from e
        except Exception as e:
            # Closing the response under a pending read surfaces as arbitrary errors.
            if not self._cancelled:
                raise
            raise self._fail(AbortError("Sync aborted")) from e
        finally:
            if self._cancel is not None:
                self._cancel.remove_callback(self._close)
            self._close()

        self._settle()

    def until_done(self, on_progress: ProgressCallback | None = None) -> SyncResult:
        """Drain the stream, reporting each event, and return the final result."""
        for event in self:
            if on_progress is not None and not self._cancelled:
                on_progress(event)
        return self.result
