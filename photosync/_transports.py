"""Transport adapters behind the two stream consumers.

The sync job reads its response through a ``ChunkSource`` (pull the next
chunk). The upload job goes through a ``PollingTransport``, which only exposes
all response text received so far plus tick callbacks. Both translate
``requests`` failures into the TransportError family.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
import codecs
import logging
import socket
import threading
import time
from typing import TYPE_CHECKING, Protocol

import requests
from urllib3.exceptions import ReadTimeoutError

from ._exceptions import AbortError, NetworkError, PhotoSyncError, RequestTimeoutError, TransportError

if TYPE_CHECKING:
    from ._multipart import MultipartBody

logger = logging.getLogger(__name__)


class CancelToken:
    """Cooperative cancellation signal, safe to trigger from any thread.

    Usage:
        cancel = CancelToken()
        threading.Timer(30, cancel.cancel).start()
        client.sync.run(cancel=cancel)
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Signal cancellation and run registered callbacks once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancel, immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


def _is_timeout(exc: BaseException | None) -> bool:
    """True when ``exc`` is, or wraps, a connect or read timeout.

    ``requests`` reports a read timeout inside ``iter_content`` as a
    ConnectionError wrapping urllib3's ReadTimeoutError.
    """
    for _ in range(8):
        if exc is None:
            return False
        if isinstance(exc, requests.Timeout | ReadTimeoutError | socket.timeout):
            return True
        wrapped = exc.args[0] if exc.args and isinstance(exc.args[0], BaseException) else None
        exc = wrapped or exc.__cause__ or exc.__context__
    return False


def shutdown_response(response: requests.Response) -> None:
    """Close ``response``, first shutting down its socket.

    Closing alone does not wake a thread blocked reading the socket; the
    shutdown makes that read return at once.
    """
    raw = response.raw
    if raw is not None:
        try:
            raw.shutdown()
        except (AttributeError, ValueError, RuntimeError, OSError) as e:
            logger.debug("Socket shutdown skipped: %s", e)
    response.close()


def translate_transport_error(
    exc: BaseException, cancel: CancelToken | None, *, action: str
) -> PhotoSyncError:
    """Map a low-level failure to NetworkError, RequestTimeoutError or AbortError.

    A failure observed after cancellation is always the abort.
    """
    label = action.capitalize()
    if cancel is not None and cancel.cancelled:
        return AbortError(f"{label} aborted")
    if isinstance(exc, PhotoSyncError):
        return exc
    if _is_timeout(exc):
        return RequestTimeoutError(f"{label} timed out. Please try again later.")
    return NetworkError(f"Network error during {action}. Please try again later.")


class ChunkSource(Protocol):
    """Pull-next-chunk capability: decoded text chunks in arrival order."""

    def iter_chunks(self) -> Iterator[str]: ...

    def close(self) -> None: ...


class ResponseChunkSource:
    """ChunkSource over a streaming ``requests.Response``.

    Bytes are decoded incrementally so multi-byte characters split across
    network chunks survive.
    """

    def __init__(self, response: requests.Response, encoding: str = "utf-8"):
        self._response = response
        self._encoding = encoding
        self._closed = False

    def iter_chunks(self) -> Iterator[str]:
        decoder = codecs.getincrementaldecoder(self._encoding)(errors="replace")
        for raw in self._response.iter_content(chunk_size=None):
            text = decoder.decode(raw)
            if text:
                yield text
        tail = decoder.decode(b"", final=True)
        if tail:
            yield tail

    def close(self) -> None:
        """Close the underlying response (idempotent). Aborts a pending read."""
        if not self._closed:
            self._closed = True
            shutdown_response(self._response)


class PollingTransport(Protocol):
    """Read-all-so-far capability used by the upload job."""

    @property
    def response_text(self) -> str: ...

    def send(
        self,
        *,
        on_upload_progress: Callable[[int], None],
        on_tick: Callable[[], None],
    ) -> int: ...

    def abort(self) -> None: ...


class HTTPPollingTransport:
    """POST a multipart body and expose the response as a growing text buffer.

    ``on_upload_progress`` fires as body blocks are handed to the socket,
    ``on_tick`` after every response chunk. ``timeout`` is a ceiling on the
    whole exchange and also bounds each socket operation.
    """

    def __init__(
        self,
        session: requests.Session,
        url: str,
        body: MultipartBody,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
        action: str = "upload",
    ):
        self._session = session
        self._url = url
        self._body = body
        self._headers = headers or {}
        self._timeout = timeout
        self._cancel = cancel
        self._action = action
        self._deadline: float | None = None
        self._response: requests.Response | None = None
        self._text = ""

    @property
    def response_text(self) -> str:
        return self._text

    @property
    def _cancelled(self) -> bool:
        return self._cancel is not None and self._cancel.cancelled

    def _past_deadline(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def _check_alive(self) -> None:
        if self._cancelled:
            raise AbortError(f"{self._action.capitalize()} aborted")
        if self._past_deadline():
            raise RequestTimeoutError(
                f"{self._action.capitalize()} timed out. Please try again later."
            )

    def send(
        self,
        *,
        on_upload_progress: Callable[[int], None],
        on_tick: Callable[[], None],
    ) -> int:
        if self._timeout:
            self._deadline = time.monotonic() + self._timeout

        def _on_read(loaded: int) -> None:
            self._check_alive()
            on_upload_progress(loaded)

        self._body.on_read = _on_read
        headers = {**self._headers, "Content-Type": self._body.content_type}
        try:
            self._check_alive()
            response = self._session.post(
                self._url,
                data=self._body,
                headers=headers,
                stream=True,
                timeout=self._timeout,
            )
            self._response = response
            logger.debug("Upload response %s from %s", response.status_code, self._url)

            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            for raw in response.iter_content(chunk_size=None):
                self._check_alive()
                self._text += decoder.decode(raw)
                on_tick()
            self._text += decoder.decode(b"", final=True)
            if self._cancelled:
                # A shutdown socket ends the read loop like a normal EOF.
                raise AbortError(f"{self._action.capitalize()} aborted")
        except TransportError:
            raise
        except (requests.RequestException, OSError) as e:
            if self._past_deadline() and not self._cancelled:
                raise RequestTimeoutError(
                    f"{self._action.capitalize()} timed out. Please try again later."
                ) from e
            raise translate_transport_error(e, self._cancel, action=self._action) from e
        except Exception as e:
            # Closing the response under a pending read surfaces as arbitrary errors.
            if self._cancelled:
                raise AbortError(f"{self._action.capitalize()} aborted") from e
            raise
        finally:
            self._body.close()
            if self._response is not None:
                self._response.close()

        return response.status_code

    def abort(self) -> None:
        """Tear down the exchange. The running ``send`` raises AbortError."""
        if self._response is not None:
            shutdown_response(self._response)
