"""Tests for cancellation, error translation, and transport adapters."""

from unittest.mock import MagicMock, call, patch

import pytest
import requests
import responses
from urllib3.exceptions import ReadTimeoutError

from photosync import AbortError, CancelToken, NetworkError, PhotoSyncError, RequestTimeoutError
from photosync._multipart import MultipartBody, UploadFile
from photosync._transports import (
    HTTPPollingTransport,
    ResponseChunkSource,
    shutdown_response,
    translate_transport_error,
)

URL = "https://photos.test/api/photos/assets/upload"


class TestCancelToken:
    def test_callbacks_run_once(self):
        cancel = CancelToken()
        calls = []
        cancel.add_callback(lambda: calls.append(1))
        cancel.cancel()
        cancel.cancel()
        assert cancel.cancelled
        assert calls == [1]

    def test_callback_added_after_cancel_runs_immediately(self):
        cancel = CancelToken()
        cancel.cancel()
        calls = []
        cancel.add_callback(lambda: calls.append(1))
        assert calls == [1]

    def test_removed_callback_not_run(self):
        cancel = CancelToken()
        callback = MagicMock()
        cancel.add_callback(callback)
        cancel.remove_callback(callback)
        cancel.remove_callback(callback)
        cancel.cancel()
        callback.assert_not_called()


class TestTranslateTransportError:
    def test_cancelled_is_abort(self):
        cancel = CancelToken()
        cancel.cancel()
        err = translate_transport_error(requests.ConnectionError(), cancel, action="upload")
        assert isinstance(err, AbortError)
        assert err.message == "Upload aborted"

    def test_timeout(self):
        err = translate_transport_error(requests.ReadTimeout(), None, action="sync")
        assert isinstance(err, RequestTimeoutError)
        assert err.message == "Sync timed out. Please try again later."

    def test_network(self):
        err = translate_transport_error(OSError("reset"), None, action="upload")
        assert isinstance(err, NetworkError)
        assert err.message == "Network error during upload. Please try again later."

    def test_read_timeout_wrapped_in_connection_error(self):
        stalled = requests.ConnectionError(ReadTimeoutError(None, None, "Read timed out."))
        err = translate_transport_error(stalled, None, action="upload")
        assert isinstance(err, RequestTimeoutError)
        assert err.message == "Upload timed out. Please try again later."

    def test_timeout_found_through_cause(self):
        try:
            try:
                raise TimeoutError("timed out")
            except TimeoutError as e:
                raise requests.ConnectionError("connection broken") from e
        except requests.ConnectionError as e:
            err = translate_transport_error(e, None, action="sync")
        assert isinstance(err, RequestTimeoutError)

    def test_photosync_error_passes_through(self):
        typed = PhotoSyncError("typed")
        assert translate_transport_error(typed, CancelToken(), action="sync") is typed


class TestResponseChunkSource:
    def test_multibyte_split_across_chunks(self):
        resp = MagicMock()
        resp.iter_content.return_value = iter([b"a\xc3", b"\xa9b", b"\xe2\x82"])
        source = ResponseChunkSource(resp)
        chunks = list(source.iter_chunks())
        assert chunks[:2] == ["a", "éb"]
        assert "".join(chunks) == "aéb�"
        resp.iter_content.assert_called_once_with(chunk_size=None)

    def test_close_is_idempotent(self):
        resp = MagicMock()
        source = ResponseChunkSource(resp)
        source.close()
        source.close()
        resp.raw.shutdown.assert_called_once()
        resp.close.assert_called_once()


class TestShutdownResponse:
    def test_shuts_down_socket_before_close(self):
        resp = MagicMock()
        shutdown_response(resp)
        assert resp.mock_calls == [call.raw.shutdown(), call.close()]

    def test_tolerates_missing_socket(self):
        resp = MagicMock()
        resp.raw.shutdown.side_effect = ValueError("no socket to shut down")
        shutdown_response(resp)
        resp.close.assert_called_once()

    def test_without_raw(self):
        resp = MagicMock(raw=None)
        shutdown_response(resp)
        resp.close.assert_called_once()


def _transport(**kwargs) -> HTTPPollingTransport:
    body = MultipartBody([UploadFile(name="a.jpg", size=3, source=b"abc")], directory="d")
    return HTTPPollingTransport(requests.Session(), URL, body, **kwargs)


class TestHTTPPollingTransport:
    @responses.activate
    def test_accumulates_response_text(self):
        responses.add(responses.POST, URL, body="event: progress\n\n", status=201)
        transport = _transport(headers={"Accept": "text/event-stream"})
        ticks = []
        status = transport.send(
            on_upload_progress=lambda _loaded: None,
            on_tick=lambda: ticks.append(transport.response_text),
        )
        assert status == 201
        assert transport.response_text == "event: progress\n\n"
        assert ticks
        request = responses.calls[0].request
        assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")
        assert request.headers["Accept"] == "text/event-stream"

    def test_cancelled_before_send(self):
        cancel = CancelToken()
        cancel.cancel()
        with pytest.raises(AbortError, match="Upload aborted"):
            _transport(cancel=cancel).send(on_upload_progress=print, on_tick=print)

    def test_deadline(self):
        clock = iter([0.0])

        def monotonic():
            return next(clock, 100.0)

        with patch("photosync._transports.time.monotonic", side_effect=monotonic):
            with pytest.raises(RequestTimeoutError, match="Upload timed out"):
                _transport(timeout=10).send(on_upload_progress=print, on_tick=print)

    @responses.activate
    def test_connection_error(self):
        responses.add(responses.POST, URL, body=requests.ConnectionError("refused"))
        with pytest.raises(NetworkError, match="Network error during upload"):
            _transport().send(on_upload_progress=lambda _l: None, on_tick=lambda: None)

    @responses.activate
    def test_stalled_response_is_timeout(self):
        stalled = requests.ConnectionError(ReadTimeoutError(None, None, "Read timed out."))
        responses.add(responses.POST, URL, body=stalled)
        with pytest.raises(RequestTimeoutError, match="Upload timed out"):
            _transport(timeout=5).send(on_upload_progress=lambda _l: None, on_tick=lambda: None)

    @responses.activate
    def test_failure_after_deadline_is_timeout(self):
        responses.add(responses.POST, URL, body=requests.ConnectionError("connection reset"))
        clock = iter([0.0, 0.0])

        def monotonic():
            return next(clock, 100.0)

        with patch("photosync._transports.time.monotonic", side_effect=monotonic):
            with pytest.raises(RequestTimeoutError, match="Upload timed out"):
                _transport(timeout=10).send(on_upload_progress=lambda _l: None, on_tick=lambda: None)

    @responses.activate
    def test_abort_mid_response(self):
        responses.add(responses.POST, URL, body="event: progress\n\n" * 50, status=200)
        cancel = CancelToken()
        transport = _transport(cancel=cancel)

        def on_tick():
            cancel.cancel()
            transport.abort()

        with pytest.raises(AbortError, match="Upload aborted"):
            transport.send(on_upload_progress=lambda _l: None, on_tick=on_tick)

    def test_abort_shuts_down_socket(self):
        transport = _transport()
        response = MagicMock()
        transport._response = response
        transport.abort()
        response.raw.shutdown.assert_called_once()
        response.close.assert_called_once()
