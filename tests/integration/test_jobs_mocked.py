"""
Integration tests for sync and upload jobs with mocked HTTP responses.

These tests drive the full pipeline: client → HTTP stream → framing → events
→ settlement, using ``responses`` to serve the event streams.
"""

import json

import pytest
import responses

from photosync import (
    AuthenticationError,
    ConflictError,
    JobState,
    PermissionDeniedError,
    ProgressEventType,
    ProtocolViolationError,
    ServerReportedError,
)
from tests.utils.mocks import complete, error, progress

pytestmark = pytest.mark.integration


class TestSyncRun:
    @responses.activate
    def test_run_to_completion(self, client, base_url, sync_result_payload):
        body = (
            ": connected\n\n"
            + progress({"stage": "scan", "processedFiles": 10})
            + progress({"stage": "apply", "processedFiles": 20})
            + complete(sync_result_payload)
        )
        responses.add(
            responses.POST,
            f"{base_url}/data-sync/run",
            body=body,
            status=200,
            content_type="text/event-stream",
        )
        seen = []
        result = client.sync.run(dry_run=True, on_progress=seen.append)

        request = responses.calls[0].request
        assert json.loads(request.body) == {"dryRun": True}
        assert request.headers["Accept"] == "text/event-stream"
        assert [e.payload.get("processed_files") for e in seen[:2]] == [10, 20]
        assert seen[-1].type is ProgressEventType.COMPLETE
        assert result.summary is not None
        assert result.summary.inserted == 2

    @responses.activate
    def test_stream_iteration(self, client, base_url):
        responses.add(
            responses.POST,
            f"{base_url}/data-sync/run",
            body=progress({"stage": "scan"}) + complete({"ok": True}),
            status=200,
            content_type="text/event-stream",
        )
        with client.sync.stream() as stream:
            types = [event.type.value for event in stream]
        assert types == ["progress", "complete"]
        assert stream.state is JobState.COMPLETED
        assert stream.result.raw == {"ok": True}

    @responses.activate
    def test_rejected_request(self, client, base_url):
        responses.add(
            responses.POST,
            f"{base_url}/data-sync/run",
            json={"message": "A sync is already running"},
            status=409,
        )
        with pytest.raises(ConflictError) as exc_info:
            client.sync.run()
        assert exc_info.value.message == "A sync is already running"
        assert exc_info.value.status_code == 409

    @responses.activate
    def test_rejected_request_without_body(self, client, base_url):
        responses.add(responses.POST, f"{base_url}/data-sync/run", body="", status=401)
        with pytest.raises(AuthenticationError, match="Sync request failed: 401"):
            client.sync.run()

    @responses.activate
    def test_server_reported_failure(self, client, base_url):
        responses.add(
            responses.POST,
            f"{base_url}/data-sync/run",
            body=progress({"stage": "scan"}) + error({"error": "Storage unreachable", "code": 7}),
            status=200,
            content_type="text/event-stream",
        )
        with pytest.raises(ServerReportedError) as exc_info:
            client.sync.run()
        assert exc_info.value.message == "Storage unreachable"
        assert exc_info.value.code == 7

    @responses.activate
    def test_truncated_stream(self, client, base_url):
        responses.add(
            responses.POST,
            f"{base_url}/data-sync/run",
            body=progress({"stage": "scan"}),
            status=200,
            content_type="text/event-stream",
        )
        with pytest.raises(ProtocolViolationError):
            client.sync.run()


class TestSyncManagement:
    @responses.activate
    def test_status(self, client, base_url):
        responses.add(
            responses.GET,
            f"{base_url}/data-sync/status",
            json={"inProgress": False, "lastRun": {"finishedAt": "2024-01-01T00:00:00Z"}},
        )
        assert client.sync.status() == {
            "in_progress": False,
            "last_run": {"finished_at": "2024-01-01T00:00:00Z"},
        }

    @responses.activate
    def test_conflicts_and_resolve(self, client, base_url):
        responses.add(
            responses.GET,
            f"{base_url}/data-sync/conflicts",
            json=[{"id": "c1", "storageKey": "a.jpg"}],
        )
        responses.add(
            responses.POST,
            f"{base_url}/data-sync/conflicts/c1/resolve",
            json={"type": "update", "storageKey": "a.jpg"},
        )
        assert client.sync.conflicts() == [{"id": "c1", "storage_key": "a.jpg"}]
        action = client.sync.resolve_conflict("c1", strategy="keep-storage", dry_run=True)
        assert action == {"type": "update", "storage_key": "a.jpg"}
        assert json.loads(responses.calls[1].request.body) == {
            "strategy": "keep-storage",
            "dryRun": True,
        }


class TestAssetUpload:
    @responses.activate
    def test_upload_to_completion(self, client, base_url, tmp_path):
        path = tmp_path / "beach.jpg"
        path.write_bytes(b"\xff\xd8" + b"x" * 98)
        responses.add(
            responses.POST,
            f"{base_url}/photos/assets/upload",
            body=progress({"processed": 1}) + complete({"assets": [{"id": 1}, {"id": 2}]}),
            status=200,
            content_type="text/event-stream",
        )
        events = []
        client.assets.upload(
            [path, ("notes.png", b"png-bytes")],
            directory="2024/trip",
            on_server_event=events.append,
        )

        request = responses.calls[0].request
        assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")
        assert [e.type for e in events] == [ProgressEventType.PROGRESS, ProgressEventType.COMPLETE]

    @responses.activate
    def test_upload_server_error_event(self, client, base_url):
        responses.add(
            responses.POST,
            f"{base_url}/photos/assets/upload",
            body=error({"message": "Storage quota exceeded", "code": 41}),
            status=200,
            content_type="text/event-stream",
        )
        with pytest.raises(ServerReportedError, match="Storage quota exceeded"):
            client.assets.upload([("a.jpg", b"abc")])

    @responses.activate
    def test_upload_incomplete(self, client, base_url):
        responses.add(
            responses.POST,
            f"{base_url}/photos/assets/upload",
            body=progress({"processed": 1}),
            status=200,
            content_type="text/event-stream",
        )
        with pytest.raises(ProtocolViolationError, match="Upload response incomplete"):
            client.assets.upload([("a.jpg", b"abc")])

    @responses.activate
    def test_upload_rejected(self, client, base_url):
        responses.add(
            responses.POST,
            f"{base_url}/photos/assets/upload",
            json={"message": "Directory not allowed"},
            status=403,
        )
        with pytest.raises(PermissionDeniedError) as exc_info:
            client.assets.upload([("a.jpg", b"abc")], directory="../etc")
        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Directory not allowed"
