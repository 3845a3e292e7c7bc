"""
photosync - Python client for the photo library's sync and upload API.

Runs storage sync jobs and photo uploads over Server-Sent Events streams.
"""

__version__ = "0.1.0"

from ._client import PhotoSync
from ._errors import (
    ServerErrorInfo,
    build_error,
    get_error_code,
    get_error_message,
    get_status_code,
    resolve_upgrade_category,
)
from ._exceptions import (
    AbortError,
    APIError,
    AuthenticationError,
    ConflictError,
    DecodeError,
    HTTPStatusError,
    NetworkError,
    NotFoundError,
    PaymentRequiredError,
    PermissionDeniedError,
    PhotoSyncError,
    ProtocolViolationError,
    RateLimitError,
    RequestTimeoutError,
    ServerReportedError,
    TransportError,
    ValidationError,
)
from ._multipart import UploadFile
from ._sync import SyncStream
from ._transports import CancelToken
from ._types import (
    JobState,
    SyncResult,
    SyncSummary,
    UploadFileProgress,
    UploadProgressSnapshot,
)
from ._upload import UploadStream, project_upload_progress
from .sse import ProgressEvent, ProgressEventType

__all__ = [
    "APIError",
    "AbortError",
    "AuthenticationError",
    "CancelToken",
    "ConflictError",
    "DecodeError",
    "HTTPStatusError",
    "JobState",
    "NetworkError",
    "NotFoundError",
    "PaymentRequiredError",
    "PermissionDeniedError",
    # Main client
    "PhotoSync",
    "PhotoSyncError",
    "ProgressEvent",
    "ProgressEventType",
    "ProtocolViolationError",
    "RateLimitError",
    "RequestTimeoutError",
    "ServerErrorInfo",
    "ServerReportedError",
    "SyncResult",
    "SyncStream",
    "SyncSummary",
    "TransportError",
    "UploadFile",
    "UploadFileProgress",
    "UploadProgressSnapshot",
    "UploadStream",
    "ValidationError",
    "build_error",
    "get_error_code",
    "get_error_message",
    "get_status_code",
    "project_upload_progress",
    "resolve_upgrade_category",
]
