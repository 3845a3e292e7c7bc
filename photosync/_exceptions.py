"""Typed error hierarchy shared by the sync and upload jobs."""

from typing import Any


class PhotoSyncError(Exception):
    """Base exception for all photosync errors.

    Every failure a job surfaces is one of these: a human-readable message,
    the HTTP status when one was received, the server's numeric error code
    when it sent one, and the raw server payload for diagnostics.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: int | None = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.data = data


class TransportError(PhotoSyncError):
    """Locally detected transport failure. Never retried by the job layer."""


class NetworkError(TransportError):
    """Connection failed or was reset."""


class RequestTimeoutError(TransportError):
    """The request exceeded its time ceiling."""


class AbortError(TransportError):
    """The job was cancelled through its CancelToken."""


class HTTPStatusError(PhotoSyncError):
    """Non-2xx response."""


class ValidationError(HTTPStatusError):
    """400/422 — invalid request parameters."""


class AuthenticationError(HTTPStatusError):
    """401 — invalid or missing API key."""


class PaymentRequiredError(HTTPStatusError):
    """402 — the tenant's plan does not cover the request."""


class PermissionDeniedError(HTTPStatusError):
    """403 — insufficient permissions."""


class NotFoundError(HTTPStatusError):
    """404 — resource does not exist."""


class ConflictError(HTTPStatusError):
    """409 — a job is already running or the resource conflicts."""


class RateLimitError(HTTPStatusError):
    """429 — too many requests."""


class APIError(HTTPStatusError):
    """Any other non-2xx status, usually 500+."""


class ServerReportedError(PhotoSyncError):
    """The server reported a failure through an ``error`` stream event."""


class ProtocolViolationError(PhotoSyncError):
    """The stream ended without the terminal event the protocol requires."""


class DecodeError(PhotoSyncError):
    """A single event payload could not be decoded. Recovered locally."""


# Map HTTP status codes to exception classes.
STATUS_MAP: dict[int, type[HTTPStatusError]] = {
    400: ValidationError,
    401: AuthenticationError,
    402: PaymentRequiredError,
    403: PermissionDeniedError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}
