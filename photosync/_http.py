"""Thin HTTP client wrapping requests.Session with auth, error mapping, and retry."""

import logging
import time
from typing import Any

import requests

from ._errors import ServerErrorInfo, build_error, extract_error_info_from_raw
from ._exceptions import APIError
from ._transports import CancelToken, translate_transport_error

logger = logging.getLogger(__name__)

# Retry config. Only idempotent requests are retried; job submissions never are.
_MAX_RETRIES = 3
_INITIAL_BACKOFF = 0.5  # seconds
_RETRYABLE_STATUS = {429, 500, 502, 503, 504}
_IDEMPOTENT_METHODS = {"GET", "HEAD", "OPTIONS"}


def _raise_for_status(resp: requests.Response, *, method: str = "", path: str = "") -> None:
    """Map HTTP error responses to typed exceptions."""
    try:
        info = extract_error_info_from_raw(resp.text)
    except (requests.RequestException, ValueError):
        logger.debug("Failed to read error body for %s %s", method, path)
        info = ServerErrorInfo()
    resp.close()
    raise build_error(info, f"HTTP {resp.status_code}", resp.status_code)


class HTTPClient:
    """Minimal HTTP client with Bearer auth, error mapping, and GET retry."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 30,
        language: str | None = None,
    ):
        self._session = requests.Session()
        self._session.headers["Authorization"] = f"Bearer {api_key}"
        self._session.headers["Content-Type"] = "application/json"
        if language:
            self._session.headers["Accept-Language"] = language
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def session(self) -> requests.Session:
        return self._session

    @property
    def timeout(self) -> float:
        return self._timeout

    def url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _request_with_retry(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send request, retrying idempotent methods on 429/5xx. Respects Retry-After."""
        attempts = _MAX_RETRIES if method.upper() in _IDEMPOTENT_METHODS else 1
        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            try:
                resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
            except (requests.Timeout, requests.ConnectionError) as e:
                logger.warning("Request failed (attempt %d/%d): %s", attempt + 1, attempts, e)
                if not last_attempt:
                    time.sleep(_INITIAL_BACKOFF * (2**attempt))
                    continue
                raise translate_transport_error(e, None, action="request") from e

            if resp.ok:
                return resp

            if resp.status_code not in _RETRYABLE_STATUS or last_attempt:
                _raise_for_status(resp, method=method, path=url)

            # Retry after delay
            retry_after = resp.headers.get("Retry-After")
            if retry_after and resp.status_code == 429:
                try:
                    delay = float(retry_after)
                except ValueError:
                    logger.debug("Unparseable Retry-After header: %s", retry_after)
                    delay = _INITIAL_BACKOFF * (2**attempt)
            else:
                delay = _INITIAL_BACKOFF * (2**attempt)
            logger.debug(
                "Retrying %s %s (attempt %d, delay %.1fs)", method, url, attempt + 1, delay
            )
            resp.close()
            time.sleep(delay)

        # Should not reach here, but just in case
        raise APIError("Max retries exceeded", status_code=None)

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send request and raise typed exception on error."""
        return self._request_with_retry(method, self.url(path), **kwargs)

    def open_stream(
        self,
        method: str,
        path: str,
        *,
        cancel: CancelToken | None = None,
        action: str = "request",
        **kwargs: Any,
    ) -> requests.Response:
        """Open a streaming response without status checks or retry.

        Only the connect phase is bounded by the timeout; a long-running
        stream is ended through the CancelToken.
        """
        try:
            return self._session.request(
                method, self.url(path), stream=True, timeout=(self._timeout, None), **kwargs
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            raise translate_transport_error(e, cancel, action=action) from e
