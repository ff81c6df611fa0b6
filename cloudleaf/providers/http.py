"""
HTTP transport shared by the Gist and WebDAV providers.

The transport is composed into a provider rather than inherited: it owns
the requests session, the base and auth headers, and the request timeout,
and translates status codes and exceptions into user-facing messages.
"""
import json
import logging
from typing import Any, Dict, Mapping, Optional

import requests

from cloudleaf.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    ERROR_NETWORK,
    ERROR_REQUEST_FAILED,
    ERROR_TIMEOUT,
    ERROR_UNKNOWN,
    HTTP_STATUS_MESSAGES,
)
from cloudleaf.models import Result

logger = logging.getLogger(__name__)


class HttpTransport:
    """Bounded HTTP request execution against one base URL."""

    def __init__(self, base_url: str,
                 base_headers: Optional[Mapping[str, str]] = None,
                 auth_headers: Optional[Mapping[str, str]] = None,
                 status_messages: Optional[Mapping[int, str]] = None,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Initialize the transport.

        Args:
            base_url: Prefix for every request path
            base_headers: Headers sent with every request
            auth_headers: Credential headers sent with every request
            status_messages: Extra status messages consulted before the HTTP table
            timeout: Request timeout in seconds
            session: Session to reuse (a new one is created otherwise)
        """
        self.base_url = base_url
        self.base_headers = dict(base_headers or {})
        self.auth_headers = dict(auth_headers or {})
        self.status_messages = dict(status_messages or {})
        self.timeout = timeout
        self.session = session or requests.Session()

    def headers(self, overrides: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Merge base, auth and per-call headers (later wins)."""
        merged = dict(self.base_headers)
        merged.update(self.auth_headers)
        if overrides:
            merged.update(overrides)
        return merged

    def request(self, method: str, path: str, body: Any = None,
                headers: Optional[Mapping[str, str]] = None) -> requests.Response:
        """
        Send a request.

        Args:
            method: HTTP or WebDAV method (GET, PATCH, PROPFIND, PUT, MKCOL)
            path: Path appended to the base URL
            body: JSON-serializable body; strings are sent as-is
            headers: Per-call header overrides

        Returns:
            The response, whatever its status

        Raises:
            requests.RequestException: On timeout or transport failure
        """
        url = f"{self.base_url}{path}"
        data = None
        if body is not None:
            data = body if isinstance(body, (str, bytes)) else json.dumps(body, ensure_ascii=False)
            if isinstance(data, str):
                data = data.encode("utf-8")

        logger.debug(f"{method} {url}")
        return self.session.request(
            method,
            url,
            headers=self.headers(headers),
            data=data,
            timeout=self.timeout,
        )

    def error_message(self, status: int) -> str:
        """Human-readable message for a status code."""
        if status in self.status_messages:
            return self.status_messages[status]
        return HTTP_STATUS_MESSAGES.get(status) or ERROR_REQUEST_FAILED.format(status=status)

    def error_for_status(self, status: int) -> Result:
        return Result.failure(self.error_message(status), status=status)

    def network_error(self, error: BaseException) -> Result:
        """Classify an exception raised while sending a request."""
        if isinstance(error, requests.Timeout):
            logger.error(f"Request to {self.base_url} timed out")
            return Result.failure(ERROR_TIMEOUT)
        if isinstance(error, requests.RequestException):
            logger.error(f"Network error talking to {self.base_url}: {error}")
            return Result.failure(ERROR_NETWORK.format(detail=error))
        logger.error(f"Unexpected error talking to {self.base_url}: {error!r}")
        return Result.failure(ERROR_UNKNOWN)

    @staticmethod
    def is_success(status: int) -> bool:
        return 200 <= status < 300
