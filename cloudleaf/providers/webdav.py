"""
WebDAV storage provider.

Stores the payload as a single JSON file on any WebDAV server
(Jianguoyun, Nextcloud, ownCloud, Apache mod_dav, ...).
"""
import base64
import json
import logging
from typing import List, Optional

import requests

from cloudleaf.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    ERROR_INVALID_FORMAT,
    ERROR_INVALID_JSON,
    ERROR_NOT_UPLOADED,
    HTTP_NOT_FOUND,
    HTTP_UNAUTHORIZED,
    WEBDAV_CONFLICT,
    WEBDAV_MULTI_STATUS,
    WEBDAV_STATUS_MESSAGES,
)
from cloudleaf.models import Result, SyncPayload
from cloudleaf.providers.base import Provider
from cloudleaf.providers.http import HttpTransport

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Strip a trailing slash from a server URL."""
    return url[:-1] if url.endswith("/") else url


def normalize_path(path: str) -> str:
    """Make sure a remote path starts with a slash."""
    return path if path.startswith("/") else f"/{path}"


def basic_auth_header(username: str, password: str) -> str:
    credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {credentials}"


class WebDAVProvider(Provider):
    """Stores the bookmark payload as one file on a WebDAV server."""

    def __init__(self, vendor_id: str, vendor_name: str, server_url: str,
                 username: str, password: str, file_path: str,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Initialize the provider.

        Args:
            vendor_id: Registry ID of the vendor this account belongs to
            vendor_name: Vendor display name
            server_url: WebDAV root URL (trailing slash is dropped)
            username: Basic auth user
            password: Basic auth password (app password for most vendors)
            file_path: Remote file path (leading slash is added)
            timeout: Request timeout in seconds
            session: Optional requests session to reuse
        """
        self.vendor_id = vendor_id
        self.vendor_name = vendor_name
        self.server_url = normalize_url(server_url)
        self.username = username
        self.file_path = normalize_path(file_path)
        self.transport = HttpTransport(
            self.server_url,
            auth_headers={"Authorization": basic_auth_header(username, password)},
            status_messages=WEBDAV_STATUS_MESSAGES,
            timeout=timeout,
            session=session,
        )

    @property
    def id(self) -> str:
        return self.vendor_id

    @property
    def name(self) -> str:
        return self.vendor_name

    def parent_paths(self) -> List[str]:
        """Every ancestor collection of the file, outermost first."""
        segments = [s for s in self.file_path.split("/") if s][:-1]
        return ["/" + "/".join(segments[:i + 1]) for i in range(len(segments))]

    def is_valid(self) -> Result[bool]:
        try:
            response = self.transport.request("PROPFIND", self.file_path, headers={"Depth": "0"})
        except Exception as e:
            return self.transport.network_error(e)

        status = response.status_code
        if status == WEBDAV_MULTI_STATUS:
            return Result.success(True)

        # Nothing uploaded yet, or the parent collection is missing
        if status in (HTTP_NOT_FOUND, WEBDAV_CONFLICT):
            return Result.success(True)

        if status == HTTP_UNAUTHORIZED:
            logger.warning(f"{self.name}: credentials for {self.username} were rejected")
        return Result.success(False, error=self.transport.error_message(status))

    def upload(self, payload: SyncPayload) -> Result[None]:
        try:
            self.ensure_directory()
            response = self.transport.request(
                "PUT",
                self.file_path,
                body=payload.to_json(),
                headers={"Content-Type": "application/json; charset=utf-8"},
            )
        except Exception as e:
            return self.transport.network_error(e)

        if not self.transport.is_success(response.status_code):
            return self.transport.error_for_status(response.status_code)

        logger.info(f"Uploaded {payload.num_bookmarks} bookmarks to {self.name}{self.file_path}")
        return Result.success()

    def download(self) -> Result[SyncPayload]:
        try:
            response = self.transport.request("GET", self.file_path)
        except Exception as e:
            return self.transport.network_error(e)

        status = response.status_code
        if status == HTTP_NOT_FOUND:
            return Result.failure(ERROR_NOT_UPLOADED, status=status)

        if not self.transport.is_success(status):
            return self.transport.error_for_status(status)

        try:
            payload = SyncPayload.from_json(response.text)
        except json.JSONDecodeError:
            return Result.failure(ERROR_INVALID_JSON)
        except ValueError:
            return Result.failure(ERROR_INVALID_FORMAT)

        return Result.success(payload)

    def ensure_directory(self) -> None:
        """Create each ancestor collection; every outcome (405 for existing ones included) is ignored."""
        for path in self.parent_paths():
            try:
                response = self.transport.request("MKCOL", path)
                logger.debug(f"MKCOL {path} -> {response.status_code}")
            except Exception as e:
                logger.debug(f"MKCOL {path} failed: {e!r}")
