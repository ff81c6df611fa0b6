"""
GitHub Gist storage provider.

Bookmarks are stored as the JSON content of one named file inside an
existing gist. The gist itself must be created by the user beforehand.
"""
import json
import logging
from typing import Optional

import requests

from cloudleaf.constants import (
    DEFAULT_FILENAME,
    DEFAULT_REQUEST_TIMEOUT,
    ERROR_GIST_FILE_NOT_FOUND,
    ERROR_INVALID_FORMAT,
    ERROR_INVALID_JSON,
    ERROR_INVALID_TOKEN,
    GIST_API_VERSION,
    GIST_BASE_URL,
    GIST_PATH,
    GIST_USER_PATH,
    HTTP_NOT_FOUND,
)
from cloudleaf.models import Result, SyncPayload
from cloudleaf.providers.base import Provider
from cloudleaf.providers.http import HttpTransport

logger = logging.getLogger(__name__)


def _files_of(document) -> dict:
    if not isinstance(document, dict):
        raise ValueError("Gist response is not an object")
    files = document.get("files") or {}
    if not isinstance(files, dict):
        raise ValueError("Gist files is not an object")
    return files


class GistProvider(Provider):
    """Stores the bookmark payload as a file in a GitHub Gist."""

    def __init__(self, access_token: str, gist_id: str, file_name: str = DEFAULT_FILENAME,
                 base_url: str = GIST_BASE_URL, timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Initialize the provider.

        Args:
            access_token: GitHub personal access token with the gist scope
            gist_id: Target gist ID
            file_name: File inside the gist that holds the payload
            base_url: GitHub API root
            timeout: Request timeout in seconds
            session: Optional requests session to reuse
        """
        self.gist_id = gist_id
        self.file_name = file_name or DEFAULT_FILENAME
        self.transport = HttpTransport(
            base_url,
            base_headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GIST_API_VERSION,
            },
            auth_headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
            session=session,
        )

    @property
    def id(self) -> str:
        return "gist"

    @property
    def name(self) -> str:
        return "GitHub Gist"

    @property
    def gist_path(self) -> str:
        return f"{GIST_PATH}/{self.gist_id}"

    def is_valid(self) -> Result[bool]:
        """Check that the gist exists and that the token is accepted."""
        try:
            gist_response = self.transport.request("GET", self.gist_path)
            if not self.transport.is_success(gist_response.status_code):
                return Result.success(False, error=self.transport.error_message(gist_response.status_code))

            user_response = self.transport.request("GET", GIST_USER_PATH)
            if not self.transport.is_success(user_response.status_code):
                return Result.success(False, error=ERROR_INVALID_TOKEN)
        except Exception as e:
            return self.transport.network_error(e)

        try:
            files = _files_of(gist_response.json())
        except ValueError:
            files = {}
        if self.file_name not in files:
            # Created on first upload
            logger.info(f"Gist {self.gist_id} has no file {self.file_name} yet")

        return Result.success(True)

    def upload(self, payload: SyncPayload) -> Result[None]:
        body = {
            "files": {
                self.file_name: {"content": payload.to_json()},
            },
        }
        try:
            response = self.transport.request("PATCH", self.gist_path, body=body)
        except Exception as e:
            return self.transport.network_error(e)

        if not self.transport.is_success(response.status_code):
            return self.transport.error_for_status(response.status_code)

        logger.info(f"Uploaded {payload.num_bookmarks} bookmarks to gist {self.gist_id}")
        return Result.success()

    def download(self) -> Result[SyncPayload]:
        try:
            response = self.transport.request("GET", self.gist_path)
            if not self.transport.is_success(response.status_code):
                return self.transport.error_for_status(response.status_code)

            try:
                files = _files_of(response.json())
            except ValueError:
                return Result.failure(ERROR_INVALID_JSON)

            entry = files.get(self.file_name)
            if not entry:
                return Result.failure(
                    ERROR_GIST_FILE_NOT_FOUND.format(file_name=self.file_name),
                    status=HTTP_NOT_FOUND,
                )
            if not isinstance(entry, dict):
                return Result.failure(ERROR_INVALID_FORMAT)

            content = entry.get("content")
            if entry.get("truncated") and entry.get("raw_url"):
                # The API inlines at most 1 MB of a file
                raw = self.transport.session.get(
                    entry["raw_url"],
                    headers=self.transport.headers(),
                    timeout=self.transport.timeout,
                )
                if not self.transport.is_success(raw.status_code):
                    return self.transport.error_for_status(raw.status_code)
                content = raw.text
        except Exception as e:
            return self.transport.network_error(e)

        if content is not None and not isinstance(content, str):
            return Result.failure(ERROR_INVALID_FORMAT)

        try:
            payload = SyncPayload.from_json(content or "")
        except json.JSONDecodeError:
            return Result.failure(ERROR_INVALID_JSON)
        except ValueError:
            return Result.failure(ERROR_INVALID_FORMAT)

        return Result.success(payload)
