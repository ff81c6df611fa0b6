import pytest
import json
import tempfile
import shutil
from unittest.mock import MagicMock

from cloudleaf.bookmarks import CHROMIUM, FIREFOX, MemoryBookmarkStore
from cloudleaf.models import BookmarkNode, Result, SyncPayload, SystemRole
from cloudleaf.providers.base import Provider


def make_response(status_code=200, json_data=None, text=None):
    """Build a stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    if json_data is not None:
        response.json.return_value = json_data
        response.text = json.dumps(json_data)
    else:
        response.json.side_effect = ValueError("No JSON")
        response.text = text or ""
    return response


def make_payload(updated_at=100, titles=("Python",)):
    """Payload with one bar folder holding a leaf per title."""
    leaves = [BookmarkNode(title=t, url=f"https://{t.lower()}.example") for t in titles]
    return SyncPayload(
        updated_at=updated_at,
        num_bookmarks=len(leaves),
        bookmarks=[BookmarkNode(title="Bookmarks bar", children=leaves, role=SystemRole.BAR)],
    )


class FakeProvider(Provider):
    """Provider with scripted results that records every call."""

    def __init__(self, name, download_result=None, upload_result=None, valid_result=None):
        self._name = name
        self.download_result = download_result or Result.failure("Resource not found", status=404)
        self.upload_result = upload_result or Result.success()
        self.valid_result = valid_result or Result.success(True)
        self.calls = []

    @property
    def id(self):
        return self._name.lower()

    @property
    def name(self):
        return self._name

    def is_valid(self):
        self.calls.append("is_valid")
        return self.valid_result

    def upload(self, payload):
        self.calls.append("upload")
        return self.upload_result

    def download(self):
        self.calls.append("download")
        return self.download_result


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp(prefix="cloudleaf_test_")
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def clock():
    """Deterministic epoch-ms clock."""
    ticks = iter(range(1_000, 1_000_000, 10))
    return lambda: next(ticks)


@pytest.fixture
def chromium_store(clock):
    """Chromium-layout store with a few bookmarks in bar and other."""
    store = MemoryBookmarkStore(CHROMIUM, clock=clock)
    store.create("1", "Python Docs", "https://docs.python.org")
    work = store.create("1", "Work")
    store.create(work.id, "GitHub", "https://github.com")
    store.create(work.id, "Empty")
    store.create("2", "Stack Overflow", "https://stackoverflow.com")
    return store


@pytest.fixture
def firefox_store(clock):
    """Firefox-layout store with bookmarks in menu and toolbar."""
    store = MemoryBookmarkStore(FIREFOX, clock=clock)
    store.create("menu________", "Mozilla", "https://mozilla.org")
    store.create("toolbar_____", "MDN", "https://developer.mozilla.org")
    return store
