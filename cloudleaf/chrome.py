"""
Chromium profile bookmark store.

Reads and writes the "Bookmarks" JSON file of a Chrome, Chromium, Edge
or Brave profile, exposing it as a BookmarkStore. The browser must be
closed while the file is modified, otherwise it overwrites the changes
on exit.
"""
import itertools
import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from cloudleaf.bookmarks import CHROMIUM, BookmarkStore, NativeNode, now_ms

logger = logging.getLogger(__name__)

# Microseconds between 1601-01-01 (Chrome epoch) and 1970-01-01
CHROME_EPOCH_OFFSET_US = 11644473600000000

# Root key in the file -> reserved folder ID
ROOT_KEYS = {
    "bookmark_bar": "1",
    "other": "2",
    "synced": "3",
}

ROOT_TITLES = {
    "bookmark_bar": "Bookmarks bar",
    "other": "Other bookmarks",
    "synced": "Mobile bookmarks",
}


def chrome_to_epoch_ms(chrome_timestamp: Any) -> Optional[int]:
    """Convert a Chrome timestamp (microseconds since 1601) to epoch ms."""
    try:
        value = int(chrome_timestamp)
    except (TypeError, ValueError):
        return None
    if value <= 0:
        return None
    return (value - CHROME_EPOCH_OFFSET_US) // 1000


def epoch_ms_to_chrome(epoch_ms: int) -> str:
    return str(epoch_ms * 1000 + CHROME_EPOCH_OFFSET_US)


def find_bookmark_files() -> List[Path]:
    """Find the Bookmarks file of every Chromium-family profile on this system."""
    system = platform.system()
    if system == "Darwin":
        chrome_dirs = [
            Path.home() / "Library/Application Support/Google/Chrome",
            Path.home() / "Library/Application Support/Chromium",
            Path.home() / "Library/Application Support/Microsoft Edge",
            Path.home() / "Library/Application Support/BraveSoftware/Brave-Browser",
        ]
    elif system == "Linux":
        chrome_dirs = [
            Path.home() / ".config/google-chrome",
            Path.home() / ".config/chromium",
            Path.home() / ".config/microsoft-edge",
            Path.home() / ".config/BraveSoftware/Brave-Browser",
        ]
    elif system == "Windows":
        appdata = os.environ.get("LOCALAPPDATA", "")
        chrome_dirs = [
            Path(appdata) / "Google/Chrome/User Data",
            Path(appdata) / "Chromium/User Data",
            Path(appdata) / "Microsoft/Edge/User Data",
            Path(appdata) / "BraveSoftware/Brave-Browser/User Data",
        ]
    else:
        return []

    files = []
    for chrome_dir in chrome_dirs:
        if not chrome_dir.exists():
            continue
        profiles = [chrome_dir / "Default"] + sorted(chrome_dir.glob("Profile *"))
        for profile in profiles:
            bookmarks_file = profile / "Bookmarks"
            if bookmarks_file.exists():
                files.append(bookmarks_file)
    return files


class ChromeBookmarkFile(BookmarkStore):
    """
    BookmarkStore over a Chromium profile's Bookmarks file.

    Changes stay in memory until flush(), which rewrites the file once
    through a temporary file in the same directory.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self.data = self._load()
        self.dirty = False

        # id -> item, and id -> the folder item holding it
        self._items: Dict[str, Dict[str, Any]] = {}
        self._parents: Dict[str, Dict[str, Any]] = {}
        roots = self._roots()
        for key in ROOT_KEYS:
            self._index(roots[key], None)

        numeric = [int(node_id) for node_id in self._items if node_id.isdigit()]
        self._ids = itertools.count(max(numeric, default=len(ROOT_KEYS)) + 1)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.warning(f"No bookmarks file found at {self.path}, starting empty")
            return {"roots": {}, "version": 1}
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def save(self) -> None:
        """Write the file; on failure the previous file is left in place."""
        # Chrome recomputes the checksum; a stale one marks the file as corrupt
        self.data.pop("checksum", None)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".Bookmarks.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.data, f, indent=3, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except Exception:
            Path(tmp_path).unlink(missing_ok=True)
            raise

        self.dirty = False
        logger.debug(f"Wrote {self.path}")

    def flush(self) -> None:
        if self.dirty:
            self.save()

    def _roots(self) -> Dict[str, Dict[str, Any]]:
        roots = self.data.setdefault("roots", {})
        for key, native_id in ROOT_KEYS.items():
            roots.setdefault(key, {
                "children": [],
                "date_added": epoch_ms_to_chrome(now_ms()),
                "date_modified": "0",
                "id": native_id,
                "name": ROOT_TITLES[key],
                "type": "folder",
            })
        return roots

    def _index(self, item: Dict[str, Any], parent: Optional[Dict[str, Any]]) -> None:
        node_id = str(item.get("id"))
        self._items[node_id] = item
        if parent is not None:
            self._parents[node_id] = parent
        for child in item.get("children", []):
            self._index(child, item)

    def _unindex(self, item: Dict[str, Any]) -> None:
        node_id = str(item.get("id"))
        self._items.pop(node_id, None)
        self._parents.pop(node_id, None)
        for child in item.get("children", []):
            self._unindex(child)

    def _to_native(self, item: Dict[str, Any], parent_id: str) -> NativeNode:
        node_id = str(item.get("id"))
        if item.get("type") == "url":
            return NativeNode(id=node_id, title=item.get("name", ""), url=item.get("url"), parent_id=parent_id)
        return NativeNode(
            id=node_id,
            title=item.get("name", ""),
            children=[self._to_native(child, node_id) for child in item.get("children", [])],
            date_group_modified=chrome_to_epoch_ms(item.get("date_modified")),
            parent_id=parent_id,
        )

    def get_tree(self) -> List[NativeNode]:
        roots = self._roots()
        root = NativeNode(
            id=CHROMIUM.root_id,
            children=[self._to_native(roots[key], CHROMIUM.root_id) for key in ROOT_KEYS],
        )
        return [root]

    def create(self, parent_id: str, title: str, url: Optional[str] = None) -> NativeNode:
        if parent_id == CHROMIUM.root_id:
            # The file format has no slot for root-level nodes
            parent_id = ROOT_KEYS["other"]

        parent = self._items.get(parent_id)
        if parent is None or parent.get("type") != "folder":
            raise KeyError(f"No folder with id {parent_id}")

        stamp = epoch_ms_to_chrome(now_ms())
        item: Dict[str, Any] = {
            "date_added": stamp,
            "id": str(next(self._ids)),
            "name": title,
        }
        if url:
            item.update({"type": "url", "url": url})
        else:
            item.update({"type": "folder", "children": [], "date_modified": stamp})

        parent.setdefault("children", []).append(item)
        parent["date_modified"] = stamp
        self._index(item, parent)
        self.dirty = True
        return self._to_native(item, parent_id)

    def remove_tree(self, node_id: str) -> None:
        item = self._items.get(node_id)
        parent = self._parents.get(node_id)
        if item is None or parent is None:
            raise KeyError(f"No removable node with id {node_id}")

        children = parent["children"]
        del children[next(i for i, child in enumerate(children) if child is item)]
        parent["date_modified"] = epoch_ms_to_chrome(now_ms())
        self._unindex(item)
        self.dirty = True
