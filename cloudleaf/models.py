"""
Data models for CloudLeaf bookmark synchronization.

This module defines the portable bookmark payload exchanged with storage
providers, the result envelope returned by every provider operation, and
the sync status reported by the orchestrator.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class SystemRole(str, Enum):
    """Portable tag for a browser's reserved top-level folders."""
    MENU = "menu"
    BAR = "bar"
    OTHER = "other"
    MOBILE = "mobile"

    @classmethod
    def parse(cls, value: Any) -> Optional["SystemRole"]:
        """Return the role named by ``value``, or None if it is not a known role."""
        try:
            return cls(value)
        except ValueError:
            return None


class SyncStatus(str, Enum):
    """Relationship between the local snapshot and a remote one."""
    AHEAD = "ahead"      # local is newer
    BEHIND = "behind"    # remote is newer
    SYNCED = "synced"
    NONE = "none"        # nothing configured


@dataclass
class BookmarkNode:
    """
    A portable bookmark or folder.

    A node is a leaf (has ``url``), a folder (has ``children``) or an empty
    folder (neither). Only top-level nodes carry a ``role``.
    """
    title: str
    url: Optional[str] = None
    children: Optional[List["BookmarkNode"]] = None
    role: Optional[SystemRole] = None

    @property
    def is_leaf(self) -> bool:
        return self.url is not None and self.children is None

    @property
    def is_folder(self) -> bool:
        return self.children is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.role is not None:
            data["id"] = self.role.value
        data["title"] = self.title
        if self.url is not None:
            data["url"] = self.url
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookmarkNode":
        if not isinstance(data, dict):
            raise ValueError(f"Bookmark node must be an object, got {type(data).__name__}")

        children = data.get("children")
        if children is not None:
            if not isinstance(children, list):
                raise ValueError("Bookmark 'children' must be a list")
            children = [cls.from_dict(child) for child in children]

        return cls(
            title=str(data.get("title") or ""),
            url=data.get("url"),
            children=children,
        )


@dataclass
class SyncPayload:
    """
    Engine-agnostic snapshot of the bookmark tree.

    Attributes:
        updated_at: Epoch milliseconds of the newest folder modification
        num_bookmarks: Number of leaf bookmarks in the tree
        bookmarks: Top-level nodes in display order
    """
    updated_at: int
    num_bookmarks: int
    bookmarks: List[BookmarkNode] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updatedAt": self.updated_at,
            "numBookmarks": self.num_bookmarks,
            "bookmarks": [node.to_dict() for node in self.bookmarks],
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Any) -> "SyncPayload":
        """
        Build a payload from decoded JSON.

        Raises:
            ValueError: If ``data`` is not an object or lacks a ``bookmarks`` list
        """
        if not isinstance(data, dict):
            raise ValueError("Payload must be a JSON object")

        bookmarks = data.get("bookmarks")
        if not isinstance(bookmarks, list):
            raise ValueError("Payload is missing the 'bookmarks' list")

        return cls(
            updated_at=int(data.get("updatedAt") or 0),
            num_bookmarks=int(data.get("numBookmarks") or 0),
            bookmarks=[cls._top_level(node) for node in bookmarks],
        )

    @staticmethod
    def _top_level(data: Any) -> BookmarkNode:
        # Only top-level nodes carry a role
        node = BookmarkNode.from_dict(data)
        node.role = SystemRole.parse(data.get("id"))
        return node

    @classmethod
    def from_json(cls, text: str) -> "SyncPayload":
        """
        Parse a payload from JSON text.

        Raises:
            json.JSONDecodeError: If ``text`` is not valid JSON
            ValueError: If the decoded value is not a payload
        """
        return cls.from_dict(json.loads(text))


@dataclass
class Result(Generic[T]):
    """
    Success/failure envelope returned across every provider boundary.

    On success ``ok`` is True and ``data`` may be set. On failure ``ok`` is
    False and ``error`` describes the cause; ``status`` carries the HTTP
    status code when one was received. A soft-invalid check is
    ``ok=True, data=False`` with ``error`` set.
    """
    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status: Optional[int] = None

    @classmethod
    def success(cls, data: Optional[T] = None, error: Optional[str] = None) -> "Result[T]":
        return cls(ok=True, data=data, error=error)

    @classmethod
    def failure(cls, error: str, status: Optional[int] = None) -> "Result[T]":
        return cls(ok=False, error=error, status=status)


@dataclass
class SyncOutcome:
    """Status and optional payload produced by an orchestrator operation."""
    status: SyncStatus
    payload: Optional[SyncPayload] = None


def get_sync_status(local: SyncPayload, remote: SyncPayload) -> SyncStatus:
    """Compare two snapshots by ``updated_at``."""
    if local.updated_at > remote.updated_at:
        return SyncStatus.AHEAD
    if local.updated_at < remote.updated_at:
        return SyncStatus.BEHIND
    return SyncStatus.SYNCED
