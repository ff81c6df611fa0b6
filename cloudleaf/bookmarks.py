"""
Bookmark tree normalization for CloudLeaf.

Converts a browser's native bookmark tree into the portable SyncPayload
and applies a payload back onto a bookmark store.

Two engine families are supported. They differ in the IDs of the reserved
top-level folders:

    Chromium: root "0", bar "1", other "2", mobile "3"
    Firefox:  root "root________", menu "menu________", bar "toolbar_____",
              other "unfiled_____", mobile "mobile______"

The engine is detected from the root node's ID on every call.

Applying a payload is destructive and not transactional: the existing
tree is cleared first, then rebuilt node by node. An interruption leaves
the store partially rebuilt.
"""
import itertools
import logging
import time
from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from cloudleaf.models import BookmarkNode, SyncPayload, SystemRole

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class NativeNode:
    """A node as the browser's bookmark store reports it."""
    id: str
    title: str = ""
    url: Optional[str] = None
    children: Optional[List["NativeNode"]] = None
    date_group_modified: Optional[int] = None  # epoch ms, folders only
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class Engine:
    """Reserved folder layout of a browser engine."""
    name: str
    root_id: str
    roles: Dict[SystemRole, str] = field(default_factory=dict)

    @property
    def reserved_ids(self) -> Tuple[str, ...]:
        return tuple(self.roles.values())

    def role_of(self, native_id: str) -> Optional[SystemRole]:
        for role, reserved_id in self.roles.items():
            if reserved_id == native_id:
                return role
        return None


CHROMIUM = Engine(
    name="chromium",
    root_id="0",
    roles={
        SystemRole.BAR: "1",
        SystemRole.OTHER: "2",
        SystemRole.MOBILE: "3",
    },
)

FIREFOX = Engine(
    name="firefox",
    root_id="root________",
    roles={
        SystemRole.MENU: "menu________",
        SystemRole.BAR: "toolbar_____",
        SystemRole.OTHER: "unfiled_____",
        SystemRole.MOBILE: "mobile______",
    },
)

ENGINES = (CHROMIUM, FIREFOX)

# Positional layout of payloads written before roles were recorded
LEGACY_ORDER = (SystemRole.BAR, SystemRole.OTHER, SystemRole.MOBILE)


def detect_engine(root: NativeNode) -> Engine:
    """Pick the engine whose root ID matches; Chromium otherwise."""
    for engine in ENGINES:
        if engine.root_id == root.id:
            return engine
    return CHROMIUM


class BookmarkStore(ABC):
    """The browser's bookmark backing store."""

    @abstractmethod
    def get_tree(self) -> List[NativeNode]:
        """Return the full tree as a one-element list holding the root."""
        pass

    @abstractmethod
    def create(self, parent_id: str, title: str, url: Optional[str] = None) -> NativeNode:
        """Create a bookmark (``url`` set) or folder under ``parent_id``."""
        pass

    @abstractmethod
    def remove_tree(self, node_id: str) -> None:
        """Remove a node and everything below it."""
        pass

    def flush(self) -> None:
        """Persist pending changes. Stores that write through have none."""
        pass


class MemoryBookmarkStore(BookmarkStore):
    """In-process bookmark store laid out like a real engine."""

    def __init__(self, engine: Engine = CHROMIUM, clock: Callable[[], int] = now_ms):
        self.engine = engine
        self.clock = clock
        self._ids = itertools.count(100)
        titles = {
            SystemRole.MENU: "Bookmarks Menu",
            SystemRole.BAR: "Bookmarks bar",
            SystemRole.OTHER: "Other bookmarks",
            SystemRole.MOBILE: "Mobile bookmarks",
        }
        self.root = NativeNode(id=engine.root_id, children=[])
        for role, native_id in engine.roles.items():
            self.root.children.append(NativeNode(
                id=native_id,
                title=titles[role],
                children=[],
                date_group_modified=0,
                parent_id=self.root.id,
            ))

    def _find(self, node_id: str, node: Optional[NativeNode] = None) -> Optional[NativeNode]:
        node = node or self.root
        if node.id == node_id:
            return node
        for child in node.children or []:
            found = self._find(node_id, child)
            if found is not None:
                return found
        return None

    def get_tree(self) -> List[NativeNode]:
        return [deepcopy(self.root)]

    def create(self, parent_id: str, title: str, url: Optional[str] = None) -> NativeNode:
        parent = self._find(parent_id)
        if parent is None or parent.children is None:
            raise KeyError(f"No folder with id {parent_id}")

        node = NativeNode(
            id=str(next(self._ids)),
            title=title,
            url=url,
            children=None if url else [],
            date_group_modified=None if url else self.clock(),
            parent_id=parent_id,
        )
        parent.children.append(node)
        parent.date_group_modified = self.clock()
        return deepcopy(node)

    def remove_tree(self, node_id: str) -> None:
        node = self._find(node_id)
        if node is None or node.parent_id is None:
            raise KeyError(f"No removable node with id {node_id}")
        parent = self._find(node.parent_id)
        parent.children = [child for child in parent.children if child.id != node_id]
        parent.date_group_modified = self.clock()


class TreeStats(NamedTuple):
    """Accumulator threaded through the export walk."""
    max_timestamp: int = 0
    count: int = 0


def normalize_node(node: NativeNode, stats: TreeStats) -> Tuple[Optional[BookmarkNode], TreeStats]:
    """
    Convert one native node and its subtree.

    Returns:
        The portable node (None if the node is dropped) and the updated stats
    """
    if node.children is not None:
        stats = TreeStats(max(stats.max_timestamp, node.date_group_modified or 0), stats.count)
        children = []
        for child in node.children:
            normalized, stats = normalize_node(child, stats)
            if normalized is not None:
                children.append(normalized)
        return BookmarkNode(title=node.title, children=children), stats

    if node.title and node.url:
        return BookmarkNode(title=node.title, url=node.url), stats._replace(count=stats.count + 1)

    if node.title:
        return BookmarkNode(title=node.title), stats

    return None, stats


def get_bookmarks(store: BookmarkStore, clock: Callable[[], int] = now_ms) -> SyncPayload:
    """
    Snapshot the store as a SyncPayload.

    Top-level reserved folders are tagged with their SystemRole. On engines
    with a bookmarks menu, the menu folder is moved last so the order lines
    up with engines that have none.
    """
    root = store.get_tree()[0]
    engine = detect_engine(root)

    stats = TreeStats()
    bookmarks: List[BookmarkNode] = []
    menu: Optional[BookmarkNode] = None

    for child in root.children or []:
        node, stats = normalize_node(child, stats)
        if node is None:
            continue
        node.role = engine.role_of(child.id)
        if node.role is SystemRole.MENU:
            menu = node
        else:
            bookmarks.append(node)

    if menu is not None:
        bookmarks.append(menu)

    logger.debug(f"Read {stats.count} bookmarks from {engine.name} store")
    return SyncPayload(
        updated_at=stats.max_timestamp or clock(),
        num_bookmarks=stats.count,
        bookmarks=bookmarks,
    )


def create_nodes(store: BookmarkStore, parent_id: str, nodes: Iterable[BookmarkNode]) -> None:
    """Create ``nodes`` depth-first under ``parent_id``."""
    for node in nodes:
        if node.url:
            store.create(parent_id, node.title, node.url)
        else:
            folder = store.create(parent_id, node.title)
            create_nodes(store, folder.id, node.children or [])


def clear_bookmarks(store: BookmarkStore, root: NativeNode, engine: Engine) -> None:
    """Delete user folders and empty the reserved ones (which are kept)."""
    reserved = engine.reserved_ids
    for child in root.children or []:
        if child.id in reserved:
            for grandchild in child.children or []:
                store.remove_tree(grandchild.id)
        else:
            store.remove_tree(child.id)


def set_bookmarks(store: BookmarkStore, payload: SyncPayload) -> None:
    """
    Replace the store's contents with ``payload``.

    Role-tagged nodes are poured into the matching reserved folder; other
    top-level nodes become children of the root. Payloads without any role
    are mapped by position: bar, other, mobile, then the rest.
    """
    root = store.get_tree()[0]
    engine = detect_engine(root)

    clear_bookmarks(store, root, engine)

    if any(node.role is not None for node in payload.bookmarks):
        placements = [(node.role, node) for node in payload.bookmarks]
    else:
        logger.info("Payload has no folder roles, using positional layout")
        placements = [
            (LEGACY_ORDER[index] if index < len(LEGACY_ORDER) else None, node)
            for index, node in enumerate(payload.bookmarks)
        ]

    for role, node in placements:
        folder_id = engine.roles.get(role) if role is not None else None
        if folder_id is not None:
            create_nodes(store, folder_id, node.children or [])
        else:
            if role is not None:
                logger.warning(f"{engine.name} has no {role.value} folder, keeping '{node.title}' at the root")
            create_nodes(store, root.id, [node])

    logger.info(f"Applied {payload.num_bookmarks} bookmarks to {engine.name} store")
