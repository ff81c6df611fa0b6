"""
CloudLeaf - bookmark synchronization

Keeps a browser's bookmark tree in step with remote copies stored in a
GitHub Gist, on WebDAV servers, or in local JSON files. Copies are
compared by timestamp (last writer wins); conflicting trees are never
merged, a newer remote must be overwritten explicitly.

Example Usage:
    >>> from cloudleaf import SyncEngine, FileConfigStore, ChromeBookmarkFile, get_config
    >>> config = get_config()
    >>> engine = SyncEngine(FileConfigStore(config), ChromeBookmarkFile(config.bookmarks_file))
    >>> engine.upload().data.status
    <SyncStatus.SYNCED: 'synced'>
"""

__version__ = "0.3.0"
__author__ = "CloudLeaf Contributors"

# Models
from cloudleaf.models import (
    BookmarkNode,
    Result,
    SyncOutcome,
    SyncPayload,
    SyncStatus,
    SystemRole,
    get_sync_status,
)

# Configuration
from cloudleaf.config import (
    CloudLeafConfig,
    ConfigStore,
    CustomVendorConfig,
    FileConfigStore,
    GistConfig,
    MemoryConfigStore,
    UserConfig,
    WebDAVUserConfig,
    get_config,
    init_config,
)

# Bookmark stores and normalization
from cloudleaf.bookmarks import BookmarkStore, MemoryBookmarkStore, get_bookmarks, set_bookmarks
from cloudleaf.chrome import ChromeBookmarkFile

# Providers
from cloudleaf.providers import (
    GistProvider,
    LocalFileProvider,
    Provider,
    VendorRegistry,
    WebDAVProvider,
)

# Orchestration
from cloudleaf.sync import SyncEngine, list_sources

__all__ = [
    # Models
    "BookmarkNode",
    "Result",
    "SyncOutcome",
    "SyncPayload",
    "SyncStatus",
    "SystemRole",
    "get_sync_status",
    # Config
    "CloudLeafConfig",
    "ConfigStore",
    "CustomVendorConfig",
    "FileConfigStore",
    "GistConfig",
    "MemoryConfigStore",
    "UserConfig",
    "WebDAVUserConfig",
    "get_config",
    "init_config",
    # Bookmarks
    "BookmarkStore",
    "MemoryBookmarkStore",
    "ChromeBookmarkFile",
    "get_bookmarks",
    "set_bookmarks",
    # Providers
    "Provider",
    "GistProvider",
    "WebDAVProvider",
    "LocalFileProvider",
    "VendorRegistry",
    # Sync
    "SyncEngine",
    "list_sources",
]
