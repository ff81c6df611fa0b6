"""
Storage providers for CloudLeaf.

All providers implement the Provider contract (is_valid, upload,
download) and return Result objects instead of raising.
"""
from cloudleaf.providers.base import Provider
from cloudleaf.providers.http import HttpTransport
from cloudleaf.providers.gist import GistProvider
from cloudleaf.providers.webdav import WebDAVProvider
from cloudleaf.providers.local import (
    FileHost,
    FileSelectionCanceled,
    LocalFileProvider,
    PathFileHost,
    PromptFileHost,
)
from cloudleaf.providers.registry import (
    PRESET_VENDORS,
    VendorError,
    VendorRegistry,
    add_custom_vendor_to_config,
    remove_custom_vendor_from_config,
)

__all__ = [
    "Provider",
    "HttpTransport",
    "GistProvider",
    "WebDAVProvider",
    "FileHost",
    "FileSelectionCanceled",
    "LocalFileProvider",
    "PathFileHost",
    "PromptFileHost",
    "PRESET_VENDORS",
    "VendorError",
    "VendorRegistry",
    "add_custom_vendor_to_config",
    "remove_custom_vendor_from_config",
]
