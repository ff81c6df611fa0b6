"""
WebDAV vendor registry.

Keeps the preset vendors shipped with CloudLeaf alongside the custom
vendors declared in configuration, and turns a vendor ID plus a user's
account settings into a ready WebDAVProvider.

The registry is an ordinary object: build one and hand it to whatever
needs vendor lookups.
"""
import logging
from typing import Iterable, List, Optional

from cloudleaf.config import CustomVendorConfig, UserConfig, WebDAVUserConfig
from cloudleaf.constants import DEFAULT_REQUEST_TIMEOUT
from cloudleaf.providers.webdav import WebDAVProvider

logger = logging.getLogger(__name__)


PRESET_VENDORS = (
    CustomVendorConfig(
        id="jianguoyun",
        name="Jianguoyun",
        server_url="https://dav.jianguoyun.com/dav",
    ),
)


class VendorError(Exception):
    """Raised for unknown or duplicate vendors and unusable account settings."""
    pass


class VendorRegistry:
    """Preset plus custom WebDAV vendors."""

    def __init__(self, presets: Iterable[CustomVendorConfig] = PRESET_VENDORS,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self._presets: List[CustomVendorConfig] = list(presets)
        self._customs: List[CustomVendorConfig] = []
        self.timeout = timeout

    def get_all_vendors(self) -> List[CustomVendorConfig]:
        """Presets first, then customs."""
        return self._presets + self._customs

    def get_preset_vendors(self) -> List[CustomVendorConfig]:
        return list(self._presets)

    def get_custom_vendors(self) -> List[CustomVendorConfig]:
        return list(self._customs)

    def get_vendor(self, vendor_id: str) -> Optional[CustomVendorConfig]:
        for vendor in self.get_all_vendors():
            if vendor.id == vendor_id:
                return vendor
        return None

    def add_custom_vendor(self, vendor: CustomVendorConfig) -> None:
        """
        Register a custom vendor.

        Raises:
            VendorError: If a preset or custom vendor already uses the ID
        """
        if self.get_vendor(vendor.id):
            raise VendorError(f'Vendor ID "{vendor.id}" already exists')
        self._customs.append(vendor)

    def remove_custom_vendor(self, vendor_id: str) -> bool:
        """Remove a custom vendor; returns False if there was none."""
        for index, vendor in enumerate(self._customs):
            if vendor.id == vendor_id:
                del self._customs[index]
                return True
        return False

    def clear_custom_vendors(self) -> None:
        self._customs = []

    def load_custom_vendors(self, config: UserConfig) -> None:
        """Replace the custom vendors with those declared in ``config``."""
        self.clear_custom_vendors()
        for vendor in config.custom_vendors:
            try:
                self.add_custom_vendor(vendor)
            except VendorError as e:
                logger.warning(f"Skipping vendor {vendor.id}: {e}")

    def create_provider(self, vendor_id: str, account: WebDAVUserConfig) -> WebDAVProvider:
        """
        Build a provider for one WebDAV account.

        Args:
            vendor_id: Vendor to resolve
            account: The user's credentials and paths; its ``server_url``
                     overrides the vendor default

        Raises:
            VendorError: If the vendor is unknown, no server URL is
                         available, or the account has no file path
        """
        vendor = self.get_vendor(vendor_id)
        if vendor is None:
            raise VendorError(f"Unknown WebDAV vendor: {vendor_id}")

        server_url = account.server_url or vendor.server_url
        if not server_url:
            raise VendorError(f"Vendor {vendor.name} requires serverUrl")

        if not account.file_path:
            raise VendorError(f"WebDAV account {account.username} on {vendor.name} has no file path")

        return WebDAVProvider(
            vendor.id,
            vendor.name,
            server_url,
            account.username,
            account.password,
            account.file_path,
            timeout=self.timeout,
        )


def add_custom_vendor_to_config(registry: VendorRegistry, config: UserConfig,
                                vendor: CustomVendorConfig) -> UserConfig:
    """Register ``vendor`` and return ``config`` with it appended."""
    registry.add_custom_vendor(vendor)
    config.custom_vendors = config.custom_vendors + [vendor]
    return config


def remove_custom_vendor_from_config(registry: VendorRegistry, config: UserConfig,
                                     vendor_id: str) -> UserConfig:
    """Unregister ``vendor_id`` and return ``config`` without it."""
    registry.remove_custom_vendor(vendor_id)
    config.custom_vendors = [v for v in config.custom_vendors if v.id != vendor_id]
    return config
