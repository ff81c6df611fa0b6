"""
Tests for cloudleaf/providers/registry.py.
"""
import pytest

from cloudleaf.config import CustomVendorConfig, UserConfig, WebDAVUserConfig
from cloudleaf.providers.registry import (
    PRESET_VENDORS,
    VendorError,
    VendorRegistry,
    add_custom_vendor_to_config,
    remove_custom_vendor_from_config,
)
from cloudleaf.providers.webdav import WebDAVProvider


@pytest.fixture
def registry():
    return VendorRegistry()


@pytest.fixture
def nextcloud():
    return CustomVendorConfig(id="nextcloud", name="Nextcloud", server_url="https://cloud.example.com/dav/")


class TestLookup:
    """Test vendor listing and lookup."""

    def test_presets_loaded(self, registry):
        assert [v.id for v in registry.get_preset_vendors()] == ["jianguoyun"]
        assert registry.get_custom_vendors() == []
        assert registry.get_vendor("jianguoyun").server_url == "https://dav.jianguoyun.com/dav"

    def test_unknown_vendor(self, registry):
        assert registry.get_vendor("missing") is None

    def test_all_lists_presets_first(self, registry, nextcloud):
        registry.add_custom_vendor(nextcloud)
        assert [v.id for v in registry.get_all_vendors()] == ["jianguoyun", "nextcloud"]

    def test_registries_are_independent(self, nextcloud):
        first = VendorRegistry()
        second = VendorRegistry()
        first.add_custom_vendor(nextcloud)
        assert second.get_vendor("nextcloud") is None
        assert len(PRESET_VENDORS) == 1


class TestCustomVendors:
    """Test adding and removing custom vendors."""

    def test_duplicate_custom_rejected(self, registry, nextcloud):
        registry.add_custom_vendor(nextcloud)
        with pytest.raises(VendorError, match="already exists"):
            registry.add_custom_vendor(nextcloud)

    def test_preset_id_rejected(self, registry):
        with pytest.raises(VendorError):
            registry.add_custom_vendor(CustomVendorConfig("jianguoyun", "Clone", "https://x"))

    def test_remove(self, registry, nextcloud):
        registry.add_custom_vendor(nextcloud)
        assert registry.remove_custom_vendor("nextcloud") is True
        assert registry.remove_custom_vendor("nextcloud") is False

    def test_presets_cannot_be_removed(self, registry):
        assert registry.remove_custom_vendor("jianguoyun") is False
        assert registry.get_vendor("jianguoyun") is not None

    def test_load_replaces_customs(self, registry, nextcloud):
        registry.add_custom_vendor(CustomVendorConfig("stale", "Stale", "https://stale"))
        registry.load_custom_vendors(UserConfig(custom_vendors=[nextcloud]))
        assert [v.id for v in registry.get_custom_vendors()] == ["nextcloud"]

    def test_load_skips_duplicates(self, registry, nextcloud):
        registry.load_custom_vendors(UserConfig(custom_vendors=[
            nextcloud,
            CustomVendorConfig("jianguoyun", "Clone", "https://x"),
            CustomVendorConfig("nextcloud", "Again", "https://y"),
        ]))
        assert [v.id for v in registry.get_custom_vendors()] == ["nextcloud"]
        assert registry.get_vendor("nextcloud").name == "Nextcloud"

    def test_config_helpers(self, registry, nextcloud):
        config = add_custom_vendor_to_config(registry, UserConfig(), nextcloud)
        assert [v.id for v in config.custom_vendors] == ["nextcloud"]
        assert registry.get_vendor("nextcloud") is not None

        config = remove_custom_vendor_from_config(registry, config, "nextcloud")
        assert config.custom_vendors == []
        assert registry.get_vendor("nextcloud") is None

    def test_add_helper_leaves_config_alone_on_duplicate(self, registry):
        config = UserConfig()
        with pytest.raises(VendorError):
            add_custom_vendor_to_config(registry, config, CustomVendorConfig("jianguoyun", "J", "https://x"))
        assert config.custom_vendors == []


class TestCreateProvider:
    """Test VendorRegistry.create_provider()."""

    def test_preset_url_used(self, registry):
        account = WebDAVUserConfig(vendor_id="jianguoyun", username="me", password="pw")
        provider = registry.create_provider("jianguoyun", account)

        assert isinstance(provider, WebDAVProvider)
        assert provider.id == "jianguoyun"
        assert provider.name == "Jianguoyun"
        assert provider.server_url == "https://dav.jianguoyun.com/dav"
        assert provider.file_path == "/CloudLeaf/CloudLeaf.json"

    def test_account_url_overrides_vendor(self, registry, nextcloud):
        registry.add_custom_vendor(nextcloud)
        account = WebDAVUserConfig(vendor_id="nextcloud", username="me", password="pw",
                                   file_path="sync/b.json", server_url="https://other.example.com/dav")
        provider = registry.create_provider("nextcloud", account)

        assert provider.server_url == "https://other.example.com/dav"
        assert provider.file_path == "/sync/b.json"

    def test_timeout_passed_through(self):
        registry = VendorRegistry(timeout=5)
        account = WebDAVUserConfig(vendor_id="jianguoyun", username="me", password="pw")
        assert registry.create_provider("jianguoyun", account).transport.timeout == 5

    def test_unknown_vendor(self, registry):
        account = WebDAVUserConfig(vendor_id="nope", username="me", password="pw")
        with pytest.raises(VendorError, match="Unknown WebDAV vendor"):
            registry.create_provider("nope", account)

    def test_vendor_without_url(self):
        registry = VendorRegistry(presets=[CustomVendorConfig("blank", "Blank", "")])
        account = WebDAVUserConfig(vendor_id="blank", username="me", password="pw")
        with pytest.raises(VendorError, match="requires serverUrl"):
            registry.create_provider("blank", account)

    def test_empty_file_path(self, registry):
        account = WebDAVUserConfig(vendor_id="jianguoyun", username="me", password="pw", file_path="")
        with pytest.raises(VendorError):
            registry.create_provider("jianguoyun", account)
