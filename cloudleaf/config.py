"""
Configuration management for CloudLeaf.

Provides a hierarchical configuration system with sensible defaults.
Supports both global (~/.config/cloudleaf/config.toml) and local
(cloudleaf.toml) configurations. Sync sources live in the same files:

    [gist]
    access_token = "ghp_..."
    gist_id = "0123abcd"
    priority = 0

    [[webdav]]
    vendor_id = "jianguoyun"
    username = "me@example.com"
    password = "app-password"
    priority = 1

    [[vendors]]
    id = "nextcloud"
    name = "Home Nextcloud"
    server_url = "https://cloud.example.com/remote.php/dav/files/me"
"""
import os
import logging
from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomli
import tomli_w

from cloudleaf.constants import DEFAULT_FILENAME, DEFAULT_REQUEST_TIMEOUT, DEFAULT_WEBDAV_FILEPATH

logger = logging.getLogger(__name__)


def user_config_path() -> Path:
    return Path.home() / ".config" / "cloudleaf" / "config.toml"


class ConfigError(Exception):
    """Raised when a configuration file or section is malformed."""
    pass


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    # TOML has no null
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class GistConfig:
    """GitHub Gist source configuration."""
    access_token: str
    gist_id: str
    file_name: str = DEFAULT_FILENAME
    enabled: bool = True
    priority: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GistConfig":
        try:
            return cls(
                access_token=data["access_token"],
                gist_id=data["gist_id"],
                file_name=data.get("file_name") or DEFAULT_FILENAME,
                enabled=data.get("enabled", True),
                priority=data.get("priority"),
            )
        except KeyError as e:
            raise ConfigError(f"Gist configuration is missing '{e.args[0]}'") from e

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "access_token": self.access_token,
            "gist_id": self.gist_id,
            "file_name": self.file_name,
            "enabled": self.enabled,
            "priority": self.priority,
        })


@dataclass
class WebDAVUserConfig:
    """
    A user's WebDAV account.

    Only credentials and a vendor reference are stored here; the vendor
    supplies the default server URL.
    """
    vendor_id: str
    username: str
    password: str
    file_path: str = DEFAULT_WEBDAV_FILEPATH
    server_url: Optional[str] = None
    enabled: bool = True
    priority: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WebDAVUserConfig":
        try:
            return cls(
                vendor_id=data["vendor_id"],
                username=data.get("username", ""),
                password=data.get("password", ""),
                file_path=data.get("file_path", DEFAULT_WEBDAV_FILEPATH),
                server_url=data.get("server_url") or None,
                enabled=data.get("enabled", True),
                priority=data.get("priority"),
            )
        except KeyError as e:
            raise ConfigError(f"WebDAV configuration is missing '{e.args[0]}'") from e

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "vendor_id": self.vendor_id,
            "username": self.username,
            "password": self.password,
            "file_path": self.file_path,
            "server_url": self.server_url,
            "enabled": self.enabled,
            "priority": self.priority,
        })


@dataclass
class CustomVendorConfig:
    """WebDAV vendor metadata; carries no credentials."""
    id: str
    name: str
    server_url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomVendorConfig":
        try:
            return cls(id=data["id"], name=data.get("name") or data["id"], server_url=data["server_url"])
        except KeyError as e:
            raise ConfigError(f"Vendor configuration is missing '{e.args[0]}'") from e

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "server_url": self.server_url}


@dataclass
class UserConfig:
    """All configured sync sources."""
    gist: Optional[GistConfig] = None
    webdav_configs: List[WebDAVUserConfig] = field(default_factory=list)
    custom_vendors: List[CustomVendorConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserConfig":
        gist = data.get("gist")
        return cls(
            gist=GistConfig.from_dict(gist) if gist else None,
            webdav_configs=[WebDAVUserConfig.from_dict(w) for w in data.get("webdav", [])],
            custom_vendors=[CustomVendorConfig.from_dict(v) for v in data.get("vendors", [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.gist is not None:
            data["gist"] = self.gist.to_dict()
        data["webdav"] = [w.to_dict() for w in self.webdav_configs]
        data["vendors"] = [v.to_dict() for v in self.custom_vendors]
        return data


# Top-level TOML keys that belong to UserConfig rather than to settings
USER_SECTIONS = ("gist", "webdav", "vendors")

# Fields that no file or environment variable may set
INTERNAL_FIELDS = ("user", "config_file", "section_files")


@dataclass
class CloudLeafConfig:
    """
    CloudLeaf configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments
    2. Environment variables (CLOUDLEAF_*)
    3. Explicit config file (--config)
    4. Local config file (./cloudleaf.toml or ./.cloudleafrc)
    5. User config file (~/.config/cloudleaf/config.toml)
    6. System defaults
    """

    # Network settings
    timeout: int = field(default=DEFAULT_REQUEST_TIMEOUT)

    # Local bookmark store
    bookmarks_file: Optional[str] = field(default=None)  # Chromium profile "Bookmarks" file

    # Display settings
    color_output: bool = field(default=True)
    log_level: str = field(default="WARNING")

    # Sync sources
    user: UserConfig = field(default_factory=UserConfig)

    # File given with --config; save targets default to it
    config_file: Optional[Path] = field(default=None, repr=False)

    # File each source section was last read from or written to
    section_files: Dict[str, Path] = field(default_factory=dict, repr=False)

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "CloudLeafConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (overrides search)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config = user_config_path()
        if user_config.exists():
            config._merge(cls._load_toml(user_config), user_config)

        local_paths = [
            Path.cwd() / "cloudleaf.toml",
            Path.cwd() / ".cloudleafrc",
        ]

        for path in local_paths:
            if path.exists():
                config._merge(cls._load_toml(path), path)
                break

        if config_file:
            config_file = Path(config_file)
            if config_file.exists():
                config._merge(cls._load_toml(config_file), config_file)
            config.config_file = config_file

        config._apply_env_vars()
        config._expand_paths()

        return config

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        try:
            with open(path, "rb") as f:
                return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigError(f"Invalid configuration file {path}: {e}") from e

    def _merge(self, data: Dict[str, Any], path: Optional[Path] = None):
        """Merge configuration data into this instance, remembering which file owns each source section."""
        if any(section in data for section in USER_SECTIONS):
            # A file that declares sources replaces the sections it declares
            merged = self.user.to_dict()
            merged.update({key: data[key] for key in USER_SECTIONS if key in data})
            self.user = UserConfig.from_dict(merged)
            if path is not None:
                self.section_files.update({key: path for key in USER_SECTIONS if key in data})

        for key, value in data.items():
            if key in USER_SECTIONS or key in INTERNAL_FIELDS:
                continue
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")

    def _apply_env_vars(self):
        """Apply environment variables with CLOUDLEAF_ prefix."""
        prefix = "CLOUDLEAF_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower()
                if config_key in INTERNAL_FIELDS or not hasattr(self, config_key):
                    continue
                current_value = getattr(self, config_key)
                if isinstance(current_value, bool):
                    setattr(self, config_key, value.lower() in ("true", "1", "yes"))
                elif isinstance(current_value, int):
                    setattr(self, config_key, int(value))
                else:
                    setattr(self, config_key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in paths."""
        if isinstance(self.bookmarks_file, str):
            self.bookmarks_file = os.path.expanduser(os.path.expandvars(self.bookmarks_file))

    def to_dict(self) -> Dict[str, Any]:
        data = _drop_none({
            "timeout": self.timeout,
            "bookmarks_file": self.bookmarks_file,
            "color_output": self.color_output,
            "log_level": self.log_level,
        })
        data.update(self.user.to_dict())
        return data

    def save(self, path: Optional[Path] = None):
        """
        Save the complete current configuration to a TOML file.

        Args:
            path: Path to save to (defaults to the --config file, then to
                  the user config)
        """
        path = Path(path or self.config_file or user_config_path())
        self._write_toml(path, self.to_dict())

        self.config_file = path
        self.section_files = {section: path for section in USER_SECTIONS}
        logger.info(f"Saved configuration to {path}")

    def save_sources(self):
        """
        Write the source sections back to the files that own them.

        Each section goes to the file it was loaded from. A section no file
        declared goes to the --config file, or to the user config. Settings
        and the other sections of each file are kept as they are on disk.
        """
        default = Path(self.config_file or user_config_path())
        sections = self.user.to_dict()

        targets: Dict[Path, List[str]] = {}
        for section in USER_SECTIONS:
            path = self.section_files.get(section)
            if path is None:
                if not sections.get(section):
                    continue
                path = default
            targets.setdefault(Path(path), []).append(section)

        for path, owned in targets.items():
            data = self._load_toml(path) if path.exists() else {}
            before = dict(data)
            for section in owned:
                if section in sections:
                    data[section] = sections[section]
                else:
                    data.pop(section, None)
                self.section_files[section] = path

            if data != before:
                self._write_toml(path, data)
                logger.info(f"Saved {', '.join(owned)} to {path}")

    @staticmethod
    def _write_toml(path: Path, data: Dict[str, Any]):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            tomli_w.dump(data, f)


class ConfigStore(ABC):
    """Get/set persistence for the configured sync sources."""

    @abstractmethod
    def get(self) -> UserConfig:
        """Return the current source configuration."""
        pass

    @abstractmethod
    def set(self, user: UserConfig) -> None:
        """Replace and persist the source configuration."""
        pass


class MemoryConfigStore(ConfigStore):
    """Config store kept in process memory."""

    def __init__(self, user: Optional[UserConfig] = None):
        self._user = user or UserConfig()

    def get(self) -> UserConfig:
        return deepcopy(self._user)

    def set(self, user: UserConfig) -> None:
        self._user = deepcopy(user)


class FileConfigStore(ConfigStore):
    """Config store backed by a loaded CloudLeafConfig and the TOML files it came from."""

    def __init__(self, config: CloudLeafConfig):
        self.config = config

    def get(self) -> UserConfig:
        return deepcopy(self.config.user)

    def set(self, user: UserConfig) -> None:
        self.config.user = deepcopy(user)
        self.config.save_sources()


# Global configuration instance
_config: Optional[CloudLeafConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> CloudLeafConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = CloudLeafConfig.load(config_file)
    return _config


def init_config(config_file: Optional[Path] = None, **kwargs) -> CloudLeafConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        config_file: Config file to load in addition to the default search
        **kwargs: Other configuration overrides

    Returns:
        Configured instance
    """
    config = get_config(reload=config_file is not None, config_file=config_file)

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    return config
