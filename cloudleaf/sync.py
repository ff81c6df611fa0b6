"""
Sync engine for CloudLeaf.

Builds the configured providers in priority order and drives them through
the upload, download, export and import flows. Providers are always
processed one at a time, in order; nothing is retried.

    upload    local -> every remote (refuses if a remote is newer, unless forced)
    download  first remote that answers -> caller (never applied automatically)
    export    local -> JSON file
    import    JSON file -> caller (never applied automatically)
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from cloudleaf.bookmarks import BookmarkStore, get_bookmarks, now_ms, set_bookmarks
from cloudleaf.config import ConfigStore, UserConfig
from cloudleaf.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    ERROR_ALL_PROVIDERS_FAILED,
    ERROR_DOWNLOAD_FAILED,
    ERROR_EXPORT_FAILED,
    ERROR_IMPORT_FAILED,
    ERROR_NO_SYNC_SOURCE,
    ERROR_SYNC_STATUS_CHECK,
    ERROR_UPLOAD_FAILED,
    HTTP_NOT_FOUND,
    LOWEST_PRIORITY,
    WEBDAV_CONFLICT,
)
from cloudleaf.models import Result, SyncOutcome, SyncPayload, SyncStatus, get_sync_status
from cloudleaf.providers.base import Provider
from cloudleaf.providers.gist import GistProvider
from cloudleaf.providers.local import LocalFileProvider
from cloudleaf.providers.registry import VendorError, VendorRegistry

logger = logging.getLogger(__name__)

# Remote states that mean "nothing uploaded yet"
ABSENT_STATUSES = (HTTP_NOT_FOUND, WEBDAV_CONFLICT)


@dataclass
class SourceItem:
    """One configured sync source, as listed to the user."""
    type: str                  # "gist" or "webdav"
    id: str                    # "gist" or "webdav-<index>"
    label: str
    priority: int
    enabled: bool
    raw_index: Optional[int] = None  # index into webdav_configs


def list_sources(config: UserConfig) -> List[SourceItem]:
    """All configured sources, enabled or not, sorted by priority."""
    sources = []
    if config.gist is not None:
        sources.append(SourceItem(
            type="gist",
            id="gist",
            label=f"gist / {config.gist.gist_id} / {config.gist.file_name}",
            priority=_priority(config.gist.priority),
            enabled=config.gist.enabled,
        ))
    for index, account in enumerate(config.webdav_configs):
        sources.append(SourceItem(
            type="webdav",
            id=f"webdav-{index}",
            label=f"{account.vendor_id} / {account.username} {account.file_path}",
            priority=_priority(account.priority),
            enabled=account.enabled,
            raw_index=index,
        ))
    return sorted(sources, key=lambda source: source.priority)


def _priority(value: Optional[int]) -> int:
    return LOWEST_PRIORITY if value is None else value


class SyncEngine:
    """
    Orchestrates bookmark synchronization across providers.

    The engine reads configuration through a ConfigStore on every
    operation, so edits take effect without rebuilding the engine.
    """

    def __init__(self, config_store: ConfigStore, bookmark_store: BookmarkStore,
                 registry: Optional[VendorRegistry] = None,
                 file_provider: Optional[LocalFileProvider] = None,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 clock: Callable[[], int] = now_ms):
        """
        Initialize the sync engine.

        Args:
            config_store: Source of the Gist/WebDAV/vendor configuration
            bookmark_store: The local browser bookmark store
            registry: Vendor registry (a fresh one with presets by default)
            file_provider: Provider for the local file channel
            timeout: Request timeout for HTTP providers, in seconds
            clock: Epoch-ms clock used when the tree carries no timestamp
        """
        self.config_store = config_store
        self.bookmark_store = bookmark_store
        self.registry = registry or VendorRegistry(timeout=timeout)
        self.file_provider = file_provider or LocalFileProvider()
        self.timeout = timeout
        self.clock = clock

    def snapshot(self) -> SyncPayload:
        """Read the local bookmark tree."""
        return get_bookmarks(self.bookmark_store, clock=self.clock)

    def build_providers(self) -> List[Provider]:
        """Enabled providers, lowest priority value first."""
        config = self.config_store.get()
        self.registry.load_custom_vendors(config)

        entries: List[Tuple[int, Provider]] = []

        if config.gist is not None and config.gist.enabled:
            gist = GistProvider(
                config.gist.access_token,
                config.gist.gist_id,
                config.gist.file_name,
                timeout=self.timeout,
            )
            entries.append((_priority(config.gist.priority), gist))

        for account in config.webdav_configs:
            if not account.enabled:
                continue
            try:
                provider = self.registry.create_provider(account.vendor_id, account)
            except VendorError as e:
                logger.warning(f"Skipping WebDAV account {account.username}: {e}")
                continue
            entries.append((_priority(account.priority), provider))

        entries.sort(key=lambda entry: entry[0])
        return [provider for _, provider in entries]

    def upload(self, force: bool = False,
               local_snapshot: Optional[SyncPayload] = None) -> Result[SyncOutcome]:
        """
        Upload the local tree to every provider.

        Unless ``force`` is set, each provider is first asked for its copy;
        if any remote copy is newer the upload is abandoned with status
        ``behind`` and nothing is written anywhere.

        Args:
            force: Skip the newer-remote check
            local_snapshot: Snapshot from an earlier check, reused instead of
                            reading the tree again

        Returns:
            Success if at least one provider accepted the upload; otherwise
            a failure listing every provider's error
        """
        try:
            providers = self.build_providers()
            if not providers:
                return Result.success(SyncOutcome(SyncStatus.NONE))

            local = local_snapshot or self.snapshot()

            if not force:
                blocked = self._check_remotes(providers, local)
                if blocked is not None:
                    return blocked

            errors = []
            succeeded = 0
            for provider in providers:
                logger.info(f"Uploading to {provider.name} (force={force})")
                res = provider.upload(local)
                if res.ok:
                    succeeded += 1
                else:
                    logger.error(f"Upload to {provider.name} failed: {res.error}")
                    errors.append(f"{provider.name}: {res.error or ERROR_UPLOAD_FAILED}")

            if succeeded > 0:
                return Result.success(SyncOutcome(SyncStatus.SYNCED, payload=local))

            return Result.failure("\n".join(errors) or ERROR_ALL_PROVIDERS_FAILED)
        except Exception as e:
            logger.exception("Upload failed")
            return Result.failure(str(e))

    def _check_remotes(self, providers: List[Provider],
                       local: SyncPayload) -> Optional[Result[SyncOutcome]]:
        """Return a result that stops the upload, or None to go ahead."""
        for provider in providers:
            logger.info(f"Checking {provider.name} before upload")
            res = provider.download()

            if res.ok and res.data is not None:
                if get_sync_status(local, res.data) is SyncStatus.BEHIND:
                    logger.info(f"{provider.name} holds newer bookmarks, not uploading")
                    return Result.success(SyncOutcome(SyncStatus.BEHIND, payload=local))
                continue

            if res.status in ABSENT_STATUSES:
                logger.info(f"Nothing stored on {provider.name} yet")
                return None

            logger.error(f"Download from {provider.name} failed during upload check: {res.error}")
            return Result.failure(
                f"{ERROR_SYNC_STATUS_CHECK.format(name=provider.name)}: {res.error or ERROR_DOWNLOAD_FAILED}",
                status=res.status,
            )
        return None

    def download(self) -> Result[SyncOutcome]:
        """
        Fetch the payload from the first provider that returns one.

        Later providers are not contacted once one succeeds. The payload is
        returned with its status relative to the local tree; applying it is
        left to the caller.
        """
        try:
            providers = self.build_providers()
            if not providers:
                return Result.success(SyncOutcome(SyncStatus.NONE))

            local = self.snapshot()
            errors = []

            for provider in providers:
                logger.info(f"Downloading from {provider.name}")
                res = provider.download()
                if res.ok and res.data is not None:
                    return Result.success(SyncOutcome(get_sync_status(local, res.data), payload=res.data))
                logger.error(f"Download from {provider.name} failed: {res.error}")
                errors.append(f"{provider.name}: {res.error or ERROR_DOWNLOAD_FAILED}")

            return Result.failure("\n".join(errors) or ERROR_NO_SYNC_SOURCE)
        except Exception as e:
            logger.exception("Download failed")
            return Result.failure(str(e))

    def export_bookmarks(self) -> Result[SyncOutcome]:
        """Write the local tree through the local file provider."""
        try:
            res = self.file_provider.upload(self.snapshot())
        except Exception as e:
            logger.exception("Export failed")
            return Result.failure(str(e) or ERROR_EXPORT_FAILED)

        if not res.ok:
            return Result.failure(res.error or ERROR_EXPORT_FAILED)
        return Result.success(SyncOutcome(SyncStatus.SYNCED))

    def import_bookmarks(self) -> Result[SyncOutcome]:
        """Read a payload through the local file provider and compare it to the local tree."""
        try:
            res = self.file_provider.download()
            logger.info(f"Read import file: ok={res.ok}")
            if not res.ok or res.data is None:
                return Result.failure(res.error or ERROR_IMPORT_FAILED)

            status = get_sync_status(self.snapshot(), res.data)
            return Result.success(SyncOutcome(status, payload=res.data))
        except Exception as e:
            logger.exception("Import failed")
            return Result.failure(str(e) or ERROR_IMPORT_FAILED)

    def apply(self, payload: SyncPayload) -> Result[None]:
        """
        Replace the local tree with ``payload``.

        Not transactional: a failure part-way leaves the tree partially rebuilt.
        """
        try:
            set_bookmarks(self.bookmark_store, payload)
            self.bookmark_store.flush()
        except Exception as e:
            logger.exception("Applying bookmarks failed")
            return Result.failure(str(e))
        return Result.success()

    def test_sources(self) -> Dict[str, Result[bool]]:
        """
        Run the connectivity check of every configured source.

        Disabled sources are checked too. Returns a mapping from source ID
        (as in list_sources) to the check result.
        """
        config = self.config_store.get()
        self.registry.load_custom_vendors(config)
        results: Dict[str, Result[bool]] = {}

        for source in list_sources(config):
            if source.type == "gist":
                gist = config.gist
                provider = GistProvider(gist.access_token, gist.gist_id, gist.file_name, timeout=self.timeout)
            else:
                account = config.webdav_configs[source.raw_index]
                try:
                    provider = self.registry.create_provider(account.vendor_id, account)
                except VendorError as e:
                    results[source.id] = Result.failure(str(e))
                    continue

            logger.info(f"Testing {source.label}")
            results[source.id] = provider.is_valid()

        return results
