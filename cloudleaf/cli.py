#!/usr/bin/env python3
"""
CloudLeaf - bookmark synchronization

Command-line interface for syncing a Chromium profile's bookmarks with
GitHub Gist, WebDAV servers and local JSON files.
"""
import sys
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from cloudleaf.chrome import ChromeBookmarkFile, find_bookmark_files
from cloudleaf.config import CloudLeafConfig, CustomVendorConfig, FileConfigStore, init_config
from cloudleaf.models import Result, SyncOutcome, SyncPayload, SyncStatus
from cloudleaf.providers.local import LocalFileProvider, PathFileHost
from cloudleaf.providers.registry import (
    VendorError,
    VendorRegistry,
    add_custom_vendor_to_config,
    remove_custom_vendor_from_config,
)
from cloudleaf.sync import SyncEngine, list_sources

logger = logging.getLogger(__name__)


console = Console()

STATUS_STYLES = {
    SyncStatus.AHEAD: "[cyan]local is newer[/cyan]",
    SyncStatus.BEHIND: "[yellow]remote is newer[/yellow]",
    SyncStatus.SYNCED: "[green]in sync[/green]",
    SyncStatus.NONE: "[dim]no sync source configured[/dim]",
}


class CommandError(Exception):
    """Raised by a command to stop with an error message."""
    pass


def resolve_bookmarks_file(args, config: CloudLeafConfig) -> Path:
    """Bookmarks file from --bookmarks, the config, or the first profile found."""
    if args.bookmarks:
        return Path(args.bookmarks).expanduser()
    if config.bookmarks_file:
        return Path(config.bookmarks_file)
    found = find_bookmark_files()
    if not found:
        raise CommandError("No Chromium profile found; pass --bookmarks or set bookmarks_file")
    logger.info(f"Using bookmarks file {found[0]}")
    return found[0]


def build_engine(args, config: CloudLeafConfig, file_path: Optional[str] = None) -> SyncEngine:
    return SyncEngine(
        FileConfigStore(config),
        ChromeBookmarkFile(resolve_bookmarks_file(args, config)),
        registry=VendorRegistry(timeout=config.timeout),
        file_provider=LocalFileProvider(PathFileHost(file_path)),
        timeout=config.timeout,
    )


def unwrap(result: Result[SyncOutcome]) -> SyncOutcome:
    if not result.ok:
        raise CommandError(result.error)
    return result.data


def describe(payload: SyncPayload) -> str:
    return f"{payload.num_bookmarks} bookmarks, updated {payload.updated_at}"


def apply_payload(engine: SyncEngine, outcome: SyncOutcome, force: bool) -> None:
    """Replace local bookmarks, confirming first when local is not older."""
    if outcome.status is not SyncStatus.BEHIND and not force:
        if not Confirm.ask("Local bookmarks are not older. Replace them anyway?", console=console, default=False):
            console.print("[yellow]Local bookmarks left unchanged[/yellow]")
            return

    res = engine.apply(outcome.payload)
    if not res.ok:
        raise CommandError(f"Applying bookmarks failed: {res.error}")
    console.print(f"[green]✓ Applied {describe(outcome.payload)}[/green]")


def cmd_upload(args, config: CloudLeafConfig):
    engine = build_engine(args, config)
    outcome = unwrap(engine.upload(force=args.force))

    if outcome.status is SyncStatus.BEHIND:
        console.print("[yellow]A remote copy is newer than your local bookmarks.[/yellow]")
        if not Confirm.ask("Overwrite the remote copies?", console=console, default=False):
            console.print("Upload skipped")
            return
        outcome = unwrap(engine.upload(force=True, local_snapshot=outcome.payload))

    if outcome.status is SyncStatus.NONE:
        console.print(STATUS_STYLES[SyncStatus.NONE])
        return
    console.print("[green]✓ Upload complete[/green]")


def cmd_download(args, config: CloudLeafConfig):
    engine = build_engine(args, config)
    outcome = unwrap(engine.download())

    console.print(f"Status: {STATUS_STYLES[outcome.status]}")
    if outcome.payload is None:
        return

    console.print(f"Remote: {describe(outcome.payload)}")
    if args.apply:
        apply_payload(engine, outcome, args.force)


def cmd_export(args, config: CloudLeafConfig):
    engine = build_engine(args, config, file_path=args.path or str(Path.cwd()))
    unwrap(engine.export_bookmarks())
    console.print("[green]✓ Bookmarks exported[/green]")


def cmd_import(args, config: CloudLeafConfig):
    engine = build_engine(args, config, file_path=args.path)
    outcome = unwrap(engine.import_bookmarks())

    console.print(f"Status: {STATUS_STYLES[outcome.status]}")
    console.print(f"File: {describe(outcome.payload)}")
    if args.apply:
        apply_payload(engine, outcome, args.force)


def cmd_test(args, config: CloudLeafConfig):
    engine = build_engine(args, config)
    results = engine.test_sources()
    if not results:
        console.print(STATUS_STYLES[SyncStatus.NONE])
        return

    labels = {source.id: source.label for source in list_sources(engine.config_store.get())}
    failed = False
    for source_id, res in results.items():
        if res.ok and res.data:
            console.print(f"[green]✓ {labels[source_id]}[/green]")
        else:
            failed = True
            console.print(f"[red]✗ {labels[source_id]}: {res.error}[/red]")
    if failed:
        sys.exit(1)


def cmd_sources(args, config: CloudLeafConfig):
    table = Table(title="Sync sources")
    table.add_column("ID", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("Priority", style="magenta")
    table.add_column("Enabled", style="yellow")

    for source in list_sources(config.user):
        table.add_row(source.id, source.label, str(source.priority), "yes" if source.enabled else "no")

    console.print(table)


def cmd_vendor(args, config: CloudLeafConfig):
    registry = VendorRegistry()
    registry.load_custom_vendors(config.user)
    store = FileConfigStore(config)

    if args.vendor_command == "list":
        table = Table(title="WebDAV vendors")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Server URL", style="blue")
        table.add_column("Preset", style="yellow")
        presets = {vendor.id for vendor in registry.get_preset_vendors()}
        for vendor in registry.get_all_vendors():
            table.add_row(vendor.id, vendor.name, vendor.server_url, "yes" if vendor.id in presets else "")
        console.print(table)

    elif args.vendor_command == "add":
        vendor = CustomVendorConfig(id=args.id, name=args.name or args.id, server_url=args.server_url)
        try:
            store.set(add_custom_vendor_to_config(registry, store.get(), vendor))
        except VendorError as e:
            raise CommandError(str(e)) from e
        console.print(f"[green]✓ Registered vendor {vendor.name}[/green]")

    elif args.vendor_command == "remove":
        if args.id not in {vendor.id for vendor in registry.get_custom_vendors()}:
            raise CommandError(f"No custom vendor with ID {args.id}")
        store.set(remove_custom_vendor_from_config(registry, store.get(), args.id))
        console.print(f"[green]✓ Removed vendor {args.id}[/green]")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="CloudLeaf - sync browser bookmarks with Gist, WebDAV and JSON files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cloudleaf upload                 # refuses if a remote copy is newer
  cloudleaf upload --force
  cloudleaf download --apply
  cloudleaf export ~/backups/
  cloudleaf import CloudLeaf_2024-01-01.json --apply
  cloudleaf test
  cloudleaf vendor add nextcloud https://cloud.example.com/remote.php/dav/files/me --name Nextcloud

Configuration:
  Config file: ~/.config/cloudleaf/config.toml or ./cloudleaf.toml
  Environment: CLOUDLEAF_BOOKMARKS_FILE, CLOUDLEAF_TIMEOUT, CLOUDLEAF_LOG_LEVEL
        """
    )

    parser.add_argument("--config", help="Config file path")
    parser.add_argument("--bookmarks", help="Chromium profile Bookmarks file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    upload_parser = subparsers.add_parser("upload", help="Upload local bookmarks to every source")
    upload_parser.add_argument("--force", action="store_true", help="Overwrite newer remote copies")
    upload_parser.set_defaults(func=cmd_upload)

    download_parser = subparsers.add_parser("download", help="Download bookmarks from the first available source")
    download_parser.add_argument("--apply", action="store_true", help="Replace local bookmarks with the download")
    download_parser.add_argument("--force", action="store_true", help="Apply without asking")
    download_parser.set_defaults(func=cmd_download)

    export_parser = subparsers.add_parser("export", help="Export local bookmarks to a JSON file")
    export_parser.add_argument("path", nargs="?", help="Output file or directory (default: current directory)")
    export_parser.set_defaults(func=cmd_export)

    import_parser = subparsers.add_parser("import", help="Import bookmarks from a JSON file")
    import_parser.add_argument("path", nargs="?", help="File to import")
    import_parser.add_argument("--apply", action="store_true", help="Replace local bookmarks with the file")
    import_parser.add_argument("--force", action="store_true", help="Apply without asking")
    import_parser.set_defaults(func=cmd_import)

    test_parser = subparsers.add_parser("test", help="Check every configured source")
    test_parser.set_defaults(func=cmd_test)

    sources_parser = subparsers.add_parser("sources", help="List configured sources by priority")
    sources_parser.set_defaults(func=cmd_sources)

    vendor_parser = subparsers.add_parser("vendor", help="WebDAV vendor management")
    vendor_subparsers = vendor_parser.add_subparsers(dest="vendor_command", required=True)

    vendor_list = vendor_subparsers.add_parser("list", help="List preset and custom vendors")
    vendor_list.set_defaults(func=cmd_vendor)

    vendor_add = vendor_subparsers.add_parser("add", help="Register a custom vendor")
    vendor_add.add_argument("id", help="Vendor ID")
    vendor_add.add_argument("server_url", help="WebDAV root URL")
    vendor_add.add_argument("--name", help="Display name")
    vendor_add.set_defaults(func=cmd_vendor)

    vendor_remove = vendor_subparsers.add_parser("remove", help="Remove a custom vendor")
    vendor_remove.add_argument("id", help="Vendor ID")
    vendor_remove.set_defaults(func=cmd_vendor)

    args = parser.parse_args(argv)

    global console
    try:
        config = init_config(config_file=Path(args.config) if args.config else None)
        # None defers to the NO_COLOR environment variable
        console = Console(no_color=None if config.color_output else True)
        level = "INFO" if args.verbose else config.log_level
        logging.basicConfig(level=getattr(logging, str(level).upper(), logging.WARNING),
                            format='%(levelname)s: %(message)s')
        args.func(args, config)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
