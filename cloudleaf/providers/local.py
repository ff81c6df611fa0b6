"""
Local file provider.

Exports the payload to a JSON file and imports it back. The actual
save-as / open-file interaction is delegated to a FileHost so the same
provider works from scripts (fixed path) and interactively (prompt).
"""
import json
import logging
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.prompt import Prompt

from cloudleaf.constants import (
    ERROR_CANCELED,
    ERROR_INVALID_DATA,
    ERROR_NO_FILE_SELECTED,
    ERROR_PARSE_FAILED,
)
from cloudleaf.models import Result, SyncPayload
from cloudleaf.providers.base import Provider

logger = logging.getLogger(__name__)


class FileSelectionCanceled(Exception):
    """Raised by a FileHost when the user backs out of a file dialog."""
    pass


class FileHost(ABC):
    """Host-side save-as and open-file interactions."""

    @abstractmethod
    def save_file(self, file_name: str, content: str) -> Path:
        """Save ``content`` under a suggested ``file_name``; returns where it went."""
        pass

    @abstractmethod
    def open_file(self) -> Optional[str]:
        """
        Let the user pick a file and return its text.

        Returns:
            File content, or None if no file was chosen

        Raises:
            FileSelectionCanceled: If the user canceled the dialog
        """
        pass


class PathFileHost(FileHost):
    """File host bound to a fixed path (a file, or a directory for exports)."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path).expanduser() if path else None

    def save_file(self, file_name: str, content: str) -> Path:
        target = self.path or Path.cwd()
        if target.is_dir():
            target = target / file_name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def open_file(self) -> Optional[str]:
        if self.path is None:
            return None
        return self.path.read_text(encoding="utf-8")


class PromptFileHost(FileHost):
    """File host that asks for paths on the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _ask(self, question: str, default: str = "") -> str:
        try:
            return Prompt.ask(question, console=self.console, default=default).strip()
        except (KeyboardInterrupt, EOFError) as e:
            raise FileSelectionCanceled() from e

    def save_file(self, file_name: str, content: str) -> Path:
        answer = self._ask("Save bookmarks to", default=file_name)
        return PathFileHost(answer or file_name).save_file(file_name, content)

    def open_file(self) -> Optional[str]:
        answer = self._ask("Bookmark file to import")
        if not answer:
            return None
        return PathFileHost(answer).open_file()


class LocalFileProvider(Provider):
    """Provider for the local JSON file channel."""

    def __init__(self, host: Optional[FileHost] = None):
        self.host = host or PromptFileHost()

    @property
    def id(self) -> str:
        return "local"

    @property
    def name(self) -> str:
        return "Local File"

    @staticmethod
    def export_file_name() -> str:
        return f"CloudLeaf_{date.today().isoformat()}.json"

    def is_valid(self) -> Result[bool]:
        return Result.success(True)

    def upload(self, payload: SyncPayload) -> Result[None]:
        try:
            path = self.host.save_file(self.export_file_name(), payload.to_json(indent=2))
        except FileSelectionCanceled:
            return Result.failure(ERROR_CANCELED)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Export failed: {e}")
            return Result.failure(str(e))

        logger.info(f"Exported {payload.num_bookmarks} bookmarks to {path}")
        return Result.success()

    def download(self) -> Result[SyncPayload]:
        try:
            content = self.host.open_file()
        except FileSelectionCanceled:
            return Result.failure(ERROR_CANCELED)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Reading import file failed: {e}")
            return Result.failure(f"{ERROR_PARSE_FAILED}: {e}")

        if content is None:
            return Result.failure(ERROR_NO_FILE_SELECTED)

        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            return Result.failure(ERROR_PARSE_FAILED)

        try:
            payload = SyncPayload.from_dict(data)
        except (TypeError, ValueError):
            return Result.failure(ERROR_INVALID_DATA)

        return Result.success(payload)
