"""
Storage provider contract.

Every backend (Gist, WebDAV, local file) implements the same three
operations. Failures are returned as a failed Result, never raised.
"""
from abc import ABC, abstractmethod

from cloudleaf.models import Result, SyncPayload


class Provider(ABC):
    """Base class for all storage providers."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique provider identifier."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name used in messages."""
        pass

    @abstractmethod
    def is_valid(self) -> Result[bool]:
        """
        Check configuration and connectivity without changing remote state.

        Returns:
            ``ok=True, data=True`` when usable, ``ok=True, data=False`` with
            an error when the configuration is rejected, ``ok=False`` on a
            transport failure.
        """
        pass

    @abstractmethod
    def upload(self, payload: SyncPayload) -> Result[None]:
        """Store ``payload`` in the backend."""
        pass

    @abstractmethod
    def download(self) -> Result[SyncPayload]:
        """Fetch the stored payload."""
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"
