"""
Artifact Storage Backend

Interface for where the derived knowledge base is persisted. Artifacts are
small JSON documents addressed by a flat key ("hts_codes.json").
"""

from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """Abstract base class for knowledge-base artifact storage."""

    SCHEME: str = ""  # Shown in log locations (local, ...)

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """
        Replace an artifact.

        Implementations must be atomic: a concurrent or interrupted reader
        sees either the old bytes or the new bytes, never a mix.
        """
        pass

    @abstractmethod
    def read(self, key: str) -> bytes:
        """
        Raises:
            FileNotFoundError: If the artifact doesn't exist
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Returns True if an artifact was removed, False if there was none."""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass

    def location(self, key: str) -> str:
        """Where an artifact lives, for log messages."""
        return f"{self.SCHEME}://{key}"
