"""Storage backends for the migration history."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


class Storage(ABC):
    """A byte-level store for migration history data."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Write migration history data."""

    @abstractmethod
    def read(self) -> bytes:
        """Read migration history data; empty bytes if it does not exist yet."""


class StorageConfig(ABC):
    """A factory of Storage instances."""

    @abstractmethod
    def new_storage(self) -> Storage:
        """Return a new Storage."""


@dataclass
class LocalStorage(Storage):
    """Storage in a local file."""

    path: str

    def write(self, data: bytes) -> None:
        Path(self.path).write_bytes(data)

    def read(self) -> bytes:
        try:
            return Path(self.path).read_bytes()
        except FileNotFoundError:
            return b""


@dataclass
class LocalStorageConfig(StorageConfig):
    """Config for a local file storage."""

    path: str

    def new_storage(self) -> LocalStorage:
        return LocalStorage(self.path)