"""In-memory migration history and its configuration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Iterator, Mapping

from .storage import StorageConfig


@dataclass(frozen=True)
class Record:
    """An applied migration log entry."""

    type: str
    name: str
    applied_at: datetime


class History:
    """A set of applied migrations keyed by migration file name."""

    def __init__(self, records: Mapping[str, Record] | None = None) -> None:
        self._records: dict[str, Record] = dict(records or {})

    @property
    def records(self) -> Mapping[str, Record]:
        """A read-only view of the records."""
        return MappingProxyType(self._records)

    def add(self, filename: str, record: Record) -> None:
        """Add a record, replacing any existing record for the same file."""
        self._records[filename] = record

    def contains(self, filename: str) -> bool:
        """Return True if the given migration has been applied."""
        return filename in self._records

    def delete(self, filename: str) -> None:
        """Delete a record; a missing file name is ignored."""
        self._records.pop(filename, None)

    def clear(self) -> None:
        """Delete all records."""
        self._records = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, filename: object) -> bool:
        return filename in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, History):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"History({self._records!r})"


@dataclass
class HistoryConfig:
    """Settings for migration history management."""

    storage: StorageConfig
    migration_dir: str = ""