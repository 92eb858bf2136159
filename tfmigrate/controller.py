"""Management of the migration history."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .history import History, HistoryConfig, Record
from .history_file import FileV1, parse_history_file
from .storage import StorageConfig

log = logging.getLogger(__name__)

_MIGRATION_EXTENSIONS = (".hcl", ".json")


def load_migration_file_names(directory: str) -> list[str]:
    """List migration files in a directory, sorted by name.

    Only files with a .hcl or .json extension are listed; hidden files are skipped.
    """
    with os.scandir(directory) as entries:
        names = [
            entry.name
            for entry in entries
            if os.path.splitext(entry.name)[1] in _MIGRATION_EXTENSIONS
            and not entry.name.startswith(".")
        ]
    return sorted(names)


def load_history(storage_config: StorageConfig) -> History:
    """Load the history from storage; an absent history yields an empty one."""
    storage = storage_config.new_storage()
    log.debug("read storage %r", storage)
    data = storage.read()
    log.debug("read history file: %r", data)
    if not data:
        log.debug("new empty history")
        return History()
    return parse_history_file(data)


@dataclass
class Controller:
    """Tracks which migration files have been applied."""

    config: HistoryConfig | None = None
    migration_dir: str = ""
    migrations: list[str] = field(default_factory=list)
    history: History = field(default_factory=History)

    @classmethod
    def load(cls, migration_dir: str, config: HistoryConfig) -> Controller:
        """Build a controller from a migration directory and stored history."""
        log.debug("load migration dir: %s", migration_dir)
        migrations = load_migration_file_names(migration_dir)
        log.debug("load history")
        history = load_history(config.storage)
        return cls(
            config=config,
            migration_dir=migration_dir,
            migrations=migrations,
            history=history,
        )

    def save(self) -> None:
        """Persist the current history to storage."""
        if self.config is None:
            raise ValueError("no history configuration to save with")
        storage = self.config.storage.new_storage()
        data = FileV1.from_history(self.history).serialize()
        log.debug("write storage: %r", storage)
        log.debug("write history file: %r", data)
        storage.write(data)

    def unapplied_migrations(self) -> list[str]:
        """Return migration file names which have not been applied yet."""
        return [m for m in self.migrations if not self.history.contains(m)]

    def history_length(self) -> int:
        """Return the number of records in history."""
        return len(self.history)

    def already_applied(self, filename: str) -> bool:
        """Return True if the given migration file has already been applied."""
        return self.history.contains(filename)

    def add_record(
        self,
        filename: str,
        migration_type: str,
        name: str,
        applied_at: datetime | None = None,
    ) -> None:
        """Add a record to history without saving it; the time defaults to now."""
        timestamp = applied_at if applied_at is not None else datetime.now(timezone.utc)
        self.history.add(
            filename, Record(type=migration_type, name=name, applied_at=timestamp)
        )