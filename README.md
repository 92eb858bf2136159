# tfmigrate

Keeps track of which Terraform state migrations have been applied.

A migration directory holds one file per migration. The files are named so
that sorting the names gives the order in which they run, for example
`20201109000001_rename_sg.hcl`. Files that do not end in `.hcl` or `.json`
are ignored. Hidden files such as `.tfmigrate.hcl` are ignored as well.

Once a migration succeeds, it is recorded in a history. The history is stored
as a small JSON document in a storage backend.

## Modules

- `tfmigrate.history`: `Record`, `History` and `HistoryConfig`.
- `tfmigrate.history_file`: the JSON history format. This module holds
  `FileV1`, `RecordV1`, `parse_history_file`, `parse_history_file_v1` and
  `HistoryFileError`.
- `tfmigrate.storage`: the storage backends. This module holds the abstract
  `Storage` and `StorageConfig` and the local-file backend `LocalStorage` and
  `LocalStorageConfig`.
- `tfmigrate.controller`: `Controller`, `load_migration_file_names` and
  `load_history`.

## Working with history

```python
from tfmigrate.controller import Controller
from tfmigrate.history import HistoryConfig
from tfmigrate.storage import LocalStorageConfig

config = HistoryConfig(storage=LocalStorageConfig(path="tmp/history.json"))
controller = Controller.load("tfmigrate", config)

for filename in controller.unapplied_migrations():
    # ... run the migration ...
    controller.add_record(filename, "state", "rename_sg", None)

controller.save()
```

- `Controller.load(migration_dir, config)` does two things:
  - It lists the migration files with `load_migration_file_names`.
  - It reads the history from `config.storage` with `load_history`. If the
    storage holds nothing yet, the controller starts with an empty history.
- `unapplied_migrations()` returns, in name order, the files that have no
  record in the history.
- `already_applied(filename)` tells whether a file has been recorded.
- `history_length()` counts the records.
- `add_record(filename, migration_type, name, applied_at)` adds or replaces a
  record. When `applied_at` is `None`, the record gets the current UTC time.
- `save()` writes the history back to storage. Nothing is persisted until
  `save()` is called. `save()` raises `ValueError` when the controller has no
  configuration.

`History` can also be used on its own:

- `add`, `contains`, `delete` and `clear` change or query the records.
- `len(history)` counts the records.
- `filename in history` tells whether a file has a record.
- Iterating over a history yields the file names.
- `records` is a read-only view of the records.

## Storage

`LocalStorageConfig(path).new_storage()` returns a `LocalStorage` for a file.
The path is relative to the current directory.

- `read()` returns empty bytes if the file does not exist.
- `write()` replaces the contents of the file. It fails if the directory of
  the file does not exist.

To keep the history elsewhere, subclass `Storage`, implementing `read()` and
`write(data)`. Then subclass `StorageConfig`, implementing `new_storage()`.

## History file format

```json
{
    "version": 1,
    "records": {
        "20201012010101_foo.hcl": {
            "type": "state",
            "name": "foo",
            "applied_at": "2020-10-13T01:02:03Z"
        }
    }
}
```

- `parse_history_file(data)` reads this format into a `History`. It accepts
  bytes or str. It raises `HistoryFileError` for broken JSON, a bad
  timestamp, or an unknown version.
- `FileV1.from_history(history).serialize()` writes the format back as UTF-8
  bytes, with these properties:
  - It is indented by four spaces.
  - Its records are sorted by file name.
  - Its timestamps are in RFC 3339 form, with UTC written as `Z`.
  - A timestamp without a time zone is taken to be UTC.

## What this package does not do

- It does not read an HCL configuration file. Build a `HistoryConfig` in
  Python instead.
- It stores history only in local files, unless you supply your own `Storage`.
  It ships no cloud object store backend.
- It does not plan or apply migrations.
- It provides no command-line program.