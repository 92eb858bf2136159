from datetime import datetime, timezone

import pytest

from tfmigrate.controller import (
    Controller,
    load_history,
    load_migration_file_names,
)
from tfmigrate.history import History, HistoryConfig, Record
from tfmigrate.history_file import HistoryFileError, parse_history_file
from tfmigrate.storage import Storage, StorageConfig


class StorageReadError(Exception):
    pass


class StorageWriteError(Exception):
    pass


class MemoryStorage(Storage):
    def __init__(self, data, write_error, read_error):
        self.data = data
        self.write_error = write_error
        self.read_error = read_error

    def write(self, data):
        if self.write_error:
            raise StorageWriteError("failed to write")
        self.data = data.decode("utf-8")

    def read(self):
        if self.read_error:
            raise StorageReadError("failed to read")
        return self.data.encode("utf-8")


class MemoryStorageConfig(StorageConfig):
    def __init__(self, data="", write_error=False, read_error=False):
        self.storage = MemoryStorage(data, write_error, read_error)

    def new_storage(self):
        return self.storage


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def two_records():
    return History(
        {
            "20201012010101_foo.hcl": Record("state", "foo", utc(2020, 10, 13, 1, 2, 3)),
            "20201012020202_foo.hcl": Record("state", "bar", utc(2020, 10, 13, 4, 5, 6)),
        }
    )


HISTORY_JSON = """{
    "version": 1,
    "records": {
        "20201012010101_foo.hcl": {
            "type": "state",
            "name": "foo",
            "applied_at": "2020-10-13T01:02:03Z"
        },
        "20201012020202_foo.hcl": {
            "type": "state",
            "name": "bar",
            "applied_at": "2020-10-13T04:05:06Z"
        }
    }
}"""


@pytest.mark.parametrize(
    "files, want",
    [
        (
            ["20201012010101_foo.hcl", "20201012020202_foo.hcl"],
            ["20201012010101_foo.hcl", "20201012020202_foo.hcl"],
        ),
        (
            ["20201012010101_foo.hcl", "20201012020202_foo.json", "20201012020202_foo.txt"],
            ["20201012010101_foo.hcl", "20201012020202_foo.json"],
        ),
        (
            [
                "20201012010101_foo.hcl",
                "20201012020202_foo.json",
                ".tfmigrate.hcl",
                ".terraform.lock.hcl",
            ],
            ["20201012010101_foo.hcl", "20201012020202_foo.json"],
        ),
        (
            ["20201012020202_foo.hcl", "20201012010101_foo.hcl"],
            ["20201012010101_foo.hcl", "20201012020202_foo.hcl"],
        ),
        ([], []),
    ],
    ids=["hcl", "json", "ignore hidden files", "unsorted", "empty"],
)
def test_load_migration_file_names(tmp_path, files, want):
    for name in files:
        (tmp_path / name).write_bytes(b"")
    assert load_migration_file_names(str(tmp_path)) == want


def test_load_migration_file_names_missing_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_migration_file_names(str(tmp_path / "missing"))


def test_load_history_simple():
    got = load_history(MemoryStorageConfig(data=HISTORY_JSON))
    assert got == two_records()


def test_load_history_empty():
    assert load_history(MemoryStorageConfig(data="")) == History()


def test_load_history_read_error():
    with pytest.raises(StorageReadError):
        load_history(MemoryStorageConfig(data="", read_error=True))


def test_load_history_invalid_format():
    with pytest.raises(HistoryFileError):
        load_history(MemoryStorageConfig(data="foo"))


def test_save_simple():
    config = MemoryStorageConfig()
    controller = Controller(config=HistoryConfig(storage=config), history=History())
    controller.save()
    assert config.storage.data == '{\n    "version": 1,\n    "records": {}\n}'


def test_save_write_error():
    config = MemoryStorageConfig(write_error=True)
    controller = Controller(config=HistoryConfig(storage=config), history=History())
    with pytest.raises(StorageWriteError):
        controller.save()


def test_save_round_trip():
    config = MemoryStorageConfig()
    controller = Controller(config=HistoryConfig(storage=config), history=two_records())
    controller.save()
    assert config.storage.data == HISTORY_JSON
    assert parse_history_file(config.storage.data) == two_records()


@pytest.mark.parametrize(
    "migrations, want",
    [
        (
            [
                "20201012010101_foo.hcl",
                "20201012020202_foo.hcl",
                "20201012030303_foo.hcl",
                "20201012040404_foo.hcl",
            ],
            ["20201012030303_foo.hcl", "20201012040404_foo.hcl"],
        ),
        (["20201012010101_foo.hcl", "20201012020202_foo.hcl"], []),
        (
            [
                "20201012020202_foo.hcl",
                "20201012030303_foo.hcl",
                "20201012040404_foo.hcl",
            ],
            ["20201012030303_foo.hcl", "20201012040404_foo.hcl"],
        ),
    ],
    ids=["simple", "all applied", "ignore a missing migration file include in history"],
)
def test_unapplied_migrations(migrations, want):
    controller = Controller(migrations=migrations, history=two_records())
    assert controller.unapplied_migrations() == want


def test_history_length():
    controller = Controller(
        migrations=[
            "20201012010101_foo.hcl",
            "20201012020202_foo.hcl",
            "20201012030303_foo.hcl",
            "20201012040404_foo.hcl",
        ],
        history=two_records(),
    )
    assert controller.history_length() == 2


@pytest.mark.parametrize(
    "filename, want",
    [("20201012030303_foo.hcl", False), ("20201012020202_foo.hcl", True)],
    ids=["unapplied", "applied"],
)
def test_already_applied(filename, want):
    controller = Controller(
        migrations=[
            "20201012010101_foo.hcl",
            "20201012020202_foo.hcl",
            "20201012030303_foo.hcl",
            "20201012040404_foo.hcl",
        ],
        history=two_records(),
    )
    assert controller.already_applied(filename) is want


def test_add_record():
    history = two_records()
    controller = Controller(history=history)
    controller.add_record(
        "20201012030303_foo.hcl", "multi_state", "baz", utc(2020, 10, 13, 7, 8, 9)
    )
    want = History(
        {
            "20201012010101_foo.hcl": Record("state", "foo", utc(2020, 10, 13, 1, 2, 3)),
            "20201012020202_foo.hcl": Record("state", "bar", utc(2020, 10, 13, 4, 5, 6)),
            "20201012030303_foo.hcl": Record(
                "multi_state", "baz", utc(2020, 10, 13, 7, 8, 9)
            ),
        }
    )
    assert history == want


def test_add_record_defaults_to_now():
    controller = Controller()
    before = datetime.now(timezone.utc)
    controller.add_record("a.hcl", "state", "a")
    after = datetime.now(timezone.utc)
    applied_at = controller.history.records["a.hcl"].applied_at
    assert before <= applied_at <= after


def test_load_controller(tmp_path):
    migration_dir = tmp_path / "migrations"
    migration_dir.mkdir()
    for name in (
        "20201012010101_foo.hcl",
        "20201012020202_foo.hcl",
        "20201012030303_foo.hcl",
        "README.md",
    ):
        (migration_dir / name).write_text("")
    config = HistoryConfig(storage=MemoryStorageConfig(data=HISTORY_JSON))
    controller = Controller.load(str(migration_dir), config)
    assert controller.migrations == [
        "20201012010101_foo.hcl",
        "20201012020202_foo.hcl",
        "20201012030303_foo.hcl",
    ]
    assert controller.history_length() == 2
    assert controller.unapplied_migrations() == ["20201012030303_foo.hcl"]