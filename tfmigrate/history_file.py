"""Persistent JSON format of the migration history."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from .history import History, Record

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)


class HistoryFileError(ValueError):
    """Raised when a history file cannot be parsed."""


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "+" if offset > timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(value: Any) -> datetime:
    if value is None:
        return _ZERO_TIME
    if not isinstance(value, str):
        raise HistoryFileError(f"invalid timestamp: {value!r}")
    match = _TIME_RE.match(value)
    if match is None:
        raise HistoryFileError(f"invalid timestamp: {value!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction, zone = match.group(7), match.group(8)
    microsecond = int(fraction[1:7].ljust(6, "0")) if fraction else 0
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        delta = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
        tz = timezone.utc if not delta else timezone(sign * delta)
    try:
        return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)
    except ValueError as exc:
        raise HistoryFileError(f"invalid timestamp: {value!r}") from exc


def _load_json(data: bytes | str) -> Any:
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HistoryFileError(f"failed to parse history file: {exc}") from exc


def _expect_str(value: Any, key: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise HistoryFileError(f"invalid value for {key}: {value!r}")
    return value


@dataclass(frozen=True)
class RecordV1:
    """An applied migration log entry in format v1."""

    type: str
    name: str
    applied_at: datetime

    @classmethod
    def from_record(cls, record: Record) -> RecordV1:
        return cls(type=record.type, name=record.name, applied_at=record.applied_at)

    def to_record(self) -> Record:
        return Record(type=self.type, name=self.name, applied_at=self.applied_at)

    def to_json(self) -> dict[str, str]:
        return {
            "type": self.type,
            "name": self.name,
            "applied_at": _format_time(self.applied_at),
        }

    @classmethod
    def from_json(cls, obj: Any) -> RecordV1:
        if obj is None:
            obj = {}
        if not isinstance(obj, dict):
            raise HistoryFileError(f"invalid record: {obj!r}")
        return cls(
            type=_expect_str(obj.get("type"), "type"),
            name=_expect_str(obj.get("name"), "name"),
            applied_at=_parse_time(obj.get("applied_at")),
        )


@dataclass
class FileV1:
    """History file format v1."""

    version: int = 1
    records: dict[str, RecordV1] = field(default_factory=dict)

    @classmethod
    def from_history(cls, history: History) -> FileV1:
        """Build a v1 file from a History."""
        records = {k: RecordV1.from_record(v) for k, v in history.records.items()}
        return cls(version=1, records=records)

    def serialize(self) -> bytes:
        """Encode as indented JSON."""
        doc = {
            "version": self.version,
            "records": {k: self.records[k].to_json() for k in sorted(self.records)},
        }
        text = json.dumps(doc, indent=4, ensure_ascii=False)
        text = (
            text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")
        )
        return text.encode("utf-8")

    def to_history(self) -> History:
        """Convert to a History."""
        return History({k: v.to_record() for k, v in self.records.items()})


def _detect_version(data: bytes | str) -> int:
    doc = _load_json(data)
    if doc is None:
        return 0
    if not isinstance(doc, dict):
        raise HistoryFileError("history file must be a JSON object")
    version = doc.get("version", 0)
    if version is None:
        return 0
    if isinstance(version, bool) or not isinstance(version, int):
        raise HistoryFileError(f"invalid history file version: {version!r}")
    return version


def parse_history_file(data: bytes | str) -> History:
    """Parse a history file of any known version."""
    version = _detect_version(data)
    if version == 1:
        return parse_history_file_v1(data)
    raise HistoryFileError(f"unknown history file version: {version}")


def parse_history_file_v1(data: bytes | str) -> History:
    """Parse a history file in format v1."""
    doc = _load_json(data)
    if doc is None:
        return History()
    if not isinstance(doc, dict):
        raise HistoryFileError("history file must be a JSON object")
    raw_records = doc.get("records") or {}
    if not isinstance(raw_records, dict):
        raise HistoryFileError("records must be a JSON object")
    version = doc.get("version", 0)
    records = {k: RecordV1.from_json(v) for k, v in raw_records.items()}
    return FileV1(version=version, records=records).to_history()