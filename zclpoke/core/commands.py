"""Operator command grammars, decoded once into tagged command values.

Grammars:
  read_attribute      "ATTR"
  write_attribute     "ATTR:VALUE" | "ATTR:TYPE:VALUE"
  read_list           "ID,ID,ID"
  bulk_write          "ATTR:VALUE,ATTR:TYPE:VALUE,..."
  scan_range          "START-END"
  snapshot            "snapshot:START-END" | "compare" | "export" | "import:<json>" | "clear"
  discover_clusters   "all" | endpoint number
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from zclpoke.core.codec import parse_attribute_id
from zclpoke.core.errors import InvalidFormatError
from zclpoke.core.model import WriteSpec
from zclpoke.core.write_spec import parse_write_spec

SNAPSHOT_FORMAT = 'Format: "snapshot:START-END", "compare", "export", "import:{json}", or "clear"'


@dataclass(frozen=True)
class ReadOne:
    attribute_id: int


@dataclass(frozen=True)
class WriteOne:
    spec: WriteSpec


@dataclass(frozen=True)
class BatchRead:
    tokens: tuple[str, ...]


@dataclass(frozen=True)
class BulkWrite:
    specs: tuple[str, ...]


@dataclass(frozen=True)
class Scan:
    start: int
    end: int


@dataclass(frozen=True)
class SnapshotCapture:
    start: int
    end: int


@dataclass(frozen=True)
class SnapshotCompare:
    pass


@dataclass(frozen=True)
class SnapshotExport:
    pass


@dataclass(frozen=True)
class SnapshotImport:
    text: str


@dataclass(frozen=True)
class SnapshotClear:
    pass


@dataclass(frozen=True)
class DiscoverClusters:
    endpoint: int | None


SnapshotCommand = Union[SnapshotCapture, SnapshotCompare, SnapshotExport, SnapshotImport, SnapshotClear]


def _split_list(text: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in str(text).split(",") if part.strip())


def parse_read(text: str) -> ReadOne:
    return ReadOne(parse_attribute_id(str(text).strip()))


def parse_write(text: str) -> WriteOne:
    return WriteOne(parse_write_spec(text))


def parse_read_list(text: str) -> BatchRead:
    # Tokens are validated per item so one bad id does not sink the batch.
    return BatchRead(_split_list(text))


def parse_bulk_write(text: str) -> BulkWrite:
    return BulkWrite(_split_list(text))


def parse_range(text: str) -> tuple[int, int]:
    trimmed = str(text).strip()
    if trimmed[:2].lower() == "0x":
        trimmed = trimmed[2:]
    parts = trimmed.split("-")
    if len(parts) != 2:
        raise InvalidFormatError('Format: "START-END" (e.g. "0515-0530")')
    try:
        return parse_attribute_id(parts[0]), parse_attribute_id(parts[1])
    except InvalidFormatError as exc:
        raise InvalidFormatError(f'Invalid range: "{text}"') from exc


def parse_scan(text: str) -> Scan:
    return Scan(*parse_range(text))


def parse_snapshot(text: str) -> SnapshotCommand:
    trimmed = str(text).strip()
    lowered = trimmed.lower()
    if lowered == "clear":
        return SnapshotClear()
    if lowered == "export":
        return SnapshotExport()
    if lowered == "compare":
        return SnapshotCompare()
    if lowered.startswith("import:"):
        return SnapshotImport(trimmed[len("import:"):])
    if lowered.startswith("snapshot:"):
        return SnapshotCapture(*parse_range(trimmed[len("snapshot:"):]))
    raise InvalidFormatError(SNAPSHOT_FORMAT)


def parse_discover(text: str) -> DiscoverClusters:
    trimmed = str(text).strip().lower()
    if trimmed == "all":
        return DiscoverClusters(endpoint=None)
    if not trimmed.isdigit() or int(trimmed) < 1:
        raise InvalidFormatError('Value: "all" or endpoint number (e.g. "1", "2")')
    return DiscoverClusters(endpoint=int(trimmed))
