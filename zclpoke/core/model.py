"""Core data models used across codec, orchestrator, snapshot engine, and CLI."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union


class DataType(enum.Enum):
    """Attribute data types with their wire tag and fixed byte width."""

    UINT8 = ("uint8", 0x20, 1)
    UINT16 = ("uint16", 0x21, 2)
    UINT32 = ("uint32", 0x23, 4)
    INT8 = ("int8", 0x28, 1)
    INT16 = ("int16", 0x29, 2)
    INT32 = ("int32", 0x2B, 4)
    BUFFER = ("buffer", 0x41, None)
    STRING = ("string", 0x42, None)

    def __init__(self, type_name: str, tag: int, width: int | None) -> None:
        self.type_name = type_name
        self.tag = tag
        self.width = width

    @property
    def is_numeric(self) -> bool:
        return self.width is not None

    @classmethod
    def lookup(cls, name: str) -> DataType | None:
        key = name.strip().lower()
        key = _TYPE_ALIASES.get(key, key)
        for member in cls:
            if member.type_name == key:
                return member
        return None

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(member.type_name for member in cls)


_TYPE_ALIASES = {"buf": "buffer", "str": "string"}


@dataclass(frozen=True)
class TypedValue:
    type: DataType
    value: int | bytes | str


@dataclass(frozen=True)
class WriteSpec:
    attribute_id: int
    hex_payload: str
    typed: TypedValue


@dataclass(frozen=True)
class MatchRules:
    models: tuple[str, ...]


@dataclass(frozen=True)
class TargetProfile:
    id: str
    name: str
    match: MatchRules
    cluster: str
    manufacturer_code: int | None
    known_attributes: dict[int, str]
    write_history_max: int = 20
    pacing_delay_ms: int = 50


@dataclass(frozen=True)
class ClusterInfo:
    id: int
    name: str | None = None


@dataclass(frozen=True)
class ReadSuccess:
    value: Any


@dataclass(frozen=True)
class ReadEmpty:
    pass


@dataclass(frozen=True)
class ReadFailure:
    message: str
    unsupported: bool = False


ReadOutcome = Union[ReadSuccess, ReadEmpty, ReadFailure]


@dataclass(frozen=True)
class WriteOutcome:
    """Result of a write; read-back success is independent of write success."""

    ok: bool
    error: str | None = None
    readback: str | None = None
    readback_failed: bool = False


class ItemStatus(enum.Enum):
    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class BatchItem:
    key: str
    status: ItemStatus
    line: str
    outcome: ReadOutcome | WriteOutcome | None = None


@dataclass(frozen=True)
class BatchReport:
    """Ordered per-item outcomes of one batch command plus derived counts."""

    kind: str
    header: str
    items: tuple[BatchItem, ...]
    requested: int

    def _count(self, status: ItemStatus) -> int:
        return sum(1 for item in self.items if item.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(ItemStatus.OK)

    @property
    def failed(self) -> int:
        return self._count(ItemStatus.ERROR)

    @property
    def empty(self) -> int:
        return self._count(ItemStatus.EMPTY)

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(item.line for item in self.items)

    @property
    def summary(self) -> str:
        if self.kind == "write":
            return f"{self.header}: {self.succeeded} ok, {self.failed} failed out of {self.requested}"
        return (
            f"{self.header}: {self.succeeded} found, {self.failed} errors, "
            f"{self.empty} empty out of {self.requested}"
        )

    def render(self) -> str:
        return "\n\n".join(part for part in (self.summary, "\n".join(self.lines)) if part)


@dataclass(frozen=True)
class SnapshotEntry:
    attribute_id: int
    raw: Any
    formatted: str


@dataclass(frozen=True)
class SnapshotTable:
    endpoint: int
    start: int
    end: int
    timestamp: str | None
    entries: dict[int, SnapshotEntry] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class DiffEntry:
    attribute_id: int
    label: str
    previous: str
    current: str

    def render(self) -> str:
        return f"changed {self.label}\n    was: {self.previous}\n    now: {self.current}"


@dataclass(frozen=True)
class CompareResult:
    changes: tuple[DiffEntry, ...]
    unchanged: int

    @property
    def summary(self) -> str:
        if self.changes:
            return f"{len(self.changes)} changed, {self.unchanged} unchanged"
        return f"No changes detected ({self.unchanged} attributes unchanged)"

    def render(self) -> str:
        if not self.changes:
            return self.summary
        return "\n\n".join([self.summary, *(change.render() for change in self.changes)])


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: str
    message: str

    def render(self) -> str:
        return f"[{self.timestamp}] {self.message}"


@dataclass(frozen=True)
class ReadResult:
    endpoint: int
    attribute_id: int
    label: str
    outcome: ReadOutcome
    formatted: str | None = None


@dataclass(frozen=True)
class WriteResult:
    endpoint: int
    spec: WriteSpec
    label: str
    outcome: WriteOutcome
    message: str
