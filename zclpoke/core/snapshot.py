"""Snapshot capture, comparison, and JSON export/import.

The engine keeps no state of its own: a captured `SnapshotTable` belongs to
the caller, and discarding a snapshot is just dropping that reference.
"""

from __future__ import annotations

import enum
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from jsonschema import ValidationError

from zclpoke.core.batch import BatchOrchestrator, check_range
from zclpoke.core.codec import attr_hex, attr_key, attr_label, format_value
from zclpoke.core.errors import InvalidFormatError
from zclpoke.core.model import (
    CompareResult,
    DiffEntry,
    ReadFailure,
    ReadSuccess,
    SnapshotEntry,
    SnapshotTable,
)
from zclpoke.core.rolling_log import now_timestamp
from zclpoke.core.schema import describe_error, load_validator
from zclpoke.transports.base import Endpoint

LOGGER = logging.getLogger(__name__)


class Equality(enum.Enum):
    """How compare decides that an attribute is unchanged.

    FORMATTED compares display text, so comparing under a different raw-hex
    setting than the capture reports every attribute as changed.
    """

    FORMATTED = "formatted"
    RAW = "raw"


def encode_raw(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return {"type": "buffer", "hex": bytes(value).hex()}
    if isinstance(value, (list, tuple)):
        return [encode_raw(item) for item in value]
    if isinstance(value, Mapping):
        return {key: encode_raw(item) for key, item in value.items()}
    return value


def decode_raw(value: Any) -> Any:
    if isinstance(value, dict):
        if value.get("type") == "buffer" and isinstance(value.get("hex"), str):
            try:
                return bytes.fromhex(value["hex"])
            except ValueError as exc:
                raise InvalidFormatError(f"Invalid buffer hex in snapshot: {exc}") from exc
        # Node.js Buffer JSON, as written by older exports.
        if value.get("type") == "Buffer" and isinstance(value.get("data"), list):
            return bytes(value["data"])
        return {key: decode_raw(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_raw(item) for item in value]
    return value


class SnapshotEngine:
    def __init__(self, orchestrator: BatchOrchestrator) -> None:
        self.orchestrator = orchestrator

    def label(self, attribute_id: int) -> str:
        return self.orchestrator.label(attribute_id)

    async def capture(self, endpoint: Endpoint, start: int, end: int, raw_hex: bool) -> SnapshotTable:
        count = check_range(start, end)
        LOGGER.info("Snapshotting %s-%s (%d attrs) on EP%s", attr_hex(start), attr_hex(end), count, endpoint.id)

        entries: dict[int, SnapshotEntry] = {}
        for attribute_id, outcome in await self.orchestrator.read_ids(endpoint, range(start, end + 1)):
            if not isinstance(outcome, ReadSuccess):
                continue
            formatted = format_value(outcome.value, raw_hex)
            entries[attribute_id] = SnapshotEntry(attribute_id, outcome.value, formatted)
            LOGGER.info("%s = %s", self.label(attribute_id), formatted)

        return SnapshotTable(
            endpoint=endpoint.id,
            start=start,
            end=end,
            timestamp=now_timestamp(),
            entries=entries,
        )

    async def compare(
        self,
        table: SnapshotTable,
        resolve_endpoint: Callable[[int], Endpoint],
        raw_hex: bool,
        *,
        equality: Equality = Equality.FORMATTED,
    ) -> CompareResult:
        endpoint = resolve_endpoint(table.endpoint)
        LOGGER.info(
            "Comparing snapshot %s-%s on EP%s", attr_hex(table.start), attr_hex(table.end), table.endpoint
        )

        changes: list[DiffEntry] = []
        unchanged = 0
        for attribute_id, outcome in await self.orchestrator.read_ids(endpoint, range(table.start, table.end + 1)):
            previous = table.entries.get(attribute_id)
            label = self.label(attribute_id)

            if isinstance(outcome, ReadSuccess):
                current = format_value(outcome.value, raw_hex)
                if previous is None:
                    changes.append(DiffEntry(attribute_id, label, "absent", current))
                elif _same(previous, outcome.value, current, equality):
                    unchanged += 1
                else:
                    changes.append(DiffEntry(attribute_id, label, previous.formatted, current))
            elif previous is None:
                continue
            elif isinstance(outcome, ReadFailure):
                changes.append(DiffEntry(attribute_id, label, previous.formatted, f"ERROR: {outcome.message}"))
            else:
                changes.append(DiffEntry(attribute_id, label, previous.formatted, "no data"))

        for change in changes:
            LOGGER.info("CHANGED %s: %s -> %s", change.label, change.previous, change.current)
        result = CompareResult(changes=tuple(changes), unchanged=unchanged)
        LOGGER.info("Compare result: %s", result.summary)
        return result


def _same(previous: SnapshotEntry, value: Any, formatted: str, equality: Equality) -> bool:
    if equality is Equality.RAW:
        return encode_raw(previous.raw) == encode_raw(value)
    return previous.formatted == formatted


def describe_table(table: SnapshotTable, known: Mapping[int, str] | None = None) -> str:
    return "\n".join(
        f"  {attr_label(attribute_id, known)} = {entry.formatted}"
        for attribute_id, entry in sorted(table.entries.items())
    )


def export_snapshot(table: SnapshotTable, *, namespace: str, vendor_qualifier: int | None) -> str:
    document = {
        "namespace": namespace,
        "vendorQualifier": vendor_qualifier,
        "endpoint": table.endpoint,
        "rangeStart": table.start,
        "rangeEnd": table.end,
        "timestamp": table.timestamp,
        "entries": {
            attr_key(attribute_id): {"raw": encode_raw(entry.raw), "formatted": entry.formatted}
            for attribute_id, entry in sorted(table.entries.items())
        },
    }
    return json.dumps(document)


def import_snapshot(text: str, *, expected_namespace: str | None = None) -> SnapshotTable:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidFormatError(f"Invalid JSON: {exc}") from exc

    try:
        load_validator("snapshot").validate(document)
    except ValidationError as exc:
        raise InvalidFormatError(
            "Invalid snapshot format. Expected {entries, rangeStart, rangeEnd, endpoint}"
            + describe_error(exc)
        ) from exc

    start = int(document["rangeStart"])
    end = int(document["rangeEnd"])
    if start > end:
        raise InvalidFormatError(f"Start ({attr_hex(start)}) must be <= end ({attr_hex(end)})")

    namespace = document.get("namespace", document.get("cluster"))
    if expected_namespace and namespace and namespace != expected_namespace:
        LOGGER.warning("Snapshot was taken on cluster '%s', not '%s'", namespace, expected_namespace)

    raw_entries = document["entries"] if "entries" in document else document["attributes"]
    entries: dict[int, SnapshotEntry] = {}
    for key, item in raw_entries.items():
        attribute_id = int(key, 16)
        if not start <= attribute_id <= end:
            raise InvalidFormatError(
                f"Snapshot entry {attr_hex(attribute_id)} lies outside {attr_hex(start)}-{attr_hex(end)}"
            )
        entries[attribute_id] = SnapshotEntry(attribute_id, decode_raw(item.get("raw")), item["formatted"])

    return SnapshotTable(
        endpoint=int(document.get("endpoint") or 1),
        start=start,
        end=end,
        timestamp=document.get("timestamp"),
        entries=entries,
    )
