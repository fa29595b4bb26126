"""Service layer used by CLI and future UI frontends."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field

from zclpoke.core.batch import BatchOrchestrator, readback_note
from zclpoke.core.client import AttributeClient
from zclpoke.core.codec import attr_hex, attr_key, attr_label, format_value
from zclpoke.core.commands import (
    SNAPSHOT_FORMAT,
    SnapshotCapture,
    SnapshotClear,
    SnapshotCompare,
    SnapshotExport,
    SnapshotImport,
    parse_bulk_write,
    parse_discover,
    parse_read,
    parse_read_list,
    parse_scan,
    parse_snapshot,
    parse_write,
)
from zclpoke.core.errors import EndpointNotFoundError, InvalidFormatError, NoSnapshotError, TargetSelectionError
from zclpoke.core.model import (
    BatchReport,
    ClusterInfo,
    CompareResult,
    ReadFailure,
    ReadResult,
    ReadSuccess,
    SnapshotTable,
    TargetProfile,
    WriteResult,
)
from zclpoke.core.pacing import PacingPolicy, Sleep
from zclpoke.core.reports import ReportListener
from zclpoke.core.rolling_log import REPORT_LOG_MAX, WRITE_HISTORY_MAX, RollingLog
from zclpoke.core.snapshot import Equality, SnapshotEngine, describe_table, export_snapshot, import_snapshot
from zclpoke.core.target_loader import load_targets
from zclpoke.core.target_match import best_target_for_model
from zclpoke.transports.base import Device, Endpoint

_TRUE_VALUES = {"true", "on", "1", "yes"}
_FALSE_VALUES = {"false", "off", "0", "no"}
LOGGER = logging.getLogger(__name__)


@dataclass
class ToolState:
    """Everything operator commands share: selection, display mode, logs, snapshot."""

    endpoint: int = 1
    raw_hex: bool = False
    write_history: RollingLog = field(default_factory=lambda: RollingLog(WRITE_HISTORY_MAX))
    reports: ReportListener = field(default_factory=lambda: ReportListener(RollingLog(REPORT_LOG_MAX)))
    snapshot: SnapshotTable | None = None
    snapshot_export: str | None = None

    @classmethod
    def for_target(cls, target: TargetProfile) -> ToolState:
        return cls(
            write_history=RollingLog(target.write_history_max),
            reports=ReportListener(RollingLog(REPORT_LOG_MAX), target.known_attributes),
        )


def resolve_target(device: Device, targets: dict[str, TargetProfile], target_id: str | None) -> TargetProfile:
    if target_id:
        target = targets.get(target_id)
        if target is None:
            raise TargetSelectionError(f"Unknown target '{target_id}'. Use 'zclpoke targets' to inspect available targets.")
        return target

    target = best_target_for_model(device.model, targets)
    if target is None:
        raise TargetSelectionError(
            f"No target profile matches device model '{device.model}'. Use --target to choose one explicitly."
        )
    return target


def parse_switch(value: object) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise InvalidFormatError(f'Expected on/off, got "{value}"')


class ExplorerService:
    """Operator commands against one target cluster on one device.

    Commands run one at a time; the report listener is the only thing that
    touches state concurrently and it only appends to its own log.
    """

    def __init__(
        self,
        device: Device,
        target: TargetProfile,
        *,
        state: ToolState | None = None,
        sleep: Sleep = asyncio.sleep,
        abort: threading.Event | None = None,
    ) -> None:
        self.device = device
        self.target = target
        self.state = state or ToolState.for_target(target)
        self.client = AttributeClient(target)
        self.orchestrator = BatchOrchestrator(
            self.client,
            PacingPolicy.from_millis(target.pacing_delay_ms),
            known_attributes=target.known_attributes,
            sleep=sleep,
            abort=abort,
        )
        self.snapshots = SnapshotEngine(self.orchestrator)
        self._lock = asyncio.Lock()
        self.load_warnings: tuple[str, ...] = ()
        device.add_report_listener(target.cluster, self.state.reports.on_report)

    @classmethod
    def for_device(cls, device: Device, target_id: str | None = None, **kwargs) -> ExplorerService:
        loaded = load_targets()
        service = cls(device, resolve_target(device, loaded.targets, target_id), **kwargs)
        service.load_warnings = loaded.warnings
        return service

    def label(self, attribute_id: int) -> str:
        return attr_label(attribute_id, self.target.known_attributes)

    def resolve_endpoint(self, endpoint_id: int | None = None) -> Endpoint:
        endpoint_id = self.state.endpoint if endpoint_id is None else endpoint_id
        endpoint = self.device.get_endpoint(endpoint_id)
        if endpoint is None:
            raise EndpointNotFoundError(f"Endpoint {endpoint_id} not found on device")
        return endpoint

    def set_endpoint(self, value: object) -> int:
        text = str(value).strip()
        if not text.isdigit() or int(text) < 1:
            raise InvalidFormatError("Endpoint must be a positive integer")
        self.state.endpoint = int(text)
        LOGGER.info("Endpoint set to %d", self.state.endpoint)
        return self.state.endpoint

    def set_raw_hex(self, value: object) -> bool:
        self.state.raw_hex = parse_switch(value)
        LOGGER.info("Raw hex display: %s", "ON" if self.state.raw_hex else "OFF")
        return self.state.raw_hex

    async def read_attribute(self, text: str) -> ReadResult:
        command = parse_read(text)
        async with self._lock:
            endpoint = self.resolve_endpoint()
            label = self.label(command.attribute_id)
            LOGGER.info("Reading %s on EP%s", label, endpoint.id)
            outcome = await self.client.read_one(endpoint, command.attribute_id)

        formatted = None
        if isinstance(outcome, ReadSuccess):
            formatted = format_value(outcome.value, self.state.raw_hex)
        elif isinstance(outcome, ReadFailure):
            LOGGER.warning("%s: %s", label, outcome.message)
        return ReadResult(endpoint.id, command.attribute_id, label, outcome, formatted)

    async def write_attribute(self, text: str) -> WriteResult:
        spec = parse_write(text).spec
        async with self._lock:
            endpoint = self.resolve_endpoint()
            label = self.label(spec.attribute_id)
            type_name = spec.typed.type.type_name
            LOGGER.info("Writing %s on EP%s: %s as %s", label, endpoint.id, spec.hex_payload, type_name)
            outcome = await self.client.write_with_readback(endpoint, spec.attribute_id, spec.typed, self.state.raw_hex)

        if outcome.ok:
            message = f"OK EP{endpoint.id} Wrote {type_name} to {label}{readback_note(outcome)}"
        else:
            message = f"FAIL EP{endpoint.id} {label}: {outcome.error}"
        self.state.write_history.append(message)
        return WriteResult(endpoint.id, spec, label, outcome, message)

    async def read_list(self, text: str) -> BatchReport:
        command = parse_read_list(text)
        async with self._lock:
            return await self.orchestrator.read_list(self.resolve_endpoint(), command.tokens, self.state.raw_hex)

    async def bulk_write(self, text: str) -> BatchReport:
        command = parse_bulk_write(text)
        async with self._lock:
            return await self.orchestrator.bulk_write(
                self.resolve_endpoint(),
                command.specs,
                self.state.raw_hex,
                self.state.write_history,
            )

    async def scan_range(self, text: str) -> BatchReport:
        command = parse_scan(text)
        async with self._lock:
            return await self.orchestrator.scan_range(
                self.resolve_endpoint(), command.start, command.end, self.state.raw_hex
            )

    async def capture_snapshot(self, start: int, end: int) -> SnapshotTable:
        async with self._lock:
            table = await self.snapshots.capture(self.resolve_endpoint(), start, end, self.state.raw_hex)
        self.state.snapshot = table
        self.state.snapshot_export = None
        return table

    async def compare_snapshot(self, equality: Equality = Equality.FORMATTED) -> CompareResult:
        table = self._require_snapshot('No snapshot stored. Use "snapshot:0515-0530" first.')
        async with self._lock:
            return await self.snapshots.compare(table, self.resolve_endpoint, self.state.raw_hex, equality=equality)

    def export_snapshot(self) -> str:
        table = self._require_snapshot("No snapshot to export. Take one first.")
        text = export_snapshot(table, namespace=self.target.cluster, vendor_qualifier=self.target.manufacturer_code)
        self.state.snapshot_export = text
        LOGGER.info("Snapshot exported (%d attrs, %d bytes)", len(table.entries), len(text))
        return text

    def import_snapshot(self, text: str) -> SnapshotTable:
        table = import_snapshot(text, expected_namespace=self.target.cluster)
        self.state.snapshot = table
        LOGGER.info(
            "Snapshot imported: %d attrs, EP%d, range %s-%s",
            len(table.entries),
            table.endpoint,
            attr_hex(table.start),
            attr_hex(table.end),
        )
        return table

    def clear_snapshot(self) -> None:
        self.state.snapshot = None
        self.state.snapshot_export = None
        LOGGER.info("Snapshot cleared")

    def _require_snapshot(self, message: str) -> SnapshotTable:
        if self.state.snapshot is None:
            raise NoSnapshotError(message)
        return self.state.snapshot

    def discover_clusters(self, text: str) -> str:
        command = parse_discover(text)
        if command.endpoint is not None:
            return _format_clusters(self.resolve_endpoint(command.endpoint))

        endpoints = self.device.endpoints()
        if not endpoints:
            return "No endpoints found on device"
        sections = "\n\n".join(_format_clusters(endpoint) for endpoint in endpoints)
        return f"{len(endpoints)} endpoints found\n\n{sections}"

    def clear_write_history(self) -> None:
        self.state.write_history.clear()
        LOGGER.info("Write history cleared")

    def clear_report_log(self) -> None:
        self.state.reports.clear()
        LOGGER.info("Report log cleared")

    async def snapshot(self, text: str) -> dict[str, str]:
        command = parse_snapshot(text)
        if isinstance(command, SnapshotClear):
            self.clear_snapshot()
            return {"snapshot_result": "Snapshot cleared"}
        if isinstance(command, SnapshotExport):
            exported = self.export_snapshot()
            count = len(self.state.snapshot.entries) if self.state.snapshot else 0
            return {
                "snapshot_result": f"Exported {count} attributes (copy the snapshot_export field)",
                "snapshot_export": exported,
            }
        if isinstance(command, SnapshotImport):
            table = self.import_snapshot(command.text)
            taken = f" (taken {table.timestamp})" if table.timestamp else ""
            summary = (
                f"Imported {len(table.entries)} attrs from EP{table.endpoint} "
                f"{attr_hex(table.start)}-{attr_hex(table.end)}{taken}"
            )
            return {"snapshot_result": _join(summary, describe_table(table, self.target.known_attributes))}
        if isinstance(command, SnapshotCompare):
            return {"snapshot_result": (await self.compare_snapshot()).render()}
        if isinstance(command, SnapshotCapture):
            table = await self.capture_snapshot(command.start, command.end)
            summary = (
                f"EP{table.endpoint} snapshot: {len(table.entries)}/{table.size} attributes captured "
                f"from {attr_hex(table.start)}-{attr_hex(table.end)}"
            )
            return {"snapshot_result": _join(summary, describe_table(table, self.target.known_attributes))}

        raise InvalidFormatError(SNAPSHOT_FORMAT)

    async def handle(self, field_name: str, value: str) -> dict[str, str]:
        """Run one operator field update and return the fields it changes."""
        name = field_name.strip().lower()

        if name == "endpoint":
            return {"endpoint": str(self.set_endpoint(value))}
        if name == "raw_hex":
            return {"raw_hex": "ON" if self.set_raw_hex(value) else "OFF"}
        if name in {"read_attribute", "select_attribute"}:
            return _read_fields(await self.read_attribute(value))
        if name == "read_list":
            return {"read_list_result": (await self.read_list(value)).render()}
        if name == "write_attribute":
            result = await self.write_attribute(value)
            return {"write_result": result.message, "write_history_log": self.state.write_history.display()}
        if name == "bulk_write":
            report = await self.bulk_write(value)
            return {"bulk_write_result": report.render(), "write_history_log": self.state.write_history.display()}
        if name == "scan_range":
            return {"scan_result": (await self.scan_range(value)).render()}
        if name == "snapshot":
            return await self.snapshot(value)
        if name == "discover_clusters":
            return {"cluster_list": self.discover_clusters(value)}
        if name == "clear_write_history":
            self.clear_write_history()
            return {"write_history_log": "History cleared"}
        if name == "clear_report_log":
            self.clear_report_log()
            return {"last_report": "", "report_log_display": "Log cleared"}
        if name == "write_history_log":
            return {"write_history_log": self.state.write_history.display()}
        if name == "report_log":
            return {"last_report": self.state.reports.last_report, "report_log_display": self.state.reports.display()}

        raise InvalidFormatError(f"Unknown field '{field_name}'. Known: {', '.join(FIELDS)}")


FIELDS: tuple[str, ...] = (
    "endpoint",
    "raw_hex",
    "read_attribute",
    "select_attribute",
    "read_list",
    "write_attribute",
    "bulk_write",
    "scan_range",
    "snapshot",
    "discover_clusters",
    "clear_write_history",
    "clear_report_log",
    "write_history_log",
    "report_log",
)


def _join(summary: str, detail: str) -> str:
    return f"{summary}\n\n{detail}" if detail else summary


def _read_fields(result: ReadResult) -> dict[str, str]:
    if isinstance(result.outcome, ReadSuccess):
        return {
            "read_attribute": attr_hex(result.attribute_id),
            "select_attribute": attr_key(result.attribute_id),
            "attribute_value": result.formatted or "",
            "attribute_status": f"OK EP{result.endpoint} {result.label}",
        }
    if isinstance(result.outcome, ReadFailure):
        return {
            "attribute_value": "ERROR",
            "attribute_status": f"FAIL EP{result.endpoint} {result.label}: {result.outcome.message}",
        }
    return {"attribute_value": "No data", "attribute_status": f"{result.label}: No data on EP{result.endpoint}"}


def _cluster_line(cluster: ClusterInfo) -> str:
    name = cluster.name or f"0x{cluster.id:04x}"
    return f"    {name} ({cluster.id})"


def _cluster_section(title: str, clusters: Sequence[ClusterInfo]) -> list[str]:
    if not clusters:
        return [f"  {title} clusters: none"]
    return [f"  {title} clusters ({len(clusters)}):", *(_cluster_line(c) for c in clusters)]


def _format_clusters(endpoint: Endpoint) -> str:
    lines = [f"EP{endpoint.id}:"]
    lines.extend(_cluster_section("Input", endpoint.input_clusters()))
    lines.extend(_cluster_section("Output", endpoint.output_clusters()))
    return "\n".join(lines)

