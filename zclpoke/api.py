"""Stable public API for building tooling on top of zclpoke.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

import asyncio
import threading

from zclpoke.core.errors import (
    DeviceFileError,
    EndpointNotFoundError,
    InvalidFormatError,
    LimitExceededError,
    NoSnapshotError,
    TargetLoadError,
    TargetSelectionError,
    TargetValidationError,
    TransportError,
    TransportTimeoutError,
    UnknownTypeError,
    UnsupportedAttributeError,
    ZclpokeError,
)
from zclpoke.core.model import (
    BatchReport,
    CompareResult,
    DataType,
    DiffEntry,
    HistoryEntry,
    ReadResult,
    SnapshotTable,
    TargetProfile,
    TypedValue,
    WriteResult,
)
from zclpoke.core.pacing import Sleep
from zclpoke.core.service import ExplorerService, ToolState
from zclpoke.core.snapshot import Equality
from zclpoke.transports.base import Device, Endpoint

__all__ = [
    "ZclpokeError",
    "DeviceFileError",
    "EndpointNotFoundError",
    "InvalidFormatError",
    "LimitExceededError",
    "NoSnapshotError",
    "TargetLoadError",
    "TargetSelectionError",
    "TargetValidationError",
    "TransportError",
    "TransportTimeoutError",
    "UnknownTypeError",
    "UnsupportedAttributeError",
    "BatchReport",
    "CompareResult",
    "DataType",
    "DiffEntry",
    "HistoryEntry",
    "ReadResult",
    "SnapshotTable",
    "TargetProfile",
    "TypedValue",
    "WriteResult",
    "Equality",
    "Device",
    "Endpoint",
    "ToolState",
    "Client",
]


class Client:
    """Public async client for exploring one target cluster on one device.

    A `Client` wraps target resolution, the shared tool state, and every
    operator command behind a stable API intended for third-party tools
    (GUI/TUI/services/scripts). Set `abort` from another thread to stop a
    long scan after the item in flight.
    """

    def __init__(
        self,
        device: Device,
        *,
        target_id: str | None = None,
        target: TargetProfile | None = None,
        state: ToolState | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.abort = threading.Event()
        if target is not None:
            self._service = ExplorerService(device, target, state=state, sleep=sleep, abort=self.abort)
        else:
            self._service = ExplorerService.for_device(
                device, target_id, state=state, sleep=sleep, abort=self.abort
            )

    @property
    def target(self) -> TargetProfile:
        return self._service.target

    @property
    def state(self) -> ToolState:
        return self._service.state

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def set_endpoint(self, endpoint: int) -> None:
        self._service.set_endpoint(endpoint)

    def set_raw_hex(self, enabled: bool) -> None:
        self._service.set_raw_hex(enabled)

    async def read(self, attribute: str) -> ReadResult:
        return await self._service.read_attribute(attribute)

    async def write(self, spec: str) -> WriteResult:
        return await self._service.write_attribute(spec)

    async def read_list(self, ids: str) -> BatchReport:
        return await self._service.read_list(ids)

    async def bulk_write(self, specs: str) -> BatchReport:
        return await self._service.bulk_write(specs)

    async def scan(self, attribute_range: str) -> BatchReport:
        return await self._service.scan_range(attribute_range)

    async def snapshot(self, start: int, end: int) -> SnapshotTable:
        return await self._service.capture_snapshot(start, end)

    async def compare(self, *, equality: Equality = Equality.FORMATTED) -> CompareResult:
        return await self._service.compare_snapshot(equality)

    def export_snapshot(self) -> str:
        return self._service.export_snapshot()

    def import_snapshot(self, text: str) -> SnapshotTable:
        return self._service.import_snapshot(text)

    def clear_snapshot(self) -> None:
        self._service.clear_snapshot()

    def discover_clusters(self, which: str = "all") -> str:
        return self._service.discover_clusters(which)

    def write_history(self) -> tuple[HistoryEntry, ...]:
        return self.state.write_history.entries()

    def report_log(self) -> tuple[HistoryEntry, ...]:
        return self.state.reports.log.entries()

    def clear_write_history(self) -> None:
        self._service.clear_write_history()

    def clear_report_log(self) -> None:
        self._service.clear_report_log()

    async def handle(self, field: str, value: str) -> dict[str, str]:
        return await self._service.handle(field, value)
