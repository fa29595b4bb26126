"""Paced batch reads, range scans, and bulk writes with per-item outcomes."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable, Mapping, Sequence

from zclpoke.core.client import AttributeClient
from zclpoke.core.codec import attr_hex, attr_label, attr_key, format_value, parse_attribute_id
from zclpoke.core.errors import InvalidFormatError, LimitExceededError
from zclpoke.core.model import (
    BatchItem,
    BatchReport,
    HistoryEntry,
    ItemStatus,
    ReadFailure,
    ReadOutcome,
    ReadSuccess,
    WriteOutcome,
    WriteSpec,
)
from zclpoke.core.pacing import PacingPolicy, Sleep, run_paced
from zclpoke.core.rolling_log import RollingLog, now_timestamp
from zclpoke.core.write_spec import parse_write_spec
from zclpoke.transports.base import Endpoint

MAX_LIST_READ = 64
MAX_RANGE_SCAN = 128
MAX_BULK_WRITE = 32
LOGGER = logging.getLogger(__name__)


def check_range(start: int, end: int, *, limit: int = MAX_RANGE_SCAN) -> int:
    if start > end:
        raise InvalidFormatError(f"Start ({attr_hex(start)}) must be <= end ({attr_hex(end)})")
    count = end - start + 1
    if count > limit:
        raise LimitExceededError(f"Range too large ({count} attrs). Max {limit}.")
    return count


def readback_note(outcome: WriteOutcome) -> str:
    if outcome.readback is not None:
        return f" -> read-back: {outcome.readback}"
    if outcome.readback_failed:
        return " -> read-back failed (write-only?)"
    return ""


def read_item_line(label: str, outcome: ReadOutcome, raw_hex: bool) -> tuple[ItemStatus, str]:
    if isinstance(outcome, ReadSuccess):
        return ItemStatus.OK, f"{label} = {format_value(outcome.value, raw_hex)}"
    if isinstance(outcome, ReadFailure):
        message = "unsupported" if outcome.unsupported else outcome.message
        return ItemStatus.ERROR, f"{label}: {message}"
    return ItemStatus.EMPTY, f"{label}: No data"


class BatchOrchestrator:
    def __init__(
        self,
        client: AttributeClient,
        policy: PacingPolicy | None = None,
        *,
        known_attributes: Mapping[int, str] | None = None,
        sleep: Sleep = asyncio.sleep,
        abort: threading.Event | None = None,
    ) -> None:
        self.client = client
        self.policy = policy or PacingPolicy()
        self.known_attributes = dict(known_attributes or {})
        self.sleep = sleep
        self.abort = abort

    def label(self, attribute_id: int) -> str:
        return attr_label(attribute_id, self.known_attributes)

    async def _paced(self, items: Sequence[object], step: Callable[[object], Awaitable[BatchItem]]) -> list[BatchItem]:
        done = await run_paced(items, step, self.policy, sleep=self.sleep, abort=self.abort)
        for item in items[len(done):]:
            key = attr_key(item) if isinstance(item, int) else str(item)
            done.append(BatchItem(key=key, status=ItemStatus.ERROR, line=f"{key}: aborted"))
        return done

    async def read_ids(self, endpoint: Endpoint, attribute_ids: Sequence[int]) -> list[tuple[int, ReadOutcome]]:
        """Paced single reads with no formatting; shared with the snapshot engine."""

        async def step(attribute_id: int) -> tuple[int, ReadOutcome]:
            return attribute_id, await self.client.read_one(endpoint, attribute_id)

        return await run_paced(attribute_ids, step, self.policy, sleep=self.sleep, abort=self.abort)

    async def _read_token(self, endpoint: Endpoint, token: object, raw_hex: bool) -> BatchItem:
        if isinstance(token, int):
            attribute_id = token
        else:
            try:
                attribute_id = parse_attribute_id(str(token))
            except InvalidFormatError:
                LOGGER.warning("Skipping invalid attribute token %r", token)
                return BatchItem(key=str(token), status=ItemStatus.ERROR, line=f'"{token}": invalid hex')

        label = self.label(attribute_id)
        outcome = await self.client.read_one(endpoint, attribute_id)
        status, line = read_item_line(label, outcome, raw_hex)
        if status is ItemStatus.OK:
            LOGGER.info("EP%s %s", endpoint.id, line)
        return BatchItem(key=attr_key(attribute_id), status=status, line=line, outcome=outcome)

    async def read_list(self, endpoint: Endpoint, tokens: Sequence[str], raw_hex: bool) -> BatchReport:
        if not tokens:
            raise InvalidFormatError('Provide comma-separated hex IDs, e.g. "0515,0516,0517"')
        if len(tokens) > MAX_LIST_READ:
            raise LimitExceededError(f"Too many attributes ({len(tokens)}). Max {MAX_LIST_READ}.")

        LOGGER.info("Batch reading %d attributes on EP%s", len(tokens), endpoint.id)
        items = await self._paced(list(tokens), lambda token: self._read_token(endpoint, token, raw_hex))
        report = BatchReport(kind="read", header=f"EP{endpoint.id} batch", items=tuple(items), requested=len(tokens))
        LOGGER.info(report.summary)
        return report

    async def scan_range(self, endpoint: Endpoint, start: int, end: int, raw_hex: bool) -> BatchReport:
        count = check_range(start, end)
        LOGGER.info("Scanning %s-%s (%d attrs) on EP%s", attr_hex(start), attr_hex(end), count, endpoint.id)

        ids = list(range(start, end + 1))
        items = await self._paced(ids, lambda attribute_id: self._read_token(endpoint, attribute_id, raw_hex))
        report = BatchReport(
            kind="read",
            header=f"EP{endpoint.id} scan {attr_hex(start)}-{attr_hex(end)}",
            items=tuple(items),
            requested=count,
        )
        LOGGER.info(report.summary)
        return report

    async def _write_token(
        self,
        endpoint: Endpoint,
        token: str,
        raw_hex: bool,
        entries: list[HistoryEntry],
    ) -> BatchItem:
        try:
            spec: WriteSpec = parse_write_spec(token)
        except InvalidFormatError as exc:
            item = BatchItem(key=token, status=ItemStatus.ERROR, line=f'FAIL "{token}": {exc}')
        else:
            label = self.label(spec.attribute_id)
            outcome = await self.client.write_with_readback(endpoint, spec.attribute_id, spec.typed, raw_hex)
            if outcome.ok:
                line = f"OK {label} <- {spec.typed.type.type_name}:{spec.hex_payload}{readback_note(outcome)}"
                status = ItemStatus.OK
            else:
                line = f"FAIL {label}: {outcome.error}"
                status = ItemStatus.ERROR
            item = BatchItem(key=attr_key(spec.attribute_id), status=status, line=line, outcome=outcome)

        if item.status is ItemStatus.OK:
            LOGGER.info(item.line)
        else:
            LOGGER.warning(item.line)
        entries.append(HistoryEntry(timestamp=now_timestamp(), message=f"EP{endpoint.id} {item.line}"))
        return item

    async def bulk_write(
        self,
        endpoint: Endpoint,
        specs: Sequence[str],
        raw_hex: bool,
        history: RollingLog | None = None,
    ) -> BatchReport:
        if not specs:
            raise InvalidFormatError('Provide comma-separated writes, e.g. "0515:0a,0516:ff"')
        if len(specs) > MAX_BULK_WRITE:
            raise LimitExceededError(f"Too many writes ({len(specs)}). Max {MAX_BULK_WRITE}.")

        LOGGER.info("Bulk writing %d attributes on EP%s", len(specs), endpoint.id)
        entries: list[HistoryEntry] = []
        items = await self._paced(list(specs), lambda token: self._write_token(endpoint, token, raw_hex, entries))
        if history is not None:
            history.extend(entries)

        report = BatchReport(kind="write", header=f"EP{endpoint.id} bulk write", items=tuple(items), requested=len(specs))
        LOGGER.info(report.summary)
        return report
