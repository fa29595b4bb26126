from __future__ import annotations

import asyncio
import threading

import pytest

from zclpoke.core.batch import BatchOrchestrator
from zclpoke.core.client import AttributeClient
from zclpoke.core.errors import InvalidFormatError, LimitExceededError
from zclpoke.core.model import ItemStatus
from zclpoke.core.pacing import PacingPolicy
from zclpoke.core.rolling_log import RollingLog


def _orchestrator(target, sleep, abort=None) -> BatchOrchestrator:
    return BatchOrchestrator(
        AttributeClient(target),
        PacingPolicy(0.05),
        known_attributes=target.known_attributes,
        sleep=sleep,
        abort=abort,
    )


def test_scan_counts_found_errors_and_empty(device, target, sleep) -> None:
    report = asyncio.run(_orchestrator(target, sleep).scan_range(device.get_endpoint(1), 0x0515, 0x0517, False))

    assert (report.succeeded, report.failed, report.empty, report.requested) == (2, 1, 0, 3)
    assert report.summary == "EP1 scan 0x0515-0x0517: 2 found, 1 errors, 0 empty out of 3"
    assert report.lines == (
        "0x0515 (Mode) = 10 (0xA)",
        "0x0516 (Unknown) = 300 (0x12C, bytes: [0x01, 0x2C])",
        "0x0517 (Unknown): unsupported",
    )
    assert sleep.calls == [0.05, 0.05]


def test_scan_of_exactly_128_ids_issues_128_requests(device, target, sleep) -> None:
    endpoint = device.get_endpoint(1)
    report = asyncio.run(_orchestrator(target, sleep).scan_range(endpoint, 0x0600, 0x067F, True))

    assert report.requested == 128
    assert report.empty == 128
    assert len(endpoint.requests) == 128
    assert len(sleep.calls) == 127


def test_scan_over_cap_is_rejected_before_sending(device, target, sleep) -> None:
    endpoint = device.get_endpoint(1)
    with pytest.raises(LimitExceededError):
        asyncio.run(_orchestrator(target, sleep).scan_range(endpoint, 0x0600, 0x0680, True))
    assert endpoint.requests == []


def test_scan_with_reversed_bounds_is_rejected(device, target, sleep) -> None:
    with pytest.raises(InvalidFormatError):
        asyncio.run(_orchestrator(target, sleep).scan_range(device.get_endpoint(1), 0x0517, 0x0515, True))


def test_list_read_of_65_ids_fails_without_requests(device, target, sleep) -> None:
    endpoint = device.get_endpoint(1)
    tokens = [f"{0x0600 + i:04x}" for i in range(65)]
    with pytest.raises(LimitExceededError):
        asyncio.run(_orchestrator(target, sleep).read_list(endpoint, tokens, False))
    assert endpoint.requests == []


def test_list_read_keeps_order_duplicates_and_bad_tokens(device, target, sleep) -> None:
    endpoint = device.get_endpoint(1)
    report = asyncio.run(
        _orchestrator(target, sleep).read_list(endpoint, ["0515", "zz", "0600", "0515"], True)
    )

    assert [item.status for item in report.items] == [
        ItemStatus.OK,
        ItemStatus.ERROR,
        ItemStatus.EMPTY,
        ItemStatus.OK,
    ]
    assert report.lines[1] == '"zz": invalid hex'
    assert report.lines[2] == "0x0600 (Unknown): No data"
    assert report.summary == "EP1 batch: 2 found, 1 errors, 1 empty out of 4"
    assert len(endpoint.requests) == 3


def test_counts_always_sum_to_request_size(device, target, sleep) -> None:
    report = asyncio.run(
        _orchestrator(target, sleep).read_list(device.get_endpoint(1), ["0515", "0517", "x", "0601"], False)
    )
    assert report.succeeded + report.failed + report.empty == report.requested


def test_bulk_write_records_partial_failures_and_history(device, target, sleep) -> None:
    endpoint = device.get_endpoint(1)
    history = RollingLog(20)
    report = asyncio.run(
        _orchestrator(target, sleep).bulk_write(
            endpoint,
            ["0515:0b", "0524:uint16:0014", "bogus", "0519:02"],
            False,
            history,
        )
    )

    assert report.summary == "EP1 bulk write: 3 ok, 1 failed out of 4"
    assert report.lines[0] == "OK 0x0515 (Mode) <- uint8:0b -> read-back: 11 (0xB)"
    assert report.lines[1] == "OK 0x0524 (Unknown) <- uint16:0014 -> read-back: 20 (0x14)"
    assert report.lines[2].startswith('FAIL "bogus"')
    assert report.lines[3] == "OK 0x0519 (Unknown) <- uint8:02 -> read-back failed (write-only?)"
    assert [entry.message for entry in history.entries()] == [f"EP1 {line}" for line in report.lines]
    assert endpoint.attributes[target.cluster][0x0524].value == 0x14


def test_bulk_write_history_is_truncated_to_capacity(device, target, sleep) -> None:
    history = RollingLog(2)
    history.append("older")
    asyncio.run(
        _orchestrator(target, sleep).bulk_write(device.get_endpoint(1), ["0530:01", "0531:02", "0532:03"], True, history)
    )
    messages = [entry.message for entry in history.entries()]
    assert len(messages) == 2
    assert messages[0].startswith("EP1 OK 0x0531")


def test_bulk_write_cap(device, target, sleep) -> None:
    with pytest.raises(LimitExceededError):
        asyncio.run(
            _orchestrator(target, sleep).bulk_write(device.get_endpoint(1), [f"05{i:02x}:01" for i in range(33)], True)
        )


def test_empty_requests_are_invalid(device, target, sleep) -> None:
    orchestrator = _orchestrator(target, sleep)
    with pytest.raises(InvalidFormatError):
        asyncio.run(orchestrator.read_list(device.get_endpoint(1), [], False))
    with pytest.raises(InvalidFormatError):
        asyncio.run(orchestrator.bulk_write(device.get_endpoint(1), [], False))


def test_aborted_scan_reports_remaining_items(device, target) -> None:
    abort = threading.Event()

    async def abort_on_first_sleep(delay: float) -> None:
        abort.set()

    report = asyncio.run(
        _orchestrator(target, abort_on_first_sleep, abort).scan_range(device.get_endpoint(1), 0x0515, 0x0518, False)
    )
    assert report.requested == 4
    assert report.succeeded == 1
    assert report.failed == 3
    assert report.lines[-1] == "0518: aborted"
