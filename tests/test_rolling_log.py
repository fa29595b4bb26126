from __future__ import annotations

import threading

import pytest

from zclpoke.core.model import HistoryEntry
from zclpoke.core.rolling_log import RollingLog


@pytest.mark.parametrize("capacity", [1, 3, 20])
def test_keeps_last_entries_in_order(capacity: int) -> None:
    log = RollingLog(capacity)
    for index in range(capacity + 7):
        log.append(f"entry {index}", timestamp="t")

    messages = [entry.message for entry in log.entries()]
    assert messages == [f"entry {index}" for index in range(7, capacity + 7)]
    assert len(log) == capacity


def test_extend_truncates_after_appending() -> None:
    log = RollingLog(3)
    log.append("old", timestamp="t0")
    log.extend(HistoryEntry("t1", f"bulk {i}") for i in range(4))
    assert [e.message for e in log.entries()] == ["bulk 1", "bulk 2", "bulk 3"]


def test_clear_and_display() -> None:
    log = RollingLog(5)
    log.append("wrote 0x0515", timestamp="2026-01-01 00:00:00")
    assert log.display() == "[2026-01-01 00:00:00] wrote 0x0515"
    log.clear()
    assert log.entries() == ()
    assert log.display() == ""


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RollingLog(0)


def test_concurrent_appends_never_exceed_capacity() -> None:
    log = RollingLog(50)

    def worker(prefix: str) -> None:
        for index in range(200):
            log.append(f"{prefix}{index}")
            assert len(log.entries()) <= 50

    threads = [threading.Thread(target=worker, args=(name,)) for name in "abcd"]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(log) == 50
