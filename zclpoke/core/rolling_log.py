"""Fixed-capacity, insertion-ordered history log."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from datetime import datetime, timezone

from zclpoke.core.model import HistoryEntry

WRITE_HISTORY_MAX = 20
REPORT_LOG_MAX = 50


def now_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class RollingLog:
    """Keeps the newest ``capacity`` entries; the oldest are evicted first.

    Appends may come from a transport thread while the CLI renders the log,
    so every access holds the lock.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._entries: deque[HistoryEntry] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def append(self, message: str, *, timestamp: str | None = None) -> HistoryEntry:
        entry = HistoryEntry(timestamp=timestamp or now_timestamp(), message=message)
        with self._lock:
            self._entries.append(entry)
            while len(self._entries) > self.capacity:
                self._entries.popleft()
        return entry

    def extend(self, entries: Iterable[HistoryEntry]) -> None:
        with self._lock:
            self._entries.extend(entries)
            while len(self._entries) > self.capacity:
                self._entries.popleft()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def entries(self) -> tuple[HistoryEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def display(self) -> str:
        return "\n".join(entry.render() for entry in self.entries())
