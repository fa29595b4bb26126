"""Passive listener for unsolicited attribute reports."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from zclpoke.core.codec import attr_label, format_value
from zclpoke.core.rolling_log import REPORT_LOG_MAX, RollingLog, now_timestamp

LOGGER = logging.getLogger(__name__)


class ReportListener:
    """Appends one log line per reported attribute.

    Called from whatever thread the transport delivers reports on; readers get
    a consistent, possibly slightly stale, view.
    """

    def __init__(self, log: RollingLog | None = None, known_attributes: Mapping[int, str] | None = None) -> None:
        self.log = log or RollingLog(REPORT_LOG_MAX)
        self.known_attributes = dict(known_attributes or {})
        self._last_report = ""
        self._lock = threading.Lock()

    @property
    def last_report(self) -> str:
        with self._lock:
            return self._last_report

    def on_report(self, endpoint_id: int | None, data: Mapping[Any, Any]) -> list[str]:
        ep = endpoint_id if endpoint_id is not None else "?"
        lines: list[str] = []
        for attribute_id, value in data.items():
            label = self._label(attribute_id)
            lines.append(f"EP{ep} {label} = {format_value(value, False)}")

        if not lines:
            return lines

        stamp = now_timestamp()
        for line in lines:
            LOGGER.info("Report: %s", line)
            self.log.append(line, timestamp=stamp)
        with self._lock:
            self._last_report = "\n".join(lines)
        return lines

    def _label(self, key: Any) -> str:
        if isinstance(key, int):
            return attr_label(key, self.known_attributes)
        try:
            return attr_label(int(key), self.known_attributes)
        except (TypeError, ValueError):
            # Named attributes, as reported by converters that already decoded the id.
            return str(key)

    def display(self) -> str:
        return self.log.display()

    def clear(self) -> None:
        self.log.clear()
        with self._lock:
            self._last_report = ""
