"""Transport interfaces.

Implementations raise `zclpoke.core.errors.TransportError` (or a subclass) for
any failed request. A failure caused by the device rejecting an attribute must
carry the ``UNSUPPORTED_ATTRIBUTE`` marker in its message.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from zclpoke.core.model import ClusterInfo, TypedValue

ReportCallback = Callable[[int, Mapping[int, Any]], None]


class Endpoint(Protocol):
    @property
    def id(self) -> int: ...

    async def read(
        self,
        cluster: str,
        attribute_ids: Sequence[int],
        *,
        manufacturer_code: int | None = None,
    ) -> Mapping[int, Any]:
        """Read attributes; ids without data may be absent from the result."""

    async def write(
        self,
        cluster: str,
        values: Mapping[int, TypedValue],
        *,
        manufacturer_code: int | None = None,
        disable_default_response: bool = False,
    ) -> None:
        """Write attributes, each tagged with its wire data type."""

    def input_clusters(self) -> Sequence[ClusterInfo]: ...

    def output_clusters(self) -> Sequence[ClusterInfo]: ...


class Device(Protocol):
    @property
    def model(self) -> str: ...

    def get_endpoint(self, endpoint_id: int) -> Endpoint | None: ...

    def endpoints(self) -> Sequence[Endpoint]: ...

    def add_report_listener(self, cluster: str, callback: ReportCallback) -> None:
        """Deliver unsolicited attribute reports for ``cluster`` to ``callback``."""
