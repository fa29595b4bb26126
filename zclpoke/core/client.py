"""Single-attribute read/write against a transport endpoint."""

from __future__ import annotations

import logging

from zclpoke.core.codec import attr_hex, format_value
from zclpoke.core.errors import TransportError, UnsupportedAttributeError
from zclpoke.core.model import (
    ReadEmpty,
    ReadFailure,
    ReadOutcome,
    ReadSuccess,
    TargetProfile,
    TypedValue,
    WriteOutcome,
)
from zclpoke.transports.base import Endpoint

UNSUPPORTED_MARKER = "UNSUPPORTED_ATTRIBUTE"
LOGGER = logging.getLogger(__name__)


def _is_unsupported(exc: Exception) -> bool:
    return isinstance(exc, UnsupportedAttributeError) or UNSUPPORTED_MARKER in str(exc)


class AttributeClient:
    """Reads and writes one attribute at a time on the target's cluster.

    Transport errors never escape: they come back as `ReadFailure` or a failed
    `WriteOutcome` so batch callers can keep going.
    """

    def __init__(self, target: TargetProfile) -> None:
        self.target = target

    async def read_one(self, endpoint: Endpoint, attribute_id: int) -> ReadOutcome:
        try:
            result = await endpoint.read(
                self.target.cluster,
                [attribute_id],
                manufacturer_code=self.target.manufacturer_code,
            )
        except (TransportError, OSError) as exc:
            if _is_unsupported(exc):
                return ReadFailure("Not supported", unsupported=True)
            return ReadFailure(str(exc))

        if result and attribute_id in result and result[attribute_id] is not None:
            return ReadSuccess(result[attribute_id])
        return ReadEmpty()

    async def write_one(self, endpoint: Endpoint, attribute_id: int, typed: TypedValue) -> WriteOutcome:
        try:
            await endpoint.write(
                self.target.cluster,
                {attribute_id: typed},
                manufacturer_code=self.target.manufacturer_code,
                disable_default_response=False,
            )
        except (TransportError, OSError) as exc:
            LOGGER.warning("Write %s failed: %s", attr_hex(attribute_id), exc)
            return WriteOutcome(ok=False, error=str(exc))
        return WriteOutcome(ok=True)

    async def write_with_readback(
        self,
        endpoint: Endpoint,
        attribute_id: int,
        typed: TypedValue,
        raw_hex: bool,
    ) -> WriteOutcome:
        written = await self.write_one(endpoint, attribute_id, typed)
        if not written.ok:
            return written

        readback = await self.read_one(endpoint, attribute_id)
        if isinstance(readback, ReadSuccess):
            return WriteOutcome(ok=True, readback=format_value(readback.value, raw_hex))
        if isinstance(readback, ReadFailure):
            LOGGER.info("Read-back of %s failed: %s", attr_hex(attribute_id), readback.message)
            return WriteOutcome(ok=True, readback_failed=True)
        return WriteOutcome(ok=True)
