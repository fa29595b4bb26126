from __future__ import annotations

import asyncio

from zclpoke.core.client import AttributeClient
from zclpoke.core.errors import TransportError
from zclpoke.core.model import DataType, ReadEmpty, ReadFailure, ReadSuccess, TypedValue
from zclpoke.transports.simulated import SimulatedAttribute


class FailingEndpoint:
    id = 1

    def __init__(self, message: str, error: type[Exception] = TransportError) -> None:
        self.message = message
        self.error = error

    async def read(self, cluster, attribute_ids, *, manufacturer_code=None):
        raise self.error(self.message)

    async def write(self, cluster, values, *, manufacturer_code=None, disable_default_response=False):
        raise self.error(self.message)


def test_read_one_outcomes(device, target) -> None:
    client = AttributeClient(target)
    endpoint = device.get_endpoint(1)

    assert asyncio.run(client.read_one(endpoint, 0x0515)) == ReadSuccess(10)
    assert asyncio.run(client.read_one(endpoint, 0x0600)) == ReadEmpty()
    assert asyncio.run(client.read_one(endpoint, 0x0517)) == ReadFailure("Not supported", unsupported=True)


def test_read_sends_cluster_and_manufacturer_code(device, target) -> None:
    endpoint = device.get_endpoint(1)
    asyncio.run(AttributeClient(target).read_one(endpoint, 0x0515))
    assert endpoint.requests == [("read", target.cluster, (0x0515,), 0x115F)]


def test_unsupported_marker_in_plain_transport_error(target) -> None:
    endpoint = FailingEndpoint("Status 'UNSUPPORTED_ATTRIBUTE'")
    outcome = asyncio.run(AttributeClient(target).read_one(endpoint, 0x0515))
    assert outcome == ReadFailure("Not supported", unsupported=True)


def test_other_transport_error_keeps_message(target) -> None:
    outcome = asyncio.run(AttributeClient(target).read_one(FailingEndpoint("Timeout"), 0x0515))
    assert outcome == ReadFailure("Timeout")


def test_write_with_readback_reports_stored_value(device, target) -> None:
    endpoint = device.get_endpoint(1)
    outcome = asyncio.run(
        AttributeClient(target).write_with_readback(endpoint, 0x0524, TypedValue(DataType.UINT16, 0x14), False)
    )
    assert outcome.ok
    assert outcome.readback == "20 (0x14)"
    assert endpoint.attributes[target.cluster][0x0524].value == 0x14


def test_readback_failure_does_not_fail_write(device, target) -> None:
    endpoint = device.get_endpoint(1)
    outcome = asyncio.run(
        AttributeClient(target).write_with_readback(endpoint, 0x0519, TypedValue(DataType.UINT8, 2), False)
    )
    assert outcome.ok
    assert outcome.readback is None
    assert outcome.readback_failed


def test_write_failure_skips_readback(target) -> None:
    endpoint = FailingEndpoint("Device busy")
    outcome = asyncio.run(
        AttributeClient(target).write_with_readback(endpoint, 0x0515, TypedValue(DataType.UINT8, 1), True)
    )
    assert not outcome.ok
    assert outcome.error == "Device busy"
    assert not outcome.readback_failed


def test_write_to_unsupported_attribute_fails(device, target) -> None:
    endpoint = device.get_endpoint(1)
    endpoint.attributes[target.cluster][0x0520] = SimulatedAttribute(unsupported=True)
    outcome = asyncio.run(AttributeClient(target).write_one(endpoint, 0x0520, TypedValue(DataType.UINT8, 1)))
    assert not outcome.ok
    assert "UNSUPPORTED_ATTRIBUTE" in (outcome.error or "")


def test_timeouts_and_os_errors_become_outcomes(target) -> None:
    client = AttributeClient(target)

    timed_out = asyncio.run(client.read_one(FailingEndpoint("no response", TimeoutError), 0x0515))
    assert timed_out == ReadFailure("no response")

    written = asyncio.run(
        client.write_one(FailingEndpoint("link down", OSError), 0x0515, TypedValue(DataType.UINT8, 1))
    )
    assert not written.ok
    assert written.error == "link down"
