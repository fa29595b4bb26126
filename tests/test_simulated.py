from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from zclpoke.core.errors import DeviceFileError, TransportError, UnsupportedAttributeError
from zclpoke.core.model import DataType, TypedValue
from zclpoke.transports.simulated import load_device

DEVICE_YAML = """
model: lumi.light.acn032
endpoints:
  1:
    input_clusters: [{id: 0, name: genBasic}, {id: 64704, name: manuSpecificLumi}]
    output_clusters: [{id: 10, name: genTime}]
    attributes:
      manuSpecificLumi:
        "0515": 10
        "0516": {buffer: "0102"}
        "0517": {unsupported: true}
        "0518": {write_only: true, value: 3}
        "0519": {value: {type: Buffer, hex: "ff00"}}
        "051a": {error: "Timeout"}
  2:
    attributes:
      manuSpecificLumi:
        "0515": 1
"""


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "device.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_device_from_yaml(tmp_path: Path) -> None:
    device = load_device(_write(tmp_path, DEVICE_YAML))
    assert device.model == "lumi.light.acn032"
    assert [endpoint.id for endpoint in device.endpoints()] == [1, 2]

    ep1 = device.get_endpoint(1)
    assert [cluster.name for cluster in ep1.input_clusters()] == ["genBasic", "manuSpecificLumi"]
    assert ep1.output_clusters()[0].id == 10
    assert device.get_endpoint(3) is None

    values = asyncio.run(ep1.read("manuSpecificLumi", [0x0515, 0x0516, 0x0519, 0x0600]))
    assert values == {0x0515: 10, 0x0516: b"\x01\x02", 0x0519: b"\xff\x00"}


def test_read_failures_raise_transport_errors(tmp_path: Path) -> None:
    ep1 = load_device(_write(tmp_path, DEVICE_YAML)).get_endpoint(1)

    with pytest.raises(UnsupportedAttributeError, match="UNSUPPORTED_ATTRIBUTE"):
        asyncio.run(ep1.read("manuSpecificLumi", [0x0517]))
    with pytest.raises(TransportError, match="WRITE_ONLY"):
        asyncio.run(ep1.read("manuSpecificLumi", [0x0518]))
    with pytest.raises(TransportError, match="Timeout"):
        asyncio.run(ep1.read("manuSpecificLumi", [0x051A]))


def test_write_keeps_write_only_flag(tmp_path: Path) -> None:
    ep1 = load_device(_write(tmp_path, DEVICE_YAML)).get_endpoint(1)
    asyncio.run(ep1.write("manuSpecificLumi", {0x0518: TypedValue(DataType.UINT8, 7)}, manufacturer_code=0x115F))

    assert ep1.attributes["manuSpecificLumi"][0x0518].value == 7
    assert ep1.attributes["manuSpecificLumi"][0x0518].write_only is True
    assert ep1.requests[-1] == ("write", "manuSpecificLumi", (0x0518,), 0x115F)


def test_unquoted_attribute_keys_rejected(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
model: lumi.x
endpoints:
  1:
    attributes:
      manuSpecificLumi:
        0515: 10
""",
    )
    with pytest.raises(DeviceFileError, match="quoted"):
        load_device(path)


def test_schema_violation_and_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DeviceFileError):
        load_device(_write(tmp_path, "model: lumi.x\n"))
    with pytest.raises(DeviceFileError):
        load_device(tmp_path / "nope.yaml")


def test_emit_report_reaches_only_matching_cluster(device) -> None:
    seen: list[tuple[int, dict]] = []
    device.add_report_listener("manuSpecificLumi", lambda endpoint_id, data: seen.append((endpoint_id, dict(data))))

    device.emit_report(1, "manuSpecificLumi", {0x0515: 2})
    device.emit_report(1, "genOnOff", {0x0000: 1})

    assert seen == [(1, {0x0515: 2})]
