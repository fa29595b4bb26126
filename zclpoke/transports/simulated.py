"""In-memory device described by a YAML file.

Example::

    model: lumi.light.acn032
    endpoints:
      1:
        input_clusters: [{id: 0, name: genBasic}, {id: 64704, name: manuSpecificLumi}]
        attributes:
          manuSpecificLumi:
            "0515": 10
            "0516": {buffer: "0102"}
            "0517": {unsupported: true}
            "0518": {write_only: true, value: 3}
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jsonschema import ValidationError

from zclpoke.core.codec import attr_hex, parse_attribute_id
from zclpoke.core.errors import (
    DeviceFileError,
    InvalidFormatError,
    TargetLoadError,
    TargetValidationError,
    TransportError,
    UnsupportedAttributeError,
)
from zclpoke.core.model import ClusterInfo, DataType, TypedValue
from zclpoke.core.schema import describe_error, load_validator
from zclpoke.core.target_loader import read_yaml
from zclpoke.transports.base import ReportCallback

LOGGER = logging.getLogger(__name__)


@dataclass
class SimulatedAttribute:
    value: Any = None
    unsupported: bool = False
    write_only: bool = False
    error: str | None = None


class SimulatedEndpoint:
    def __init__(
        self,
        endpoint_id: int,
        *,
        input_clusters: Sequence[ClusterInfo] = (),
        output_clusters: Sequence[ClusterInfo] = (),
        attributes: Mapping[str, Mapping[int, SimulatedAttribute]] | None = None,
    ) -> None:
        self._id = endpoint_id
        self._input_clusters = tuple(input_clusters)
        self._output_clusters = tuple(output_clusters)
        self.attributes: dict[str, dict[int, SimulatedAttribute]] = {
            cluster: dict(table) for cluster, table in (attributes or {}).items()
        }
        self.requests: list[tuple[str, str, tuple[int, ...], int | None]] = []

    @property
    def id(self) -> int:
        return self._id

    def input_clusters(self) -> Sequence[ClusterInfo]:
        return self._input_clusters

    def output_clusters(self) -> Sequence[ClusterInfo]:
        return self._output_clusters

    def set_value(self, cluster: str, attribute_id: int, value: Any) -> None:
        self.attributes.setdefault(cluster, {})[attribute_id] = SimulatedAttribute(value=value)

    def _status_error(self, cluster: str, attribute_id: int, status: str) -> str:
        return f"Read {cluster} {attr_hex(attribute_id)} on EP{self._id} failed (Status '{status}')"

    async def read(
        self,
        cluster: str,
        attribute_ids: Sequence[int],
        *,
        manufacturer_code: int | None = None,
    ) -> Mapping[int, Any]:
        self.requests.append(("read", cluster, tuple(attribute_ids), manufacturer_code))
        table = self.attributes.get(cluster, {})
        result: dict[int, Any] = {}
        for attribute_id in attribute_ids:
            attribute = table.get(attribute_id)
            if attribute is None:
                continue
            if attribute.unsupported:
                raise UnsupportedAttributeError(self._status_error(cluster, attribute_id, "UNSUPPORTED_ATTRIBUTE"))
            if attribute.write_only:
                raise TransportError(self._status_error(cluster, attribute_id, "WRITE_ONLY"))
            if attribute.error:
                raise TransportError(attribute.error)
            if attribute.value is not None:
                result[attribute_id] = attribute.value
        return result

    async def write(
        self,
        cluster: str,
        values: Mapping[int, TypedValue],
        *,
        manufacturer_code: int | None = None,
        disable_default_response: bool = False,
    ) -> None:
        self.requests.append(("write", cluster, tuple(values), manufacturer_code))
        table = self.attributes.setdefault(cluster, {})
        for attribute_id, typed in values.items():
            attribute = table.get(attribute_id)
            if attribute is not None and attribute.unsupported:
                raise UnsupportedAttributeError(
                    f"Write {cluster} {attr_hex(attribute_id)} failed (Status 'UNSUPPORTED_ATTRIBUTE')"
                )
            if attribute is not None and attribute.error:
                raise TransportError(attribute.error)
            write_only = attribute.write_only if attribute is not None else False
            table[attribute_id] = SimulatedAttribute(value=typed.value, write_only=write_only)


class SimulatedDevice:
    def __init__(self, model: str, endpoints: Sequence[SimulatedEndpoint]) -> None:
        self._model = model
        self._endpoints = {endpoint.id: endpoint for endpoint in endpoints}
        self._listeners: dict[str, list[ReportCallback]] = {}
        self._lock = threading.Lock()

    @property
    def model(self) -> str:
        return self._model

    def get_endpoint(self, endpoint_id: int) -> SimulatedEndpoint | None:
        return self._endpoints.get(endpoint_id)

    def endpoints(self) -> Sequence[SimulatedEndpoint]:
        return [self._endpoints[key] for key in sorted(self._endpoints)]

    def add_report_listener(self, cluster: str, callback: ReportCallback) -> None:
        with self._lock:
            self._listeners.setdefault(cluster, []).append(callback)

    def emit_report(self, endpoint_id: int, cluster: str, data: Mapping[int, Any]) -> None:
        """Deliver an unsolicited report; only listeners on ``cluster`` see it."""
        with self._lock:
            callbacks = list(self._listeners.get(cluster, ()))
        for callback in callbacks:
            callback(endpoint_id, data)


def _flag(spec: Mapping[str, Any], key: str, *, context: str) -> bool:
    value = spec.get(key, False)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise DeviceFileError(f"{context}.{key} must be boolean true/false")


def _attribute(spec: Any, *, context: str) -> SimulatedAttribute:
    if not isinstance(spec, Mapping):
        return SimulatedAttribute(value=spec)
    value = spec.get("value")
    buffer_hex = spec.get("buffer")
    if isinstance(value, Mapping) and DataType.lookup(str(value.get("type", ""))) is DataType.BUFFER:
        buffer_hex = value.get("hex", "")
    if buffer_hex is not None:
        try:
            value = bytes.fromhex(str(buffer_hex))
        except ValueError as exc:
            raise DeviceFileError(f"{context} buffer must be hex: {exc}") from exc
    return SimulatedAttribute(
        value=value,
        unsupported=_flag(spec, "unsupported", context=context),
        write_only=_flag(spec, "write_only", context=context),
        error=spec.get("error"),
    )


def _clusters(items: Sequence[Mapping[str, Any]]) -> tuple[ClusterInfo, ...]:
    return tuple(ClusterInfo(id=int(item["id"]), name=item.get("name")) for item in items)


def build_device(doc: dict[str, Any], source: Path | str = "<memory>") -> SimulatedDevice:
    try:
        load_validator("device").validate(doc)
    except ValidationError as exc:
        raise DeviceFileError(f"Schema validation failed for {source}{describe_error(exc)}") from exc

    endpoints: list[SimulatedEndpoint] = []
    for raw_id, spec in doc["endpoints"].items():
        endpoint_id = int(raw_id)
        attributes: dict[str, dict[int, SimulatedAttribute]] = {}
        for cluster, table in (spec.get("attributes") or {}).items():
            parsed: dict[int, SimulatedAttribute] = {}
            for key, attr_spec in table.items():
                if not isinstance(key, str):
                    raise DeviceFileError(f"{source}: attribute ids must be quoted hex strings, got {key!r}")
                try:
                    attribute_id = parse_attribute_id(key)
                except InvalidFormatError as exc:
                    raise DeviceFileError(f"{source}: {exc}") from exc
                parsed[attribute_id] = _attribute(attr_spec, context=f"EP{endpoint_id}.{cluster}.{key}")
            attributes[cluster] = parsed
        endpoints.append(
            SimulatedEndpoint(
                endpoint_id,
                input_clusters=_clusters(spec.get("input_clusters") or []),
                output_clusters=_clusters(spec.get("output_clusters") or []),
                attributes=attributes,
            )
        )

    LOGGER.info("Loaded simulated device '%s' with %d endpoints from %s", doc["model"], len(endpoints), source)
    return SimulatedDevice(doc["model"], endpoints)


def load_device(path: Path) -> SimulatedDevice:
    try:
        doc = read_yaml(path)
    except (TargetLoadError, TargetValidationError) as exc:
        raise DeviceFileError(str(exc)) from exc
    return build_device(doc, path)
