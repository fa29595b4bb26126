"""Target profile loading and validation for YAML-based zclpoke targets."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError

from zclpoke.core.codec import parse_attribute_id
from zclpoke.core.errors import InvalidFormatError, TargetLoadError, TargetValidationError
from zclpoke.core.model import MatchRules, TargetProfile
from zclpoke.core.rolling_log import WRITE_HISTORY_MAX
from zclpoke.core.schema import describe_error, load_validator

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[Any, Any]:
    mapping: dict[Any, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise TargetValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedTargets:
    targets: dict[str, TargetProfile]
    warnings: tuple[str, ...]


def _target_dirs() -> tuple[Path, Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_config / "zclpoke/targets", xdg_data / "zclpoke/targets"


def read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TargetLoadError(f"Could not read file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise TargetValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise TargetValidationError(f"File {path} must contain a mapping at root")
    return loaded


def _normalize_manufacturer_code(value: Any, *, context: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = int(value.strip(), 16)
        except ValueError as exc:
            raise TargetValidationError(f"{context} must be an integer or hex string") from exc
    if not 0 <= value <= 0xFFFF:
        raise TargetValidationError(f"{context} must be in 0x0000-0xFFFF")
    return value


def _normalize_known_attributes(raw: dict[str, str], *, context: str) -> dict[int, str]:
    known: dict[int, str] = {}
    for key, name in raw.items():
        try:
            attribute_id = parse_attribute_id(str(key))
        except InvalidFormatError as exc:
            raise TargetValidationError(f"{context}: {exc}") from exc
        if attribute_id in known:
            raise TargetValidationError(f"{context}: attribute {key} listed twice")
        known[attribute_id] = name
    return known


def build_target(doc: dict[str, Any], source: Path | Traversable) -> TargetProfile:
    try:
        load_validator("target").validate(doc)
    except ValidationError as exc:
        raise TargetValidationError(f"Schema validation failed for {source}{describe_error(exc)}") from exc

    return TargetProfile(
        id=doc["id"],
        name=doc["name"],
        match=MatchRules(models=tuple(m.strip() for m in doc["match"].get("models", []))),
        cluster=doc["cluster"],
        manufacturer_code=_normalize_manufacturer_code(
            doc.get("manufacturer_code"),
            context=f"{doc['id']}.manufacturer_code",
        ),
        known_attributes=_normalize_known_attributes(
            doc.get("known_attributes") or {},
            context=f"{doc['id']}.known_attributes",
        ),
        write_history_max=int(doc.get("write_history_max", WRITE_HISTORY_MAX)),
        pacing_delay_ms=int(doc.get("pacing_delay_ms", 50)),
    )


def _iter_packaged_target_paths() -> list[Traversable]:
    target_root = resources.files("zclpoke.targets")
    return [item for item in target_root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_target_paths() -> list[Path]:
    paths: list[Path] = []
    for directory in _target_dirs():
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_targets() -> LoadedTargets:
    targets: dict[str, TargetProfile] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_target_paths(), key=lambda p: p.name):
        target = build_target(read_yaml(path), path)
        targets[target.id] = target

    for path in _iter_user_target_paths():
        target = build_target(read_yaml(path), path)
        if target.id in targets:
            warning = f"User target '{target.id}' overrides packaged target"
            LOGGER.warning(warning)
            warnings.append(warning)
        targets[target.id] = target

    return LoadedTargets(targets=targets, warnings=tuple(warnings))
