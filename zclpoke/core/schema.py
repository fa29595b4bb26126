"""Packaged JSON Schema access."""

from __future__ import annotations

import functools
import json
from importlib import resources
from typing import Any

from jsonschema import ValidationError, validators


@functools.lru_cache(maxsize=None)
def load_validator(name: str) -> Any:
    schema_text = resources.files("zclpoke.schemas").joinpath(f"{name}.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def describe_error(exc: ValidationError) -> str:
    path = ".".join(str(p) for p in exc.path)
    where = f" ({path})" if path else ""
    return f"{where}: {exc.message}"
