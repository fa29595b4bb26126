"""Hex parsing and value formatting for attribute ids and payloads.

Formatting is pure: the same value and display mode always produce the same
text, which is what snapshot comparison relies on.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from zclpoke.core.errors import InvalidFormatError, UnknownTypeError
from zclpoke.core.model import DataType, TypedValue

_ATTR_RE = re.compile(r"^[0-9a-f]{1,4}$")
_HEX_RE = re.compile(r"^[0-9a-f]+$")
_PAYLOAD_STRIP_RE = re.compile(r"[\s:]")


def _strip_hex_prefix(text: str) -> str:
    if text[:2].lower() == "0x":
        return text[2:]
    return text


def parse_attribute_id(text: str) -> int:
    clean = re.sub(r"\s+", "", _strip_hex_prefix(str(text).strip())).lower()
    if not _ATTR_RE.match(clean):
        raise InvalidFormatError(f'Invalid attribute: "{text}"')
    return int(clean, 16)


def attr_hex(attribute_id: int) -> str:
    return f"0x{attribute_id:04X}"


def attr_key(attribute_id: int) -> str:
    return f"{attribute_id:04x}"


def attr_label(attribute_id: int, known: Mapping[int, str] | None = None) -> str:
    name = (known or {}).get(attribute_id) or "Unknown"
    return f"{attr_hex(attribute_id)} ({name})"


def normalize_hex_payload(text: str) -> str:
    """Strip an optional 0x prefix, whitespace and colons; left-pad odd lengths."""
    clean = _PAYLOAD_STRIP_RE.sub("", _strip_hex_prefix(str(text).strip())).lower()
    if not clean:
        raise InvalidFormatError(f'Invalid hex value: "{text}" (empty)')
    if not _HEX_RE.match(clean):
        raise InvalidFormatError(f'Invalid hex value: "{clean}"')
    if len(clean) % 2:
        clean = "0" + clean
    return clean


def infer_type(hex_payload: str) -> TypedValue:
    # Length heuristic only: a 2-byte int16 reads as uint16 unless the caller says otherwise.
    byte_len = len(hex_payload) // 2
    if byte_len == 1:
        return TypedValue(DataType.UINT8, int(hex_payload, 16))
    if byte_len == 2:
        return TypedValue(DataType.UINT16, int(hex_payload, 16))
    if byte_len == 4:
        return TypedValue(DataType.UINT32, int(hex_payload, 16))
    return TypedValue(DataType.BUFFER, bytes.fromhex(hex_payload))


def parse_typed(type_name: str, hex_payload: str) -> TypedValue:
    data_type = DataType.lookup(type_name)
    if data_type is None:
        valid = ", ".join(DataType.names())
        raise UnknownTypeError(f'Unknown type "{type_name}". Valid: {valid}')
    if data_type is DataType.BUFFER:
        return TypedValue(data_type, bytes.fromhex(hex_payload))
    if data_type.width is None:
        return TypedValue(data_type, hex_payload)

    # Signed types carry their unsigned wire bits; interpretation is the caller's job.
    value = int(hex_payload, 16)
    if value >= 1 << (8 * data_type.width):
        raise InvalidFormatError(
            f'Value 0x{hex_payload} does not fit {data_type.type_name} ({data_type.width} bytes)'
        )
    return TypedValue(data_type, value)


def format_value(value: Any, raw_hex: bool) -> str:
    width: int | None = None
    if isinstance(value, TypedValue):
        width = value.type.width
        value = value.value
    if raw_hex:
        return _format_raw(value, width)
    return _format_friendly(value)


def _hex_digits(value: int, min_bytes: int = 1) -> str:
    digits = f"{abs(value):X}"
    nibbles = max(min_bytes * 2, -(-len(digits) // 2) * 2)
    text = digits.rjust(nibbles, "0")
    return f"-{text}" if value < 0 else text


def _format_raw(value: Any, width: int | None) -> str:
    if isinstance(value, bool):
        return json.dumps(value)
    if isinstance(value, int):
        return _hex_digits(value, width or 1)
    if isinstance(value, float):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex().upper()
    if isinstance(value, (list, tuple)):
        return " ".join(
            f"{item:02X}" if isinstance(item, int) and not isinstance(item, bool) else str(item)
            for item in value
        )
    return json.dumps(value, default=str, ensure_ascii=False)


def _format_friendly(value: Any) -> str:
    if isinstance(value, bool):
        return json.dumps(value)
    if isinstance(value, int):
        sign = "-" if value < 0 else ""
        hex_text = f"{sign}0x{abs(value):X}"
        if value >= 256:
            raw = value.to_bytes((value.bit_length() + 7) // 8, "big")
            byte_text = ", ".join(f"0x{b:02X}" for b in raw)
            return f"{value} ({hex_text}, bytes: [{byte_text}])"
        return f"{value} ({hex_text})"
    if isinstance(value, float):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return f"Buffer[{len(value)}]: {bytes(value).hex().upper()}"
    if isinstance(value, (list, tuple)):
        items = json.dumps(list(value), separators=(",", ":"), default=str, ensure_ascii=False)
        return f"Array[{len(value)}]: {items}"
    return json.dumps(value, default=str, ensure_ascii=False)
