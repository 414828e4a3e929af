"""
Storage codec for composite values.

Nested records and sequences are stored in text columns as a versioned,
self-describing string: the marker ``tablemap:v1:`` followed by a JSON tree in
which every non-scalar node is a single-key tagged object:

    {"l": [...]}            list
    {"t": [...]}            tuple
    {"m": [[k, v], ...]}    mapping, order preserved
    {"dt": "<iso>"}         datetime
    {"d": "<iso>"}          date
    {"dec": "<str>"}        Decimal

Plain strings that happen to start with the marker are encoded as well when a
row is prepared for storage, so every stored string carrying the marker was
produced by `encode` and decodes exactly.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Tuple

from tablemap.mapping.inference import is_sequence

MARKER = "tablemap:v1:"
STORAGE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _to_tree(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return {"dec": str(value)}
    if isinstance(value, datetime):
        return {"dt": value.isoformat()}
    if isinstance(value, date):
        return {"d": value.isoformat()}
    if isinstance(value, Mapping):
        return {"m": [[_to_tree(key), _to_tree(item)] for key, item in value.items()]}
    if isinstance(value, tuple):
        return {"t": [_to_tree(item) for item in value]}
    if is_sequence(value):
        return {"l": [_to_tree(item) for item in value]}
    raise TypeError(f"Cannot encode value of type {type(value).__name__}")


def _from_tree(node: Any) -> Any:
    if node is None or isinstance(node, (bool, int, float, str)):
        return node
    if not isinstance(node, dict) or len(node) != 1:
        raise ValueError(f"Malformed encoded node: {node!r}")
    (tag, payload), = node.items()
    if tag == "l" and isinstance(payload, list):
        return [_from_tree(item) for item in payload]
    if tag == "t" and isinstance(payload, list):
        return tuple(_from_tree(item) for item in payload)
    if tag == "m" and isinstance(payload, list):
        result = {}
        for pair in payload:
            if not isinstance(pair, list) or len(pair) != 2:
                raise ValueError(f"Malformed mapping entry: {pair!r}")
            result[_from_tree(pair[0])] = _from_tree(pair[1])
        return result
    if tag == "dt" and isinstance(payload, str):
        return datetime.fromisoformat(payload)
    if tag == "d" and isinstance(payload, str):
        return date.fromisoformat(payload)
    if tag == "dec" and isinstance(payload, str):
        return Decimal(payload)
    raise ValueError(f"Unknown encoded tag: {tag!r}")


def encode(value: Any) -> str:
    """Encode a value into the marker-prefixed text representation."""
    return MARKER + json.dumps(_to_tree(value), ensure_ascii=False, separators=(",", ":"))


def _try_decode(text: str) -> Tuple[bool, Any]:
    try:
        return True, _from_tree(json.loads(text[len(MARKER):]))
    except (ValueError, TypeError, ArithmeticError):
        return False, text


def is_encoded(value: Any) -> bool:
    """True when `value` is a string produced by `encode`."""
    if not isinstance(value, str) or not value.startswith(MARKER):
        return False
    return _try_decode(value)[0]


def decode(value: Any) -> Any:
    """
    Decode a value produced by `encode`; anything else is returned unchanged.
    """
    if not isinstance(value, str) or not value.startswith(MARKER):
        return value
    return _try_decode(value)[1]


def _storage_value(value: Any) -> Any:
    if isinstance(value, Mapping) or is_sequence(value):
        return encode(value)
    if isinstance(value, str) and value.startswith(MARKER):
        return encode(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime(STORAGE_TIMESTAMP_FORMAT)
    return value


def prepare_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a record into storable column values."""
    return {name: _storage_value(value) for name, value in row.items()}


def restore_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Decode every encoded string of a row read back from storage."""
    return {name: decode(value) for name, value in row.items()}


__all__ = [
    "MARKER",
    "decode",
    "encode",
    "is_encoded",
    "prepare_row",
    "restore_row",
]
