"""
Dotted-path resolution against nested records.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from tablemap.errors import ABSENT
from tablemap.mapping.inference import is_sequence


def locator_path(locator: Any) -> str:
    """
    Return the dotted path of a locator given as a string, a mapping with a
    `path` key, or any object with a `path` attribute (FieldRef, RepeaterSpec).
    """
    if isinstance(locator, str):
        return locator
    if isinstance(locator, Mapping) and "path" in locator:
        return str(locator["path"])
    path = getattr(locator, "path", None)
    if isinstance(path, str):
        return path
    raise TypeError(f"Unsupported locator: {locator!r}")


def resolve(record: Any, locator: Any) -> Any:
    """
    Resolve `locator` against `record`, one dot-separated segment at a time.

    Mapping segments are looked up by key; sequence segments by integer index.
    Any miss, including a None intermediate, returns ABSENT. A None leaf is
    returned as None. A key that itself contains dots (``"user.name"``) is
    matched exactly before the path is split.
    """
    path = locator_path(locator)
    if isinstance(record, Mapping) and path in record:
        return record[path]

    value = record
    for segment in path.split("."):
        if isinstance(value, Mapping):
            if segment not in value:
                return ABSENT
            value = value[segment]
        elif is_sequence(value) and segment.lstrip("-").isdigit():
            index = int(segment)
            if not -len(value) <= index < len(value):
                return ABSENT
            value = value[index]
        else:
            return ABSENT
    return value


__all__ = ["locator_path", "resolve"]
