"""
Type inference over example values.

`infer_storage_type` picks the column type used when a table is created from an
example record. `infer_field_kind` picks the content-system field kind used
when a target field definition has to be created. Both are pure functions over
the value domain of `tablemap.domain.models.Value`.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timezone
from decimal import Decimal
from email.utils import parsedate_to_datetime
from typing import Any, Optional
from urllib.parse import urlsplit

from tablemap.domain.models import FieldKind, StorageType

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "bmp", "svg"})
VARCHAR_LIMIT = 255

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def is_sequence(value: Any) -> bool:
    """True for lists and tuples; strings and bytes are scalars here."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def is_record(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_image(value: Any) -> bool:
    """
    True when `value` is a string whose path component ends in an image extension.

    Query strings and fragments are ignored; matching is case-insensitive.
    """
    if not isinstance(value, str) or not value:
        return False
    try:
        path = urlsplit(value).path
    except ValueError:
        return False
    extension = posixpath.splitext(path)[1].lstrip(".").lower()
    return extension in IMAGE_EXTENSIONS


def is_image_array(value: Any) -> bool:
    """
    True for a non-empty sequence whose first element is an image string or a
    record whose `url` is an image string.
    """
    if not is_sequence(value) or not value:
        return False
    first = value[0]
    if isinstance(first, str):
        return is_image(first)
    return is_record(first) and is_image(first.get("url"))


def is_image_record(value: Any) -> bool:
    return is_record(value) and is_image(value.get("url"))


def is_repeater_candidate(value: Any) -> bool:
    """A non-empty sequence of records that is not a gallery."""
    return bool(is_sequence(value) and value and is_record(value[0]) and not is_image_array(value))


def is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp from a datetime, date, epoch number, ISO 8601 string or
    RFC 2822 string. Epoch numbers are read as UTC. Returns None when the value
    is not a timestamp.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def infer_storage_type(value: Any) -> StorageType:
    """
    Determine the column type for one example value.

    Booleans are checked before integers because `bool` is a subclass of `int`.
    Unknown values, including None, fall back to VARCHAR.
    """
    if isinstance(value, bool):
        return StorageType.BOOLEAN
    if isinstance(value, int):
        return StorageType.INTEGER
    if isinstance(value, (float, Decimal)):
        return StorageType.DECIMAL
    if is_record(value) or is_sequence(value):
        if is_image_array(value):
            return StorageType.GALLERY
        if is_image_record(value):
            return StorageType.IMAGE
        return StorageType.LONG_TEXT
    if isinstance(value, (datetime, date)):
        return StorageType.DATETIME
    if isinstance(value, str):
        return StorageType.LONG_TEXT if len(value) > VARCHAR_LIMIT else StorageType.VARCHAR
    return StorageType.VARCHAR


def infer_field_kind(value: Any) -> FieldKind:
    """
    Determine the content-system field kind for one example value.
    """
    if is_sequence(value):
        if value and is_record(value[0]) and not is_image_array(value):
            return FieldKind.REPEATER
        if is_image_array(value):
            return FieldKind.GALLERY
        return FieldKind.CHECKBOX
    if is_record(value):
        return FieldKind.IMAGE if is_image_record(value) else FieldKind.CHECKBOX
    if isinstance(value, bool):
        return FieldKind.TRUE_FALSE
    if isinstance(value, (int, float, Decimal)):
        return FieldKind.NUMBER
    if isinstance(value, (datetime, date)):
        return FieldKind.DATETIME
    if not isinstance(value, str):
        return FieldKind.TEXT
    if _NUMERIC_RE.match(value):
        return FieldKind.NUMBER
    if is_url(value):
        return FieldKind.IMAGE if is_image(value) else FieldKind.URL
    if parse_timestamp(value) is not None:
        return FieldKind.DATETIME
    if len(value) > VARCHAR_LIMIT:
        return FieldKind.TEXTAREA
    return FieldKind.TEXT


__all__ = [
    "IMAGE_EXTENSIONS",
    "infer_field_kind",
    "infer_storage_type",
    "is_image",
    "is_image_array",
    "is_image_record",
    "is_record",
    "is_repeater_candidate",
    "is_sequence",
    "is_url",
    "parse_timestamp",
]
