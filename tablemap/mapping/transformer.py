"""
Record transformation: apply a field mapping to a concrete source record.

Filters coerce resolved values. Named filters follow loose scripting-language
casting (e.g. `int` of "12abc" is 12, of None is 0); the `date` filter renders
timestamps as `YYYY-MM-DD HH:MM:SS` in UTC, keeps a missing value as None and
marks unparseable input with a `FieldError` instead of failing the whole
record.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from tablemap.domain.models import FieldMapping, FieldRef, FieldSpec, FilterSpec, RepeaterSpec, TransformedRecord
from tablemap.errors import ABSENT, FieldError
from tablemap.mapping.inference import is_sequence, parse_timestamp
from tablemap.mapping.paths import resolve
from tablemap.utils.logging import get_logger

log = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEADING_NUMBER_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


class UnparseableTimestamp(ValueError):
    """Raised by the date filter for input that is not a timestamp."""


def _leading_number(value: str) -> float:
    match = _LEADING_NUMBER_RE.match(value)
    return float(match.group(0)) if match else 0.0


def _to_float(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, (bool, int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        return _leading_number(value)
    if is_sequence(value) or isinstance(value, Mapping):
        return 1.0 if value else 0.0
    return 0.0


def _to_int(value: Any) -> int:
    if isinstance(value, (bool, int)):
        return int(value)
    number = _to_float(value)
    if number != number or number in (float("inf"), float("-inf")):
        return 0
    return int(number)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value not in ("", "0")
    return bool(value)


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    return str(value)


def _to_date(value: Any) -> Optional[str]:
    if value is None:
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise UnparseableTimestamp(f"Cannot parse {value!r} as a timestamp")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime(TIMESTAMP_FORMAT)


FILTERS: Dict[str, Callable[[Any], Any]] = {
    "int": _to_int,
    "float": _to_float,
    "bool": _to_bool,
    "string": _to_string,
    "date": _to_date,
}


def apply_filter(value: Any, value_filter: Optional[FilterSpec]) -> Any:
    """
    Apply a named filter or a callable to `value`.

    Unknown filter names pass the value through unchanged and log a warning.
    Raises UnparseableTimestamp from the `date` filter.
    """
    if value_filter is None:
        return value
    if callable(value_filter):
        return value_filter(value)
    handler = FILTERS.get(value_filter)
    if handler is None:
        log.warning("Unsupported filter, value passed through", extra={"filter": value_filter})
        return value
    return handler(value)


def _transform_repeater(record: Any, spec: RepeaterSpec) -> List[TransformedRecord]:
    rows = resolve(record, spec)
    if rows is ABSENT or not is_sequence(rows):
        return []
    return [transform(row, spec.sub_fields) for row in rows]


def _transform_field(record: Any, target: str, spec: FieldSpec) -> Any:
    if isinstance(spec, RepeaterSpec):
        return _transform_repeater(record, spec)

    value = resolve(record, spec)
    if value is ABSENT:
        value = None
    if not isinstance(spec, FieldRef) or spec.filter is None:
        return value

    try:
        return apply_filter(value, spec.filter)
    except UnparseableTimestamp as exc:
        log.warning(
            "Field conversion failed",
            extra={"field": target, "kind": "UnparseableTimestamp"},
        )
        return FieldError(field=target, kind="UnparseableTimestamp", message=str(exc), value=value)


def transform(record: Any, mapping: FieldMapping) -> TransformedRecord:
    """
    Transform one source record according to `mapping`.

    Parameters
    ----------
    record : Any
        Source record (normally a mapping decoded from JSON).
    mapping : FieldMapping
        Mapping produced by `generate_mapping` or written by hand.

    Returns
    -------
    TransformedRecord
        Target field name to value, in mapping order. Unresolved locators yield
        None; repeaters yield a list of transformed rows.
    """
    return {target: _transform_field(record, target, spec) for target, spec in mapping.items()}


def field_errors(record: TransformedRecord) -> List[FieldError]:
    """Collect FieldError markers from a transformed record, including repeater rows."""
    errors: List[FieldError] = []
    for value in record.values():
        if isinstance(value, FieldError):
            errors.append(value)
        elif isinstance(value, list):
            for row in value:
                if isinstance(row, dict):
                    errors.extend(field_errors(row))
    return errors


def strip_field_errors(record: TransformedRecord) -> TransformedRecord:
    """Copy of `record` with every FieldError marker replaced by None."""
    cleaned: TransformedRecord = {}
    for name, value in record.items():
        if isinstance(value, FieldError):
            cleaned[name] = None
        elif isinstance(value, list):
            cleaned[name] = [strip_field_errors(row) if isinstance(row, dict) else row for row in value]
        else:
            cleaned[name] = value
    return cleaned


__all__ = [
    "FILTERS",
    "TIMESTAMP_FORMAT",
    "UnparseableTimestamp",
    "apply_filter",
    "field_errors",
    "strip_field_errors",
    "transform",
]
