"""
Field-mapping generation from an example payload.

Usage:
    from tablemap.mapping.generator import generate_mapping

    mapping = generate_mapping(sample_post, title_field="title", content_field="body")

The resulting mapping is built once and reused read-only for every record of a
batch, which keeps the target shape stable across the batch.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Optional

from tablemap.domain.models import FieldKind, FieldMapping, FieldRef, FieldSpec, MappingOptions, RepeaterSpec
from tablemap.mapping.inference import is_image, is_image_array, is_repeater_candidate
from tablemap.utils.logging import get_logger

log = get_logger(__name__)

TITLE_TARGET = "title"
CONTENT_TARGET = "content"


def _map_value(field: str, value: Any, options: MappingOptions) -> Optional[FieldSpec]:
    if is_repeater_candidate(value):
        if options.max_depth <= 0:
            log.debug("Repeater skipped at depth limit", extra={"field": field})
            return None
        return _map_repeater(field, value, options)

    if options.detect_images:
        if is_image(value):
            return FieldRef(path=field, kind=FieldKind.IMAGE)
        if is_image_array(value):
            return FieldRef(path=field, kind=FieldKind.GALLERY)

    return field


def _map_repeater(field: str, rows: Any, options: MappingOptions) -> RepeaterSpec:
    sub_options = options.descend()
    sub_fields = _map_fields(rows[0], sub_options)
    return RepeaterSpec(path=field, sub_fields=sub_fields, depth=options.max_depth)


def _map_fields(example: Mapping[str, Any], options: MappingOptions) -> FieldMapping:
    mapping: FieldMapping = {}

    if options.title_field and options.title_field in example:
        mapping[TITLE_TARGET] = options.title_field
    if options.content_field and options.content_field in example:
        mapping[CONTENT_TARGET] = options.content_field
    excluded = {options.title_field, options.content_field}

    for field, value in example.items():
        if field in excluded:
            continue
        if field in mapping:
            log.warning(
                "Field dropped: its name is taken by a reserved target",
                extra={"field": field, "target_source": mapping[field]},
            )
            continue
        spec = _map_value(field, value, options)
        if spec is not None:
            mapping[field] = spec
    return mapping


def generate_mapping(
    example: Mapping[str, Any],
    options: Optional[MappingOptions] = None,
    **overrides: Any,
) -> FieldMapping:
    """
    Generate a field mapping from one example record.

    Parameters
    ----------
    example : Mapping[str, Any]
        Example source record (e.g., the first item of an API listing).
    options : MappingOptions | None
        Generation options; defaults to `MappingOptions()`.
    **overrides
        Individual option overrides (`title_field`, `content_field`,
        `detect_images`, `max_depth`) applied on top of `options`.

    Returns
    -------
    FieldMapping
        Target field name to locator string, `FieldRef` or `RepeaterSpec`.

    Notes
    -----
    The reserved targets `title` and `content` take precedence: when
    `title_field` is e.g. "headline", a source field literally named `title`
    is not mapped (its value is lost) and a warning is logged.
    """
    if not isinstance(example, Mapping):
        raise TypeError(f"Example record must be a mapping, got {type(example).__name__}")

    base = options or MappingOptions()
    if overrides:
        base = MappingOptions(**{**base.model_dump(), **overrides})

    mapping = _map_fields(example, base)
    log.debug(
        "Mapping generated",
        extra={"fields": list(mapping), "max_depth": base.max_depth},
    )
    return mapping


def mapping_to_dict(mapping: FieldMapping) -> Dict[str, Any]:
    """
    Render a mapping as plain JSON-compatible data. Callable filters cannot be
    serialized and are dropped.
    """
    data: Dict[str, Any] = {}
    for target, spec in mapping.items():
        if isinstance(spec, RepeaterSpec):
            data[target] = {
                "repeater": True,
                "path": spec.path,
                "depth": spec.depth,
                "sub_fields": mapping_to_dict(spec.sub_fields),
            }
        elif isinstance(spec, FieldRef):
            entry: Dict[str, Any] = {"path": spec.path}
            if spec.kind is not None:
                entry["kind"] = spec.kind.value
            if isinstance(spec.filter, str):
                entry["filter"] = spec.filter
            data[target] = entry
        else:
            data[target] = spec
    return data


def mapping_from_dict(data: Mapping[str, Any]) -> FieldMapping:
    """
    Build a mapping from plain data, the inverse of `mapping_to_dict`.

    Strings stay locators, objects with `repeater: true` become RepeaterSpec
    and other objects become FieldRef.
    """
    mapping: FieldMapping = {}
    for target, entry in data.items():
        if isinstance(entry, str):
            mapping[target] = entry
        elif isinstance(entry, Mapping) and entry.get("repeater"):
            sub_fields = mapping_from_dict(entry.get("sub_fields") or {})
            mapping[target] = RepeaterSpec(
                path=entry.get("path", target),
                sub_fields=sub_fields,
                depth=entry.get("depth", _nesting_depth(sub_fields) + 1),
            )
        elif isinstance(entry, Mapping):
            mapping[target] = FieldRef(
                path=entry.get("path", target),
                kind=entry.get("kind"),
                filter=entry.get("filter"),
            )
        else:
            raise TypeError(f"Unsupported mapping entry for '{target}': {entry!r}")
    return mapping


def _nesting_depth(mapping: FieldMapping) -> int:
    depths = [
        _nesting_depth(spec.sub_fields) + 1
        for spec in mapping.values()
        if isinstance(spec, RepeaterSpec)
    ]
    return max(depths, default=0)


__all__ = [
    "CONTENT_TARGET",
    "TITLE_TARGET",
    "generate_mapping",
    "mapping_from_dict",
    "mapping_to_dict",
]
