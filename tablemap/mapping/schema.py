"""
Column schema construction from an example record.

The schema is derived once per table: columns follow the example's field order,
each typed by `infer_storage_type`, and exactly one primary key is guaranteed.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, FrozenSet, Iterable, List, Tuple, Union

from tablemap.domain.models import ColumnDefinition, ColumnSchema, StorageType
from tablemap.errors import SchemaConflictError
from tablemap.mapping.inference import infer_storage_type
from tablemap.utils.logging import get_logger

log = get_logger(__name__)

ExampleInput = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]

# Inferred example types a declared primary-key type can hold.
_PK_COMPATIBLE: Dict[StorageType, FrozenSet[StorageType]] = {
    StorageType.INTEGER: frozenset({StorageType.INTEGER}),
    StorageType.DECIMAL: frozenset({StorageType.INTEGER, StorageType.DECIMAL}),
    StorageType.VARCHAR: frozenset({StorageType.VARCHAR, StorageType.INTEGER}),
    StorageType.DATETIME: frozenset({StorageType.DATETIME}),
}


def _fields(example: ExampleInput) -> List[Tuple[str, Any]]:
    if isinstance(example, Mapping):
        return list(example.items())
    return [(str(name), value) for name, value in example]


def _check_primary_key(name: str, key_type: StorageType, value: Any) -> None:
    allowed = _PK_COMPATIBLE.get(key_type)
    if allowed is None:
        raise SchemaConflictError(f"Storage type {key_type.value} cannot be used as a primary key")
    if value is None:
        return
    inferred = infer_storage_type(value)
    if inferred not in allowed:
        raise SchemaConflictError(
            f"Primary key '{name}' is declared {key_type.value} but the example value "
            f"infers {inferred.value}"
        )


def build_schema(
    example: ExampleInput,
    primary_key: str = "id",
    primary_key_type: Union[StorageType, str] = StorageType.INTEGER,
) -> ColumnSchema:
    """
    Build the column schema for a table from one example record.

    Parameters
    ----------
    example : mapping or iterable of (name, value) pairs
        Example record; only its shape is used.
    primary_key : str
        Primary-key column name. When absent from the example, a synthetic
        auto-incrementing column is prepended.
    primary_key_type : StorageType | str
        Storage type of the primary-key column.

    Returns
    -------
    ColumnSchema
        Columns in example order with exactly one primary key.

    Raises
    ------
    SchemaConflictError
        On duplicate field names, or when the example's primary-key value cannot
        be stored under the declared key type.
    """
    key_type = StorageType.parse(primary_key_type)
    fields = _fields(example)

    seen = set()
    for name, _ in fields:
        if name in seen:
            raise SchemaConflictError(f"Duplicate field '{name}' in example record")
        seen.add(name)

    columns: List[ColumnDefinition] = []
    for name, value in fields:
        if name == primary_key:
            _check_primary_key(name, key_type, value)
            columns.append(ColumnDefinition(name=name, storage_type=key_type, primary_key=True))
        else:
            columns.append(ColumnDefinition(name=name, storage_type=infer_storage_type(value)))

    if primary_key not in seen:
        if key_type is not StorageType.INTEGER:
            raise SchemaConflictError(
                f"Primary key '{primary_key}' is missing from the example and "
                f"{key_type.value} keys cannot be generated by storage"
            )
        columns.insert(
            0,
            ColumnDefinition(
                name=primary_key,
                storage_type=key_type,
                primary_key=True,
                auto_increment=True,
            ),
        )

    schema = ColumnSchema(columns=tuple(columns))
    log.debug(
        "Schema built",
        extra={"columns": schema.names(), "primary_key": primary_key},
    )
    return schema


__all__ = ["build_schema"]
