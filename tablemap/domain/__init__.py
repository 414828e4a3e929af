"""
Domain package for tablemap.

Exports the storage types, column schema and field-mapping models shared by
the mapping engine, the table store and the importer.
"""

from tablemap.domain.models import (
    BatchInsertResult,
    ColumnDefinition,
    ColumnSchema,
    FieldKind,
    FieldMapping,
    FieldRef,
    FieldSpec,
    ImportResult,
    MappingOptions,
    QueryOptions,
    RepeaterSpec,
    StorageType,
    TransformedRecord,
)

__all__ = [
    "BatchInsertResult",
    "ColumnDefinition",
    "ColumnSchema",
    "FieldKind",
    "FieldMapping",
    "FieldRef",
    "FieldSpec",
    "ImportResult",
    "MappingOptions",
    "QueryOptions",
    "RepeaterSpec",
    "StorageType",
    "TransformedRecord",
]
