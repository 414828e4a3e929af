"""
tablemap - schema inference and structural mapping for API payloads.

This package provides:

- Type and schema inference that turns one example record into a column schema
- Tables created on demand from example records, with typed CRUD (TableStore)
- Field-mapping generation for nested payloads, including repeaters and images
- Record transformation with value filters and depth-bounded repeaters
- A versioned storage codec so nested values round-trip through text columns

The mapping engine is pure; PostgreSQL (psycopg) and HTTP (httpx) live in the
infrastructure layer.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from tablemap.config import Settings, get_settings
from tablemap.domain.models import (
    BatchInsertResult,
    ColumnDefinition,
    ColumnSchema,
    FieldKind,
    FieldRef,
    MappingOptions,
    QueryOptions,
    RepeaterSpec,
    StorageType,
)
from tablemap.errors import ABSENT, FieldError, SchemaConflictError, StorageError
from tablemap.importer import ContentImporter, ContentTarget
from tablemap.mapping import (
    build_schema,
    decode,
    encode,
    generate_mapping,
    infer_field_kind,
    infer_storage_type,
    resolve,
    transform,
)
from tablemap.storage import StorageEngine, TableStore
from tablemap.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain models
    "BatchInsertResult",
    "ColumnDefinition",
    "ColumnSchema",
    "FieldKind",
    "FieldRef",
    "MappingOptions",
    "QueryOptions",
    "RepeaterSpec",
    "StorageType",
    # Errors and markers
    "ABSENT",
    "FieldError",
    "SchemaConflictError",
    "StorageError",
    # Mapping engine
    "build_schema",
    "decode",
    "encode",
    "generate_mapping",
    "infer_field_kind",
    "infer_storage_type",
    "resolve",
    "transform",
    # Storage and import
    "ContentImporter",
    "ContentTarget",
    "StorageEngine",
    "TableStore",
    # Logging
    "configure_logging",
    "get_logger",
]
