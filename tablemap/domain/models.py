"""
Domain models for tablemap.

Defines the storage types and column schema produced by schema inference, the
field mappings produced by mapping generation, and the small
result contracts returned by the table store and the importer.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from tablemap.errors import SchemaConflictError

# Values an example or source record may hold, nested to any depth.
Value = Union[
    None,
    bool,
    int,
    float,
    Decimal,
    str,
    datetime,
    date,
    Mapping[str, Any],
    Sequence[Any],
]


_STORAGE_ALIASES = {
    "INT": "INTEGER",
    "NUMERIC": "DECIMAL",
    "TEXT": "LONG_TEXT",
    "TIMESTAMP": "DATETIME",
    "TINYINT(1)": "BOOLEAN",
}


class StorageType(str, Enum):
    """Column storage types inferred from example values."""

    INTEGER = "INTEGER"
    DECIMAL = "DECIMAL(10,2)"
    BOOLEAN = "BOOLEAN"
    VARCHAR = "VARCHAR(255)"
    LONG_TEXT = "LONG_TEXT"
    DATETIME = "DATETIME"
    IMAGE = "IMAGE"
    GALLERY = "GALLERY"

    @classmethod
    def parse(cls, value: Union[str, "StorageType"]) -> "StorageType":
        """Accept either a member, its name (``INTEGER``) or its value (``DECIMAL(10,2)``)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        if text in cls.__members__:
            return cls.__members__[text]
        if text in _STORAGE_ALIASES:
            return cls.__members__[_STORAGE_ALIASES[text]]
        return cls(text)

    @property
    def is_composite(self) -> bool:
        return self in (StorageType.LONG_TEXT, StorageType.IMAGE, StorageType.GALLERY)


class FieldKind(str, Enum):
    """Content-system field kinds used when defining target fields."""

    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    TRUE_FALSE = "true_false"
    URL = "url"
    IMAGE = "image"
    GALLERY = "gallery"
    REPEATER = "repeater"
    CHECKBOX = "checkbox"
    DATETIME = "date_time_picker"


class ColumnDefinition(BaseModel):
    """
    A single column of a generated table.
    """

    name: str = Field(..., min_length=1, description="Column name.")
    storage_type: StorageType = Field(..., description="Inferred storage type.")
    primary_key: bool = Field(False, description="Whether this column is the primary key.")
    auto_increment: bool = Field(False, description="Whether values are generated by storage.")

    model_config = {"frozen": True}

    def render(self) -> str:
        parts = [self.name, self.storage_type.value]
        if self.primary_key:
            parts.append("PRIMARY KEY")
        if self.auto_increment:
            parts.append("AUTO_INCREMENT")
        return " ".join(parts)


class ColumnSchema(BaseModel):
    """
    Ordered column definitions for one table, with exactly one primary key.
    """

    columns: Tuple[ColumnDefinition, ...] = Field(..., description="Columns in table order.")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _single_primary_key(self) -> "ColumnSchema":
        keys = [column.name for column in self.columns if column.primary_key]
        if len(keys) != 1:
            raise SchemaConflictError(
                f"Schema must declare exactly one primary key, found {len(keys)}: {keys}"
            )
        return self

    @property
    def primary_key(self) -> ColumnDefinition:
        return next(column for column in self.columns if column.primary_key)

    def names(self) -> List[str]:
        return [column.name for column in self.columns]

    def get(self, name: str) -> Optional[ColumnDefinition]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def render(self) -> List[str]:
        return [column.render() for column in self.columns]


FilterSpec = Union[str, Callable[[Any], Any]]


class FieldRef(BaseModel):
    """
    A plain mapping entry: a source locator plus optional kind and value filter.
    """

    path: str = Field(..., min_length=1, description="Dotted source locator.")
    kind: Optional[FieldKind] = Field(None, description="Detected media kind, if any.")
    filter: Optional[FilterSpec] = Field(
        None, description="Filter name (int, float, bool, string, date) or a callable."
    )

    model_config = {"frozen": True}


class RepeaterSpec(BaseModel):
    """
    A one-to-many mapping entry: each element of the source sequence is
    transformed with `sub_fields`.
    """

    path: str = Field(..., min_length=1, description="Dotted locator of the source sequence.")
    sub_fields: Dict[str, "FieldSpec"] = Field(default_factory=dict)
    depth: int = Field(..., ge=0, description="Depth budget that was available for this level.")
    repeater: Literal[True] = True

    model_config = {"frozen": True}


FieldSpec = Union[str, FieldRef, RepeaterSpec]
FieldMapping = Dict[str, FieldSpec]
TransformedRecord = Dict[str, Any]

RepeaterSpec.model_rebuild()


class MappingOptions(BaseModel):
    """
    Options for mapping generation. Immutable; recursion uses `descend()`.
    """

    title_field: Optional[str] = Field("title", description="Source field mapped to `title`.")
    content_field: Optional[str] = Field("content", description="Source field mapped to `content`.")
    detect_images: bool = Field(True, description="Detect image and gallery fields.")
    max_depth: int = Field(3, ge=0, description="Maximum repeater nesting depth.")

    model_config = {"frozen": True}

    def descend(self) -> "MappingOptions":
        """Options for one repeater level down; title/content exclusion does not apply there."""
        return self.model_copy(
            update={"max_depth": self.max_depth - 1, "title_field": None, "content_field": None}
        )


class QueryOptions(BaseModel):
    """
    Paging and ordering for table reads. A limit of 0 means no limit.
    """

    limit: int = Field(0, ge=0)
    offset: int = Field(0, ge=0)
    order_by: Optional[str] = None
    order_dir: Literal["ASC", "DESC"] = "ASC"

    model_config = {"frozen": True}

    @field_validator("order_dir", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class BatchInsertResult(BaseModel):
    """
    Outcome of a batch insert. A failed batch reports zero rows and no ids.
    """

    inserted: int = 0
    ids: List[Any] = Field(default_factory=list)


class ImportResult(BaseModel):
    """
    Outcome of importing one source record into a content target.
    """

    source_id: Any = None
    target_id: Any = None
    status: Literal["success", "failed"] = "success"
    error: Optional[str] = None
    field_errors: List[str] = Field(default_factory=list, description="Fields stored as NULL after a failed conversion.")


__all__ = [
    "BatchInsertResult",
    "ColumnDefinition",
    "ColumnSchema",
    "FieldKind",
    "FieldMapping",
    "FieldRef",
    "FieldSpec",
    "FilterSpec",
    "ImportResult",
    "MappingOptions",
    "QueryOptions",
    "RepeaterSpec",
    "StorageType",
    "TransformedRecord",
    "Value",
]
