"""
Exception hierarchy and result markers shared across tablemap.

Storage and API failures are raised as the exceptions below by the
infrastructure layer and caught at operation boundaries by the table store and
the importer. A locator that does not resolve is not an error: it yields the
`ABSENT` sentinel.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class TablemapError(Exception):
    """Base class for all tablemap errors."""


class SchemaConflictError(TablemapError):
    """The example record cannot produce a valid table definition."""


class StorageError(TablemapError):
    """A storage engine operation failed."""


class ApiError(TablemapError):
    """A remote API request failed or returned a non-success status."""

    def __init__(
        self, message: str, status: Optional[int] = None, response: Any = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.response = response


class ContentTargetError(TablemapError):
    """The content-system collaborator rejected a record."""


class _Absent:
    """Sentinel type for a locator that does not resolve."""

    _instance: Optional["_Absent"] = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


class FieldError(BaseModel):
    """
    Marker stored in a transformed record when a field could not be converted.
    """

    field: str = Field(..., description="Target field that failed.")
    kind: str = Field(..., description="Failure kind, e.g. UnparseableTimestamp.")
    message: str = Field(..., description="Human-readable failure description.")
    value: Any = Field(None, description="Source value that failed conversion.")

    model_config = {"frozen": True}


__all__ = [
    "ABSENT",
    "ApiError",
    "ContentTargetError",
    "FieldError",
    "SchemaConflictError",
    "StorageError",
    "TablemapError",
]
