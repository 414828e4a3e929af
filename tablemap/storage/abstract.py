"""
Storage engine interface and query-condition contracts for tablemap.

The table store talks to a relational backend only through the StorageEngine
protocol. Concrete engines (e.g., PostgresEngine) pass every data value as a
bound parameter and raise StorageError on failure; the table store converts
those failures into empty results at its operation boundaries.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Protocol, Sequence, runtime_checkable

from tablemap.domain.models import ColumnSchema, QueryOptions

OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">=", "LIKE", "ILIKE"})


class Condition(NamedTuple):
    """One `column <operator> value` predicate; predicates are ANDed."""

    column: str
    operator: str
    value: Any


def parse_condition_key(key: str) -> tuple[str, str]:
    """
    Split a condition key such as ``"price >="`` into column and operator.

    A key without a recognised trailing operator compares with ``=``.
    """
    text = key.strip()
    head, _, tail = text.rpartition(" ")
    if head and tail.upper() in OPERATORS:
        return head.strip(), tail.upper()
    return text, "="


def parse_conditions(conditions: Optional[Mapping[str, Any]]) -> List[Condition]:
    """Turn a `{"column [op]": value}` mapping into Condition tuples."""
    if not conditions:
        return []
    parsed = []
    for key, value in conditions.items():
        column, operator = parse_condition_key(key)
        parsed.append(Condition(column, operator, value))
    return parsed


@runtime_checkable
class StorageEngine(Protocol):
    """
    Relational storage collaborator used by TableStore.

    Every method raises StorageError when the backend fails.
    """

    def table_exists(self, table: str) -> bool:
        """Whether `table` exists."""
        ...

    def create_table(self, table: str, schema: ColumnSchema) -> None:
        """Create `table` with the given columns."""
        ...

    def insert_rows(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        returning: Optional[str] = None,
    ) -> List[Any]:
        """
        Insert all rows atomically and return the `returning` column value of
        each inserted row, in input order (empty when `returning` is None).
        """
        ...

    def select(
        self,
        table: str,
        conditions: Sequence[Condition],
        options: QueryOptions,
    ) -> List[Dict[str, Any]]:
        """Return matching rows as dicts."""
        ...

    def update(self, table: str, values: Mapping[str, Any], conditions: Sequence[Condition]) -> int:
        """Update matching rows and return the affected row count."""
        ...

    def delete(self, table: str, conditions: Sequence[Condition]) -> int:
        """Delete matching rows and return the affected row count."""
        ...


__all__ = [
    "Condition",
    "OPERATORS",
    "StorageEngine",
    "parse_condition_key",
    "parse_conditions",
]
