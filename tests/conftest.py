"""
Pytest configuration for tablemap.

Provides fixtures for:
- An in-memory StorageEngine and a TableStore over it (unit tests)
- An in-memory ContentTarget for importer tests
- Database connection management for PostgreSQL integration tests
"""

from __future__ import annotations

import logging
import operator
import os
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional, Sequence

import psycopg
import pytest

from tablemap.config import Settings, get_settings
from tablemap.domain.models import ColumnSchema, FieldKind, QueryOptions, TransformedRecord
from tablemap.errors import ContentTargetError, StorageError
from tablemap.storage.abstract import Condition
from tablemap.storage.table_store import TableStore

_COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def _matches(row: Mapping[str, Any], condition: Condition) -> bool:
    value = row.get(condition.column)
    negated = condition.operator in ("!=", "<>")
    if isinstance(condition.value, (list, tuple)):
        return (value in condition.value) != negated
    if condition.value is None:
        return (value is None) != negated
    if value is None:
        return False
    return _COMPARATORS[condition.operator](value, condition.value)


class InMemoryEngine:
    """
    StorageEngine double keeping tables as lists of dicts.

    Operations named in `fail_on` raise StorageError, e.g. ``{"insert_rows"}``.
    """

    def __init__(self) -> None:
        self.schemas: Dict[str, ColumnSchema] = {}
        self.rows: Dict[str, List[Dict[str, Any]]] = {}
        self.next_id: Dict[str, int] = {}
        self.fail_on: set[str] = set()
        self.calls: List[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise StorageError(f"{name} failed")

    def table_exists(self, table: str) -> bool:
        self._enter("table_exists")
        return table in self.schemas

    def create_table(self, table: str, schema: ColumnSchema) -> None:
        self._enter("create_table")
        if table in self.schemas:
            raise StorageError(f"relation {table} already exists")
        self.schemas[table] = schema
        self.rows[table] = []
        self.next_id[table] = 1

    def insert_rows(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        returning: Optional[str] = None,
    ) -> List[Any]:
        self._enter("insert_rows")
        schema = self.schemas[table]
        known = set(schema.names())
        unknown = [name for name in columns if name not in known]
        if unknown:
            raise StorageError(f"column {unknown[0]} does not exist")

        key = schema.primary_key
        existing = {row[key.name] for row in self.rows[table]}
        staged = []
        next_id = self.next_id[table]
        for values in rows:
            row = {name: None for name in schema.names()}
            row.update(zip(columns, values))
            if row[key.name] is None and key.auto_increment:
                row[key.name] = next_id
                next_id += 1
            if row[key.name] in existing:
                raise StorageError(f"duplicate key value {row[key.name]}")
            existing.add(row[key.name])
            staged.append(row)

        self.rows[table].extend(staged)
        self.next_id[table] = next_id
        return [row[returning] for row in staged] if returning else []

    def select(
        self,
        table: str,
        conditions: Sequence[Condition],
        options: QueryOptions,
    ) -> List[Dict[str, Any]]:
        self._enter("select")
        found = [dict(row) for row in self.rows[table] if all(_matches(row, c) for c in conditions)]
        if options.order_by:
            found.sort(key=lambda row: row[options.order_by], reverse=options.order_dir == "DESC")
        if options.limit:
            found = found[options.offset : options.offset + options.limit]
        return found

    def update(self, table: str, values: Mapping[str, Any], conditions: Sequence[Condition]) -> int:
        self._enter("update")
        count = 0
        for row in self.rows[table]:
            if all(_matches(row, c) for c in conditions):
                row.update(values)
                count += 1
        return count

    def delete(self, table: str, conditions: Sequence[Condition]) -> int:
        self._enter("delete")
        kept = [row for row in self.rows[table] if not all(_matches(row, c) for c in conditions)]
        count = len(self.rows[table]) - len(kept)
        self.rows[table] = kept
        return count


class InMemoryContentTarget:
    """
    ContentTarget double. Items whose `title` is in `reject_titles` are refused.
    """

    def __init__(self) -> None:
        self.items: Dict[int, TransformedRecord] = {}
        self.field_definitions: Dict[str, Dict[str, FieldKind]] = {}
        self.reject_titles: set[str] = set()
        self._next_id = 100

    def find_existing(self, target_type: str, unique_field: str, unique_value: Any) -> Optional[Any]:
        for item_id, item in self.items.items():
            if item.get("_type") == target_type and item.get(unique_field) == unique_value:
                return item_id
        return None

    def upsert(self, target_type: str, target_id: Optional[Any], record: TransformedRecord) -> Any:
        if record.get("title") in self.reject_titles:
            raise ContentTargetError(f"rejected {record.get('title')!r}")
        if target_id is None:
            target_id = self._next_id
            self._next_id += 1
        self.items[target_id] = {"_type": target_type, **record}
        return target_id

    def ensure_field_definition(self, name: str, field_kind: FieldKind, target_type: str) -> None:
        self.field_definitions.setdefault(target_type, {}).setdefault(name, field_kind)


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    """Clear the settings cache so env overrides in one test never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Generator[None, None, None]:
    """Drop handlers installed by configure_logging during a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def engine() -> InMemoryEngine:
    return InMemoryEngine()


@pytest.fixture
def store(engine: InMemoryEngine) -> TableStore:
    return TableStore(engine)


@pytest.fixture
def content_target() -> InMemoryContentTarget:
    return InMemoryContentTarget()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "tablemap"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return test_settings.dsn


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture
def pg_table(test_dsn: str, db_connection_available: bool) -> Generator[str, None, None]:
    """
    Name of a scratch table, dropped before and after the test.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    name = "tablemap_it_products"
    with psycopg.connect(test_dsn) as conn:
        conn.execute(f'DROP TABLE IF EXISTS "{name}"')
    yield name
    with psycopg.connect(test_dsn) as conn:
        conn.execute(f'DROP TABLE IF EXISTS "{name}"')
