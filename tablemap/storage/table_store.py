"""
Table store: typed CRUD over tables created on demand from example records.

Usage:
    from tablemap.infrastructure.postgres import PostgresEngine
    from tablemap.storage import TableStore

    store = TableStore(PostgresEngine())
    product_id = store.insert("products", {"name": "Widget", "price": 9.99, "tags": ["a", "b"]})
    rows = store.get("products", {"price >=": 5}, {"order_by": "price", "limit": 10})

Every operation catches StorageError at its boundary, logs it, and returns an
empty result (False, 0, [] or an empty BatchInsertResult) so a bad record never
aborts the caller's loop. SchemaConflictError from table creation propagates.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from tablemap.config import get_settings
from tablemap.domain.models import BatchInsertResult, ColumnSchema, QueryOptions, StorageType
from tablemap.errors import StorageError
from tablemap.mapping.codec import prepare_row, restore_row
from tablemap.mapping.schema import build_schema
from tablemap.storage.abstract import StorageEngine, parse_conditions
from tablemap.utils.logging import get_logger

log = get_logger(__name__)


class TableStore:
    """
    Relational data access layer driving a StorageEngine.

    Parameters
    ----------
    engine : StorageEngine
        Backend collaborator (e.g., PostgresEngine).
    primary_key : str | None
        Default primary-key column name (defaults to settings.primary_key_name).
    primary_key_type : StorageType | str | None
        Default primary-key type (defaults to settings.primary_key_type).
    """

    def __init__(
        self,
        engine: StorageEngine,
        primary_key: Optional[str] = None,
        primary_key_type: Union[StorageType, str, None] = None,
    ) -> None:
        settings = get_settings()
        self.engine = engine
        self.primary_key = primary_key or settings.primary_key_name
        self.primary_key_type = StorageType.parse(primary_key_type or settings.primary_key_type)
        self._schemas: Dict[str, ColumnSchema] = {}

    def schema_for(self, table: str) -> Optional[ColumnSchema]:
        """Schema of a table created through this store, if any."""
        return self._schemas.get(table)

    def table_exists(self, table: str) -> bool:
        try:
            return self.engine.table_exists(table)
        except StorageError:
            log.exception("Table existence check failed", extra={"table": table})
            return False

    def create_table(
        self,
        table: str,
        example: Mapping[str, Any],
        primary_key: Optional[str] = None,
        primary_key_type: Union[StorageType, str, None] = None,
    ) -> bool:
        """
        Create `table` from an example record unless it already exists.

        Returns True when the table exists afterwards, False on storage failure.
        Raises SchemaConflictError when the example cannot define the table.
        """
        if self.table_exists(table):
            return True

        schema = build_schema(
            example,
            primary_key=primary_key or self.primary_key,
            primary_key_type=primary_key_type or self.primary_key_type,
        )
        try:
            self.engine.create_table(table, schema)
        except StorageError:
            log.exception("Failed to create table", extra={"table": table})
            return False

        self._schemas[table] = schema
        log.info("Table ready", extra={"table": table, "columns": schema.render()})
        return True

    def insert(
        self,
        table: str,
        data: Mapping[str, Any],
        primary_key: Optional[str] = None,
        auto_create: bool = True,
    ) -> Any:
        """
        Insert one record and return its primary-key value, or 0 on failure.
        """
        key = primary_key or self.primary_key
        if auto_create and not self.create_table(table, data, primary_key=key):
            return 0

        row = prepare_row(data)
        try:
            ids = self.engine.insert_rows(table, list(row), [list(row.values())], returning=key)
        except StorageError:
            log.exception("Insert failed", extra={"table": table})
            return 0
        return ids[0] if ids else 0

    def get(
        self,
        table: str,
        conditions: Optional[Mapping[str, Any]] = None,
        options: Union[QueryOptions, Mapping[str, Any], None] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read rows matching `conditions`, decoding composite values.

        Condition keys are ``"column"`` or ``"column <op>"``; list values match
        with IN. Options: limit, offset, order_by, order_dir.
        """
        if not self.table_exists(table):
            return []

        query_options = options if isinstance(options, QueryOptions) else QueryOptions(**(options or {}))
        try:
            rows = self.engine.select(table, parse_conditions(conditions), query_options)
        except StorageError:
            log.exception("Query failed", extra={"table": table})
            return []
        return [restore_row(row) for row in rows]

    def update(
        self,
        table: str,
        data: Mapping[str, Any],
        conditions: Mapping[str, Any],
    ) -> int:
        """Update rows matching `conditions`; returns the affected row count."""
        if not self.table_exists(table):
            return 0
        if not data or not conditions:
            log.warning(
                "Update skipped: data and conditions are required",
                extra={"table": table},
            )
            return 0

        try:
            return self.engine.update(table, prepare_row(data), parse_conditions(conditions))
        except StorageError:
            log.exception("Update failed", extra={"table": table})
            return 0

    def delete(self, table: str, conditions: Mapping[str, Any]) -> int:
        """Delete rows matching `conditions`; returns the affected row count."""
        if not self.table_exists(table):
            return 0
        if not conditions:
            log.warning("Delete skipped: conditions are required", extra={"table": table})
            return 0

        try:
            return self.engine.delete(table, parse_conditions(conditions))
        except StorageError:
            log.exception("Delete failed", extra={"table": table})
            return 0

    def batch_insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        primary_key: Optional[str] = None,
        auto_create: bool = True,
    ) -> BatchInsertResult:
        """
        Insert many records atomically.

        Columns come from the first record; missing values in later records are
        stored as NULL. On failure the whole batch is rolled back and the result
        reports zero rows and no ids.
        """
        if not rows:
            return BatchInsertResult()

        key = primary_key or self.primary_key
        if auto_create and not self.create_table(table, rows[0], primary_key=key):
            return BatchInsertResult()

        prepared = [prepare_row(row) for row in rows]
        columns = list(prepared[0])
        extra = sorted({name for row in prepared[1:] for name in row} - set(columns))
        if extra:
            log.warning("Fields missing from the first record are ignored", extra={"table": table, "fields": extra})
        values = [[row.get(name) for name in columns] for row in prepared]

        try:
            ids = self.engine.insert_rows(table, columns, values, returning=key)
        except StorageError:
            log.exception("Batch insert failed, rolled back", extra={"table": table, "rows": len(rows)})
            return BatchInsertResult()

        log.info("Batch inserted", extra={"table": table, "rows": len(ids)})
        return BatchInsertResult(inserted=len(ids), ids=ids)


__all__ = ["TableStore"]
