"""
PostgreSQL storage engine built on psycopg 3.

Identifiers are composed with `psycopg.sql` and every data value travels as a
bound parameter. Batch inserts run in one transaction and return the generated
keys through `INSERT ... RETURNING`, so ids never depend on contiguous
sequence ranges.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Generator, Iterable, List, Mapping, Optional, Sequence, Tuple

import psycopg
from psycopg import Connection, sql
from psycopg_pool import ConnectionPool

from tablemap.domain.models import ColumnDefinition, ColumnSchema, QueryOptions, StorageType
from tablemap.errors import StorageError
from tablemap.infrastructure.db_factory import get_sync_connection, get_sync_pool
from tablemap.storage.abstract import Condition
from tablemap.utils.logging import get_logger

log = get_logger(__name__)

# PostgreSQL caps bind parameters per statement at 65535.
MAX_BIND_PARAMS = 65535

POSTGRES_TYPES: Dict[StorageType, str] = {
    StorageType.INTEGER: "INTEGER",
    StorageType.DECIMAL: "NUMERIC(10,2)",
    StorageType.BOOLEAN: "BOOLEAN",
    StorageType.VARCHAR: "VARCHAR(255)",
    StorageType.LONG_TEXT: "TEXT",
    StorageType.DATETIME: "TIMESTAMP",
    StorageType.IMAGE: "TEXT",
    StorageType.GALLERY: "TEXT",
}


def column_type_sql(column: ColumnDefinition) -> str:
    """Render the PostgreSQL type clause of one column."""
    parts = [POSTGRES_TYPES[column.storage_type]]
    if column.auto_increment:
        parts.append("GENERATED BY DEFAULT AS IDENTITY")
    if column.primary_key:
        parts.append("PRIMARY KEY")
    return " ".join(parts)


def _table(name: str) -> sql.Identifier:
    return sql.Identifier(*name.split("."))


def _chunks(rows: Sequence[Sequence[Any]], size: int) -> Iterable[Sequence[Sequence[Any]]]:
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def build_where(conditions: Sequence[Condition]) -> Tuple[sql.Composable, List[Any]]:
    """
    Compose a WHERE clause from ANDed conditions.

    List/tuple values become ``IN``/``NOT IN``; None compared with ``=``/``!=``
    becomes ``IS NULL``/``IS NOT NULL``.
    """
    if not conditions:
        return sql.SQL(""), []

    parts: List[sql.Composable] = []
    params: List[Any] = []
    for condition in conditions:
        column = sql.Identifier(condition.column)
        negated = condition.operator in ("!=", "<>")
        if isinstance(condition.value, (list, tuple, set, frozenset)):
            values = list(condition.value)
            if not values:
                parts.append(sql.SQL("TRUE" if negated else "FALSE"))
                continue
            keyword = "NOT IN" if negated else "IN"
            placeholders = sql.SQL(", ").join(sql.Placeholder() * len(values))
            parts.append(sql.SQL("{} {} ({})").format(column, sql.SQL(keyword), placeholders))
            params.extend(values)
        elif condition.value is None and condition.operator in ("=", "!=", "<>"):
            keyword = "IS NOT NULL" if negated else "IS NULL"
            parts.append(sql.SQL("{} {}").format(column, sql.SQL(keyword)))
        else:
            parts.append(
                sql.SQL("{} {} {}").format(column, sql.SQL(condition.operator), sql.Placeholder())
            )
            params.append(condition.value)

    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(parts), params


class PostgresEngine:
    """
    StorageEngine implementation over a psycopg connection pool.

    Uses the shared pool from `get_sync_pool()` unless a pool or a DSN override
    is supplied; with a DSN override each operation opens a dedicated
    connection (with retry) and closes it afterwards.
    """

    def __init__(
        self,
        pool: Optional[ConnectionPool] = None,
        dsn_override: Optional[str] = None,
    ) -> None:
        self._pool_instance = pool
        self._dsn_override = dsn_override

    def _get_pool(self) -> ConnectionPool:
        if self._pool_instance is None:
            self._pool_instance = get_sync_pool()
        return self._pool_instance

    @contextmanager
    def _connection(self) -> Generator[Connection, None, None]:
        """
        Yield a connection that commits on success and rolls back on error,
        translating psycopg failures into StorageError.
        """
        try:
            if self._dsn_override:
                with get_sync_connection(self._dsn_override) as conn:
                    yield conn
            else:
                with self._get_pool().connection() as conn:
                    yield conn
        except psycopg.Error as exc:
            raise StorageError(str(exc)) from exc

    def table_exists(self, table: str) -> bool:
        with self._connection() as conn:
            qualified = _table(table).as_string(conn)
            row = conn.execute(
                "SELECT to_regclass(%s) IS NOT NULL AS present", (qualified,)
            ).fetchone()
        return bool(row and row["present"])

    def create_table(self, table: str, schema: ColumnSchema) -> None:
        columns = sql.SQL(", ").join(
            sql.SQL("{} {}").format(sql.Identifier(column.name), sql.SQL(column_type_sql(column)))
            for column in schema.columns
        )
        query = sql.SQL("CREATE TABLE {} ({})").format(_table(table), columns)
        with self._connection() as conn:
            conn.execute(query)
        log.info("Table created", extra={"table": table, "columns": schema.names()})

    def insert_rows(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        returning: Optional[str] = None,
    ) -> List[Any]:
        if not rows:
            return []

        returning_sql = (
            sql.SQL(" RETURNING {}").format(sql.Identifier(returning)) if returning else sql.SQL("")
        )
        ids: List[Any] = []
        with self._connection() as conn, conn.transaction():
            if not columns:
                query = sql.SQL("INSERT INTO {} DEFAULT VALUES").format(_table(table)) + returning_sql
                for _ in rows:
                    cur = conn.execute(query)
                    if returning:
                        ids.extend(r[returning] for r in cur.fetchall())
                return ids

            column_list = sql.SQL(", ").join(sql.Identifier(name) for name in columns)
            row_sql = sql.SQL("({})").format(sql.SQL(", ").join(sql.Placeholder() * len(columns)))
            chunk_size = max(1, MAX_BIND_PARAMS // len(columns))
            for chunk in _chunks(rows, chunk_size):
                query = (
                    sql.SQL("INSERT INTO {} ({}) VALUES {}").format(
                        _table(table), column_list, sql.SQL(", ").join([row_sql] * len(chunk))
                    )
                    + returning_sql
                )
                params = [value for row in chunk for value in row]
                cur = conn.execute(query, params)
                if returning:
                    ids.extend(r[returning] for r in cur.fetchall())
        return ids

    def select(
        self,
        table: str,
        conditions: Sequence[Condition],
        options: QueryOptions,
    ) -> List[Dict[str, Any]]:
        where, params = build_where(conditions)
        query = sql.SQL("SELECT * FROM {}").format(_table(table)) + where
        if options.order_by:
            query += sql.SQL(" ORDER BY {} {}").format(
                sql.Identifier(options.order_by), sql.SQL(options.order_dir)
            )
        if options.limit > 0:
            query += sql.SQL(" LIMIT {} OFFSET {}").format(sql.Placeholder(), sql.Placeholder())
            params.extend([options.limit, options.offset])
        with self._connection() as conn:
            return list(conn.execute(query, params).fetchall())

    def update(self, table: str, values: Mapping[str, Any], conditions: Sequence[Condition]) -> int:
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(name), sql.Placeholder()) for name in values
        )
        where, where_params = build_where(conditions)
        query = sql.SQL("UPDATE {} SET {}").format(_table(table), assignments) + where
        with self._connection() as conn:
            cur = conn.execute(query, [*values.values(), *where_params])
            return cur.rowcount

    def delete(self, table: str, conditions: Sequence[Condition]) -> int:
        where, params = build_where(conditions)
        query = sql.SQL("DELETE FROM {}").format(_table(table)) + where
        with self._connection() as conn:
            cur = conn.execute(query, params)
            return cur.rowcount


__all__ = ["POSTGRES_TYPES", "PostgresEngine", "build_where", "column_type_sql"]
