"""
Storage boundary for history tables.

Components never hold a global database handle: they receive a `RowStore` and
use its two operations, a multi-row insert and a row-returning query.
`PostgresStore` implements the protocol on a psycopg 3 connection; tests use
in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Protocol, Sequence, runtime_checkable

from psycopg import Connection, sql
from psycopg.rows import dict_row

from txhistory.utils.logging import get_logger

log = get_logger(__name__)

Row = Dict[str, Any]


@runtime_checkable
class RowStore(Protocol):
    """
    Minimal storage interface used by buffers, queries and checkers.
    """

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        """
        Insert all `rows` into `table` atomically and return the number written.

        Every row must have the same columns in the same order.
        """
        ...

    def fetch_rows(self, query: sql.Composable, params: Sequence[Any] = ()) -> List[Row]:
        """Run a row-returning statement and return rows as column -> value dicts."""
        ...


def build_insert(table: str, columns: Sequence[str], row_count: int) -> sql.Composed:
    """
    Multi-row INSERT for `row_count` rows of `columns`.
    """
    placeholders = sql.SQL("({})").format(sql.SQL(", ").join(sql.Placeholder() * len(columns)))
    return sql.SQL("INSERT INTO {table} ({columns}) VALUES {values}").format(
        table=sql.Identifier(table),
        columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
        values=sql.SQL(", ").join([placeholders] * row_count),
    )


class PostgresStore:
    """
    RowStore backed by a psycopg connection.

    The connection is expected to be in autocommit mode (see
    `db_factory.get_sync_connection`); each insert runs inside its own
    transaction block so a batch commits or fails as a whole.
    """

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    @property
    def connection(self) -> Connection:
        return self._conn

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        if not rows:
            return 0
        columns = list(rows[0].keys())
        params: List[Any] = []
        for row in rows:
            if list(row.keys()) != columns:
                raise ValueError(f"row columns {list(row.keys())} do not match {columns}")
            params.extend(row[column] for column in columns)

        query = build_insert(table, columns, len(rows))
        with self._conn.transaction():
            with self._conn.cursor() as cur:
                cur.execute(query, params)
        log.debug("Inserted rows", extra={"table": table, "rows": len(rows)})
        return len(rows)

    def fetch_rows(self, query: sql.Composable, params: Sequence[Any] = ()) -> List[Row]:
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, params)
            return list(cur.fetchall())


__all__ = ["PostgresStore", "Row", "RowStore", "build_insert"]
