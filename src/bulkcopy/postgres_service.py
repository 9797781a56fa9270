"""PostgreSQL implementation of DatabaseService."""

import threading
from contextlib import contextmanager
from queue import Empty, Queue
from typing import Any, Iterator, Optional, Sequence

import psycopg2
import psycopg2.extras
from psycopg2 import sql

from bulkcopy.errors import DatabaseConnectError, InsertError
from bulkcopy.service import DatabaseService
from bulkcopy.types import Params, ParamsList

COLUMNS_QUERY = """
SELECT column_name
FROM information_schema.columns
WHERE table_schema = COALESCE(%s, current_schema()) AND table_name = %s
ORDER BY ordinal_position
"""


def _table_identifier(table: str, schema: Optional[str]) -> sql.Composable:
    if schema:
        return sql.Identifier(schema, table)
    return sql.Identifier(table)


class PostgresDatabaseService(DatabaseService):
    """PostgreSQL backend using psycopg2.

    Thread-safe via a connection pool (Queue). Each transaction() call
    acquires a dedicated connection and returns it on exit.
    """

    serial_primary_key = "BIGSERIAL PRIMARY KEY"

    def __init__(self, dsn: str, pool_size: int = 4, page_size: int = 1000):
        self._dsn = dsn
        self._pool_size = pool_size
        self._page_size = page_size
        self._pool: Queue = Queue(maxsize=pool_size)
        self._local = threading.local()

    @property
    def database_name(self) -> str:
        return psycopg2.extensions.parse_dsn(self._dsn).get("dbname", "")

    def connect(self) -> None:
        for _ in range(self._pool_size):
            try:
                conn = psycopg2.connect(self._dsn)
            except psycopg2.Error as e:
                raise DatabaseConnectError(str(e).strip()) from e
            conn.autocommit = False
            self._pool.put(conn)

    def close(self) -> None:
        while not self._pool.empty():
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except Empty:
                break

    def _acquire(self):
        return self._pool.get(timeout=30)

    def _release(self, conn) -> None:
        self._pool.put(conn)

    def _get_conn(self):
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            return conn
        raise RuntimeError(
            "No active transaction. Wrap calls in a `with service.transaction():` block."
        )

    @contextmanager
    def transaction(self) -> Iterator[None]:
        conn = self._acquire()
        self._local.conn = conn
        try:
            yield
        except Exception:
            conn.rollback()
            raise
        else:
            # Deferred constraints are only checked here.
            try:
                conn.commit()
            except psycopg2.Error as e:
                conn.rollback()
                raise InsertError(str(e).strip()) from e
        finally:
            self._local.conn = None
            self._release(conn)

    def execute(self, sql: Any, params: Params | None = None) -> list[dict[str, Any]]:
        conn = self._get_conn()
        with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(sql, params or ())
            if cur.description is None:
                return []
            return [dict(row) for row in cur.fetchall()]

    def execute_many(self, sql: Any, params_list: ParamsList) -> None:
        conn = self._get_conn()
        with conn.cursor() as cur:
            cur.executemany(sql, params_list)

    def execute_ddl(self, sql: str) -> None:
        conn = self._acquire()
        try:
            with conn.cursor() as cur:
                for statement in sql.split(";"):
                    statement = statement.strip()
                    if statement:
                        cur.execute(statement)
            conn.commit()
        finally:
            self._release(conn)

    def get_columns(self, table: str, schema: Optional[str] = None) -> list[str]:
        rows = self.execute(COLUMNS_QUERY, (schema, table))
        return [row["column_name"] for row in rows]

    def _insert_prefix(
        self, table: str, columns: Sequence[str], schema: Optional[str]
    ) -> sql.Composed:
        return sql.SQL("INSERT INTO {} ({}) VALUES ").format(
            _table_identifier(table, schema),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        )

    def batch_insert(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        schema: Optional[str] = None,
    ) -> None:
        if not rows:
            return
        query = self._insert_prefix(table, columns, schema) + sql.SQL("%s")
        conn = self._get_conn()
        try:
            with conn.cursor() as cur:
                psycopg2.extras.execute_values(
                    cur, query.as_string(conn), rows, page_size=self._page_size
                )
        except (psycopg2.Error, ValueError) as e:
            # ValueError: psycopg2 refuses to adapt strings holding NUL.
            raise InsertError(str(e).strip()) from e

    def insert_row(
        self,
        table: str,
        columns: Sequence[str],
        row: Sequence[Any],
        schema: Optional[str] = None,
    ) -> None:
        placeholders = sql.SQL(", ").join(sql.Placeholder() for _ in columns)
        query = self._insert_prefix(table, columns, schema) + sql.SQL("({})").format(placeholders)
        try:
            self.execute(query, tuple(row))
        except (psycopg2.Error, ValueError) as e:
            raise InsertError(str(e).strip()) from e

    def delete_all(self, table: str, schema: Optional[str] = None) -> int:
        query = sql.SQL("DELETE FROM {}").format(_table_identifier(table, schema))
        with self._get_conn().cursor() as cur:
            cur.execute(query)
            return cur.rowcount
