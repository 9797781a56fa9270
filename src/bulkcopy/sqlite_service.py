"""SQLite implementation of DatabaseService."""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from queue import Empty, Queue
from typing import Any, Iterator, Optional, Sequence

from bulkcopy.errors import DatabaseConnectError, InsertError
from bulkcopy.identifiers import qualified_name, quote_identifier
from bulkcopy.service import DatabaseService
from bulkcopy.types import Params, ParamsList


class SQLiteDatabaseService(DatabaseService):
    """SQLite backend using stdlib sqlite3.

    Thread-safe via a connection pool (Queue). Each transaction() call
    acquires a dedicated connection and returns it on exit. ``schema`` maps
    to an attached database name such as ``main``.
    """

    serial_primary_key = "INTEGER PRIMARY KEY AUTOINCREMENT"

    def __init__(self, db_path: str, pool_size: int = 4):
        self._db_path = db_path
        self._pool_size = pool_size
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self._local = threading.local()

    @property
    def database_name(self) -> str:
        if self._db_path == ":memory:":
            return self._db_path
        return Path(self._db_path).stem

    def connect(self) -> None:
        for _ in range(self._pool_size):
            try:
                conn = sqlite3.connect(self._db_path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA foreign_keys=ON")
            except sqlite3.Error as e:
                raise DatabaseConnectError(
                    f"Cannot open SQLite database {self._db_path}: {e}"
                ) from e
            self._pool.put(conn)

    def close(self) -> None:
        while not self._pool.empty():
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except Empty:
                break

    def _acquire(self) -> sqlite3.Connection:
        return self._pool.get(timeout=30)

    def _release(self, conn: sqlite3.Connection) -> None:
        self._pool.put(conn)

    def _get_conn(self) -> sqlite3.Connection:
        """Get the connection bound to the current transaction."""
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
            except sqlite3.Error as e:
                conn.rollback()
                raise InsertError(str(e)) from e
        finally:
            self._local.conn = None
            self._release(conn)

    def execute(self, sql: str, params: Params | None = None) -> list[dict[str, Any]]:
        conn = self._get_conn()
        cursor = conn.execute(sql, params or ())
        if cursor.description is None:
            return []
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute_many(self, sql: str, params_list: ParamsList) -> None:
        conn = self._get_conn()
        conn.executemany(sql, params_list)

    def execute_ddl(self, sql: str) -> None:
        conn = self._acquire()
        try:
            conn.executescript(sql)
            conn.commit()
        finally:
            self._release(conn)

    def get_columns(self, table: str, schema: Optional[str] = None) -> list[str]:
        prefix = f"{quote_identifier(schema)}." if schema else ""
        rows = self.execute(f"PRAGMA {prefix}table_info({quote_identifier(table)})")
        return [row["name"] for row in sorted(rows, key=lambda r: r["cid"])]

    def _insert_sql(self, table: str, columns: Sequence[str], schema: Optional[str]) -> str:
        cols = ", ".join(quote_identifier(c) for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        return f"INSERT INTO {qualified_name(table, schema)} ({cols}) VALUES ({placeholders})"

    def batch_insert(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        schema: Optional[str] = None,
    ) -> None:
        if not rows:
            return
        try:
            self.execute_many(self._insert_sql(table, columns, schema), rows)
        except sqlite3.Error as e:
            raise InsertError(str(e)) from e

    def insert_row(
        self,
        table: str,
        columns: Sequence[str],
        row: Sequence[Any],
        schema: Optional[str] = None,
    ) -> None:
        try:
            self.execute(self._insert_sql(table, columns, schema), tuple(row))
        except sqlite3.Error as e:
            raise InsertError(str(e)) from e

    def delete_all(self, table: str, schema: Optional[str] = None) -> int:
        cursor = self._get_conn().execute(f"DELETE FROM {qualified_name(table, schema)}")
        return cursor.rowcount
