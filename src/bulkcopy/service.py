"""Abstract DatabaseService interface."""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from bulkcopy.types import Params, ParamsList


class DatabaseService(ABC):
    """Database-agnostic interface for all DB operations.

    Design principles:
    - Stateless: no mutable state beyond the connection pool
    - Thread-safe: each transaction() acquires its own connection
    - DB-agnostic: callers program against this ABC, never a concrete backend

    ``batch_insert`` and ``insert_row`` raise :class:`bulkcopy.errors.InsertError`
    when the database rejects the data, whatever the driver's own exception.
    """

    #: Column type clause for an auto-numbered surrogate key in this dialect.
    serial_primary_key: str = "INTEGER PRIMARY KEY"

    @abstractmethod
    def connect(self) -> None:
        """Initialize the connection pool."""

    @abstractmethod
    def close(self) -> None:
        """Close all connections and release resources."""

    @property
    @abstractmethod
    def database_name(self) -> str:
        """Name of the database this service points at, for error reporting."""

    @abstractmethod
    def execute(self, sql: Any, params: Params | None = None) -> list[dict[str, Any]]:
        """Execute a single SQL statement and return rows as dicts."""

    @abstractmethod
    def execute_many(self, sql: Any, params_list: ParamsList) -> None:
        """Execute a SQL statement for each parameter set."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Context manager: acquires a connection, commits on success, rolls back on error.

        A commit the database refuses raises :class:`bulkcopy.errors.InsertError`.
        """

    @abstractmethod
    def execute_ddl(self, sql: str) -> None:
        """Execute DDL statements (CREATE TABLE, CREATE INDEX, etc.)."""

    @abstractmethod
    def get_columns(self, table: str, schema: Optional[str] = None) -> list[str]:
        """Column names of a table in ordinal order; empty if the table does not exist."""

    @abstractmethod
    def batch_insert(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        schema: Optional[str] = None,
    ) -> None:
        """Insert multiple rows into a table in one bulk operation."""

    @abstractmethod
    def insert_row(
        self,
        table: str,
        columns: Sequence[str],
        row: Sequence[Any],
        schema: Optional[str] = None,
    ) -> None:
        """Insert a single row into a table."""

    @abstractmethod
    def delete_all(self, table: str, schema: Optional[str] = None) -> int:
        """Delete every row of a table. Returns the number of rows removed, if known."""
