"""Dead-letter recording for rows the destination rejected."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone

from bulkcopy.identifiers import quote_identifier, sanitize_identifier
from bulkcopy.service import DatabaseService

logger = logging.getLogger(__name__)

DEFAULT_ERROR_TABLE = "bulkcopy_errors"

ERROR_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    id               {serial_primary_key},
    source_database  VARCHAR(255) NOT NULL,
    source_table     VARCHAR(255) NOT NULL,
    csv_row_number   INTEGER      NOT NULL,
    csv_row_data     TEXT         NOT NULL,
    error_message    TEXT         NOT NULL,
    error_timestamp  TIMESTAMP    NOT NULL
);
"""

ERROR_COLUMNS = [
    "source_database",
    "source_table",
    "csv_row_number",
    "csv_row_data",
    "error_message",
    "error_timestamp",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ErrorRecord:
    """One rejected row.

    ``csv_row_data`` is the header line, a newline, then the row itself, both
    CSV-escaped so the text can be parsed again.
    """

    row_number: int
    csv_row_data: str
    error_message: str
    timestamp: datetime = field(default_factory=_utcnow)


class ErrorSink(ABC):
    """Receives every row that failed on its own during degraded mode."""

    @abstractmethod
    def record(self, error: ErrorRecord) -> None:
        """Persist one error. May raise; the importer logs and carries on."""


class TableErrorSink(ErrorSink):
    """Appends errors to a dead-letter table, possibly in another database."""

    def __init__(
        self,
        service: DatabaseService,
        source_database: str,
        source_table: str,
        table: str = DEFAULT_ERROR_TABLE,
    ):
        self._service = service
        self._source_database = source_database
        self._source_table = source_table
        self.table = sanitize_identifier(table)

    def ensure_table(self) -> None:
        """Create the error table if it doesn't exist."""
        self._service.execute_ddl(
            ERROR_TABLE_DDL.format(
                table=quote_identifier(self.table),
                serial_primary_key=self._service.serial_primary_key,
            )
        )
        logger.info("Error table %s is ready", self.table)

    def record(self, error: ErrorRecord) -> None:
        row = (
            self._source_database,
            self._source_table,
            error.row_number,
            error.csv_row_data,
            error.error_message,
            error.timestamp.isoformat(sep=" "),
        )
        with self._service.transaction():
            self._service.insert_row(self.table, ERROR_COLUMNS, row)
        logger.info("Logged error for row %d to %s", error.row_number, self.table)
