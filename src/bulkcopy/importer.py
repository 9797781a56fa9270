"""Batch-then-row import of a CSV stream into a database table.

Each batch is first written with one bulk insert inside its own transaction.
If that fails, the transaction is rolled back and the batch is replayed one row
at a time. Rows that fail on their own are counted and handed to the error
sink. Nothing after setup stops the stream: only a missing destination, an
unmapped column or an empty CSV (without ``allow_empty``) is fatal.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, TextIO

from bulkcopy.batching import Batch, BatchedCsvReader
from bulkcopy.csv_parser import DEFAULT_NULL_VALUE, format_row
from bulkcopy.error_sink import ErrorRecord, ErrorSink
from bulkcopy.errors import InsertError
from bulkcopy.identifiers import sanitize_identifier
from bulkcopy.mapping import ColumnMapping, resolve_column_mapping
from bulkcopy.reader import CsvRecordReader, open_csv
from bulkcopy.service import DatabaseService
from bulkcopy.types import Record

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 2000


@dataclass
class ImportOutcome:
    """Running totals; only ever incremented."""

    success_count: int = 0
    failed_count: int = 0

    @property
    def total(self) -> int:
        return self.success_count + self.failed_count

    def add(self, other: "ImportOutcome") -> None:
        self.success_count += other.success_count
        self.failed_count += other.failed_count


@dataclass(frozen=True)
class InsertResult:
    """Outcome of one insert attempt: ok, or failed with the database's message."""

    ok: bool
    message: str = ""

    @classmethod
    def success(cls) -> "InsertResult":
        return cls(True)

    @classmethod
    def failure(cls, message: str) -> "InsertResult":
        return cls(False, message)


class CsvImporter:
    """Streams one CSV source into ``table`` through a :class:`DatabaseService`.

    The service is reused for every batch and every row retry; the importer
    runs one transaction at a time.
    """

    def __init__(
        self,
        service: DatabaseService,
        table: str,
        *,
        schema: Optional[str] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        null_value: Optional[str] = DEFAULT_NULL_VALUE,
        error_sink: Optional[ErrorSink] = None,
        allow_empty: bool = False,
        empty_table: bool = False,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._service = service
        self.table = sanitize_identifier(table)
        self.schema = sanitize_identifier(schema) if schema else None
        self.batch_size = batch_size
        self.null_value = null_value
        self.error_sink = error_sink
        self.allow_empty = allow_empty
        self.empty_table = empty_table

    @property
    def destination(self) -> str:
        return f"{self.schema}.{self.table}" if self.schema else self.table

    def run(self, source: str | Path | TextIO) -> ImportOutcome:
        """Import a file path or an open text stream. The stream is closed afterwards."""
        stream = open_csv(source) if isinstance(source, (str, Path)) else source
        with CsvRecordReader(stream, self.null_value) as reader:
            return self.run_reader(reader)

    def run_reader(self, reader: CsvRecordReader) -> ImportOutcome:
        outcome = ImportOutcome()

        if self.empty_table:
            logger.info("Emptying table %s", self.destination)
            with self._service.transaction():
                self._service.delete_all(self.table, self.schema)

        if self.allow_empty:
            if not reader.try_read_header():
                logger.warning("CSV file is empty, nothing to import into %s", self.destination)
                return outcome
        else:
            reader.read_header()

        mapping = resolve_column_mapping(
            self._service, self.table, reader.column_names, self.schema
        )
        header_line = format_row(reader.column_names, None)

        for batch in BatchedCsvReader(reader, self.batch_size):
            outcome.add(self.process_batch(batch, mapping, header_line))

        return outcome

    def process_batch(
        self, batch: Batch, mapping: ColumnMapping, header_line: str
    ) -> ImportOutcome:
        """Bulk-insert one batch, falling back to row-by-row on failure."""
        result = ImportOutcome()
        rows = [mapping.project(record) for record in batch]

        attempt = self._attempt(
            lambda: self._service.batch_insert(self.table, mapping.columns, rows, self.schema)
        )
        if attempt.ok:
            result.success_count += len(batch)
            logger.info(
                "Batch succeeded: rows %d to %d", batch.first_row_number, batch.last_row_number
            )
            return result

        logger.warning(
            "Batch failed for rows %d to %d: %s",
            batch.first_row_number,
            batch.last_row_number,
            attempt.message,
        )
        logger.warning("Processing batch rows individually...")

        for index, (record, row) in enumerate(zip(batch, rows)):
            row_attempt = self._attempt(
                lambda row=row: self._service.insert_row(
                    self.table, mapping.columns, row, self.schema
                )
            )
            if row_attempt.ok:
                result.success_count += 1
                continue

            row_number = batch.row_number(index)
            result.failed_count += 1
            logger.error("Failed to import row %d: %s", row_number, row_attempt.message)
            self._record_error(row_number, record, header_line, row_attempt.message)

        return result

    def _attempt(self, insert: Callable[[], None]) -> InsertResult:
        try:
            with self._service.transaction():
                insert()
        except InsertError as e:
            return InsertResult.failure(str(e))
        return InsertResult.success()

    def _record_error(
        self, row_number: int, record: Record, header_line: str, message: str
    ) -> None:
        if self.error_sink is None:
            return
        error = ErrorRecord(
            row_number=row_number,
            csv_row_data=header_line + "\n" + format_row(record, self.null_value),
            error_message=message,
        )
        try:
            self.error_sink.record(error)
        except Exception as e:
            logger.warning("Failed to log error for row %d: %s", row_number, e)


def import_csv(
    service: DatabaseService,
    source: str | Path | TextIO,
    table: str,
    **options,
) -> ImportOutcome:
    """Import a CSV file or stream into ``table``.

    ``options`` are passed to :class:`CsvImporter`. Returns the final counts.
    """
    importer = CsvImporter(service, table, **options)
    started = time.perf_counter()
    outcome = importer.run(source)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "Import into %s completed in %.0fms: successes=%d errors=%d",
        importer.destination,
        elapsed_ms,
        outcome.success_count,
        outcome.failed_count,
    )
    return outcome
