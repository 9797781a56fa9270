"""Group streamed records into bounded batches."""

from dataclasses import dataclass
from typing import Iterator, Optional

from bulkcopy.reader import CsvRecordReader
from bulkcopy.types import Record


@dataclass(frozen=True)
class Batch:
    """Consecutive records plus their position in the file.

    ``start_row`` is the number of data rows that came before this batch, so
    the record at index ``i`` is data row ``start_row + i + 1``.
    """

    records: tuple[Record, ...]
    start_row: int

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    @property
    def first_row_number(self) -> int:
        return self.start_row + 1

    @property
    def last_row_number(self) -> int:
        return self.start_row + len(self.records)

    def row_number(self, index: int) -> int:
        return self.start_row + index + 1


class BatchedCsvReader:
    """Reads at most ``batch_size`` records at a time from a :class:`CsvRecordReader`.

    The header must already have been read from the underlying reader.
    """

    def __init__(self, reader: CsvRecordReader, batch_size: int):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._reader = reader
        self._batch_size = batch_size
        self.has_more_rows = True
        self.current_row_number = 0

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._reader.column_names

    def read_next_batch(self) -> Optional[Batch]:
        """Return the next batch, or None once the reader is exhausted."""
        if not self.has_more_rows:
            return None

        start_row = self.current_row_number
        records: list[Record] = []
        while len(records) < self._batch_size and self._reader.read():
            records.append(self._reader.current)
            self.current_row_number += 1

        if not records:
            self.has_more_rows = False
            return None

        # A full batch may or may not be followed by more rows; the next call finds out.
        self.has_more_rows = len(records) == self._batch_size
        return Batch(tuple(records), start_row)

    def __iter__(self) -> Iterator[Batch]:
        while (batch := self.read_next_batch()) is not None:
            yield batch

    def close(self) -> None:
        self._reader.close()

    def __enter__(self) -> "BatchedCsvReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
