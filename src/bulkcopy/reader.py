"""Pull-based reader over a CSV stream: header once, then one record at a time."""

import gzip
import io
import logging
from pathlib import Path
from typing import Iterator, Optional, TextIO

from bulkcopy.csv_parser import DEFAULT_NULL_VALUE, RowScanner, parse_line
from bulkcopy.errors import CsvFormatError, UnknownColumnError
from bulkcopy.types import Record

logger = logging.getLogger(__name__)

GZIP_SUFFIXES = (".gz", ".gzip")


def open_csv(file_path: str | Path) -> TextIO:
    """Open a CSV file as UTF-8 text, decompressing ``.gz``/``.gzip`` files.

    A leading byte-order mark is dropped and undecodable bytes become U+FFFD.
    """
    path = Path(file_path)
    if path.name.lower().endswith(GZIP_SUFFIXES):
        return gzip.open(path, "rt", encoding="utf-8-sig", errors="replace", newline="")
    return open(path, encoding="utf-8-sig", errors="replace", newline="")


class CsvRecordReader:
    """Streaming record source.

    Call :meth:`read_header` (or :meth:`try_read_header`) exactly once, then
    :meth:`read` until it returns False. Each successful :meth:`read` exposes
    the row as :attr:`current`, always exactly as wide as the header.
    """

    def __init__(self, stream: TextIO, null_value: Optional[str] = DEFAULT_NULL_VALUE):
        self._stream = stream
        self._scanner = RowScanner(stream)
        self._null_value = null_value
        self._column_names: tuple[str, ...] = ()
        self._header_read = False
        self._current: Optional[Record] = None
        self.closed = False

    @classmethod
    def from_path(
        cls, file_path: str | Path, null_value: Optional[str] = DEFAULT_NULL_VALUE
    ) -> "CsvRecordReader":
        return cls(open_csv(file_path), null_value)

    @classmethod
    def from_string(
        cls, text: str, null_value: Optional[str] = DEFAULT_NULL_VALUE
    ) -> "CsvRecordReader":
        return cls(io.StringIO(text), null_value)

    def _require_header(self, action: str) -> None:
        if not self._header_read:
            raise RuntimeError(f"read_header() must be called before {action}.")

    @property
    def column_names(self) -> tuple[str, ...]:
        self._require_header("accessing column names")
        return self._column_names

    @property
    def field_count(self) -> int:
        self._require_header("accessing field count")
        return len(self._column_names)

    @property
    def current(self) -> Record:
        if self._current is None:
            raise RuntimeError("No data available. Call read() first.")
        return self._current

    def read_header(self) -> tuple[str, ...]:
        """Read and parse the header row.

        Raises CsvFormatError if the stream is empty or the first row is blank.
        """
        if self._header_read:
            raise RuntimeError("Header has already been read.")
        self._check_open()

        header_row = self._scanner.read_row()
        if header_row is None or not header_row.strip():
            raise CsvFormatError("CSV file is empty or has no header row.")

        self._column_names = tuple(name or "" for name in parse_line(header_row, None))
        self._header_read = True
        return self._column_names

    def try_read_header(self) -> bool:
        """Like :meth:`read_header`, but returns False for empty input."""
        try:
            self.read_header()
        except CsvFormatError:
            return False
        return True

    def read(self) -> bool:
        """Advance to the next non-blank row. Returns False at end of input."""
        self._check_open()
        self._require_header("read()")

        while True:
            row = self._scanner.read_row()
            if row is None:
                self._current = None
                return False
            if row.strip():
                break

        fields = parse_line(row, self._null_value)
        width = len(self._column_names)
        if len(fields) < width:
            # Short rows are padded with empty strings, not nulls.
            fields.extend([""] * (width - len(fields)))
        elif len(fields) > width:
            logger.debug("Dropping %d extra field(s) beyond the header", len(fields) - width)
            del fields[width:]

        self._current = tuple(fields)
        return True

    def get_name(self, i: int) -> str:
        return self.column_names[i]

    def get_ordinal(self, name: str) -> int:
        """Case-insensitive header lookup; the first matching column wins."""
        wanted = name.casefold()
        for i, column in enumerate(self.column_names):
            if column.casefold() == wanted:
                return i
        raise UnknownColumnError(f"Column '{name}' not found.")

    def get_value(self, i: int) -> Optional[str]:
        return self.current[i]

    def __iter__(self) -> Iterator[Record]:
        while self.read():
            yield self.current

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("Reader is closed.")

    def close(self) -> None:
        if self.closed:
            return
        self._stream.close()
        self.closed = True

    def __enter__(self) -> "CsvRecordReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
