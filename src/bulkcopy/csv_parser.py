"""Streaming CSV tokenizer and field parser.

The dialect is fixed: comma-separated, ``"`` as the quote character, UTF-8 text.
Every quote character toggles the "inside quotes" state, wherever it appears. A
stray quote in the middle of an unquoted field therefore opens a quoted region
that runs until the next quote. Producers this tool has always accepted rely on
that behaviour, so it is kept as is.

Unquoted fields equal to the null sentinel (``"␀"`` by default) parse to ``None``.
"""

import re
from typing import Iterator, Optional, Sequence, TextIO

DELIMITER = ","
QUOTE = '"'
DEFAULT_NULL_VALUE = "␀"  # SYMBOL FOR NULL
DEFAULT_CHUNK_SIZE = 64 * 1024

_ROW_SPECIALS = re.compile(r'["\r\n]')
_NEEDS_QUOTING = re.compile(r'[,"\r\n]')


class RowScanner:
    """Split a text stream into logical CSV rows.

    A row ends at an unquoted ``\\n``, ``\\r\\n`` or bare ``\\r``. Line breaks
    inside quotes belong to the row. Quotes are left in the returned text for
    :func:`parse_line` to interpret.

    The stream is read in chunks; nothing beyond the row being built is kept
    apart from the unread tail of the current chunk.
    """

    def __init__(self, stream: TextIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._stream = stream
        self._chunk_size = chunk_size
        self._buf = ""
        self._pos = 0
        self._eof = False

    def _fill(self) -> bool:
        """Load the next chunk. Returns False once the stream is exhausted."""
        if self._eof:
            return False
        chunk = self._stream.read(self._chunk_size)
        if not chunk:
            self._eof = True
            self._buf, self._pos = "", 0
            return False
        self._buf, self._pos = chunk, 0
        return True

    def _peek(self) -> str:
        if self._pos >= len(self._buf) and not self._fill():
            return ""
        return self._buf[self._pos]

    def read_row(self) -> Optional[str]:
        """Return the next raw row, ``""`` for a blank line, or None at end of input."""
        parts: list[str] = []
        in_quotes = False

        while True:
            if self._pos >= len(self._buf) and not self._fill():
                break

            match = _ROW_SPECIALS.search(self._buf, self._pos)
            if match is None:
                parts.append(self._buf[self._pos:])
                self._pos = len(self._buf)
                continue

            i = match.start()
            char = self._buf[i]
            if char == QUOTE or in_quotes:
                if char == QUOTE:
                    in_quotes = not in_quotes
                parts.append(self._buf[self._pos : i + 1])
                self._pos = i + 1
                continue

            # Unquoted line terminator.
            parts.append(self._buf[self._pos : i])
            self._pos = i + 1
            if char == "\r" and self._peek() == "\n":
                self._pos += 1
            return "".join(parts)

        # End of input: flush a final row that had no trailing newline.
        row = "".join(parts)
        return row if row else None

    def __iter__(self) -> Iterator[str]:
        while (row := self.read_row()) is not None:
            yield row


def extract_field(
    line: str, start: int, end: int, null_value: Optional[str] = DEFAULT_NULL_VALUE
) -> Optional[str]:
    """Extract ``line[start:end]`` as one field value.

    Surrounding whitespace is trimmed. A field wrapped in quotes loses the
    outer pair and has ``""`` unescaped to ``"``; it is never compared with
    the null sentinel. An unquoted field equal to ``null_value`` is None.
    """
    field = line[start:end].strip()

    if len(field) >= 2 and field[0] == QUOTE and field[-1] == QUOTE:
        return field[1:-1].replace(QUOTE * 2, QUOTE)

    if null_value is not None and field == null_value:
        return None
    return field


def parse_line(line: str, null_value: Optional[str] = DEFAULT_NULL_VALUE) -> list[Optional[str]]:
    """Split one logical row into its field values."""
    fields: list[Optional[str]] = []
    in_quotes = False
    field_start = 0

    for i, char in enumerate(line):
        if char == QUOTE:
            in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            fields.append(extract_field(line, field_start, i, null_value))
            field_start = i + 1

    fields.append(extract_field(line, field_start, len(line), null_value))
    return fields


def format_value(value: Optional[str], null_value: Optional[str] = DEFAULT_NULL_VALUE) -> str:
    """Render one value so that :func:`extract_field` reads it back unchanged."""
    if value is None:
        return null_value or ""
    if (
        _NEEDS_QUOTING.search(value)
        or value != value.strip()
        or (null_value is not None and value == null_value)
    ):
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value


def format_row(
    values: Sequence[Optional[str]], null_value: Optional[str] = DEFAULT_NULL_VALUE
) -> str:
    """Serialize a record as one CSV row, quoting wherever parsing requires it."""
    return DELIMITER.join(format_value(value, null_value) for value in values)
