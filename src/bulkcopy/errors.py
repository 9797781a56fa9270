"""Exception hierarchy for bulkcopy."""


class BulkCopyError(Exception):
    """Base class for every error raised by bulkcopy."""


class CsvFormatError(BulkCopyError, ValueError):
    """The CSV stream is empty or has no usable header row."""


class UnknownColumnError(BulkCopyError, KeyError):
    """A column name lookup against the CSV header found no match."""

    def __str__(self) -> str:
        # KeyError repr()s its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class InvalidIdentifierError(BulkCopyError, ValueError):
    """A table, schema or database name is not a safe SQL identifier."""


class ImportSetupError(BulkCopyError):
    """Fatal pre-stream failure: nothing has been written when this is raised."""


class DestinationNotFoundError(ImportSetupError):
    """The destination table does not exist or has no columns."""


class UnmappedColumnError(ImportSetupError):
    """A CSV column has no counterpart in the destination table."""


class InsertError(BulkCopyError):
    """The database rejected a batch or a single row."""


class DatabaseConnectError(BulkCopyError):
    """The database could not be opened or reached."""
