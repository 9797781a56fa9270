"""Resolve CSV header columns against the destination table."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from bulkcopy.errors import DestinationNotFoundError, UnmappedColumnError
from bulkcopy.service import DatabaseService
from bulkcopy.types import Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnMapping:
    """(source ordinal, destination ordinal) pairs, one per CSV column."""

    pairs: tuple[tuple[int, int], ...]
    destination_columns: tuple[str, ...]

    @property
    def columns(self) -> list[str]:
        """Destination column names in source column order."""
        return [self.destination_columns[dest] for _, dest in self.pairs]

    def project(self, record: Record) -> tuple:
        """Values of ``record`` lined up with :attr:`columns`."""
        return tuple(record[src] for src, _ in self.pairs)


def build_column_mapping(
    source_columns: Sequence[str],
    destination_columns: Sequence[str],
    table_label: str = "destination table",
) -> ColumnMapping:
    """Match each source column to the destination column with the exact same name.

    Raises DestinationNotFoundError if the destination has no columns and
    UnmappedColumnError for the first source column without a match.
    """
    if not destination_columns:
        raise DestinationNotFoundError(
            f"Destination table not found or has no columns: {table_label}"
        )

    positions: dict[str, int] = {}
    for i, name in enumerate(destination_columns):
        positions.setdefault(name, i)

    pairs = []
    for i, name in enumerate(source_columns):
        if name not in positions:
            raise UnmappedColumnError(
                f"CSV column '{name}' does not exist in destination table {table_label}."
            )
        pairs.append((i, positions[name]))

    return ColumnMapping(tuple(pairs), tuple(destination_columns))


def resolve_column_mapping(
    service: DatabaseService,
    table: str,
    source_columns: Sequence[str],
    schema: Optional[str] = None,
) -> ColumnMapping:
    """Look up the destination schema once and build the mapping for a stream."""
    with service.transaction():
        destination_columns = service.get_columns(table, schema)

    table_label = f"{schema}.{table}" if schema else table
    mapping = build_column_mapping(source_columns, destination_columns, table_label)
    logger.debug("Column mapping for %s: %s", table_label, mapping.pairs)
    return mapping
