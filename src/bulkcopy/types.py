"""Shared types for the bulkcopy package."""

from typing import Optional

Params = tuple | list | dict
ParamsList = list[tuple] | list[list]

# One parsed CSV data row: a fixed-width tuple of nullable strings.
Record = tuple[Optional[str], ...]
