"""Runtime settings resolved from BULKCOPY_* environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from bulkcopy.csv_parser import DEFAULT_NULL_VALUE
from bulkcopy.error_sink import DEFAULT_ERROR_TABLE
from bulkcopy.importer import DEFAULT_BATCH_SIZE

ENV_PREFIX = "BULKCOPY_"


def _positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def resolve_db_url(value: str) -> str:
    """Return ``value``, or the contents of the file it names if it looks like a path.

    Keeps credentials out of the process list: ``--db-url ./secrets/db_url``.
    """
    if not value or not value.strip():
        raise ValueError("Database URL cannot be empty")

    is_path = (
        value.startswith(("/", "\\", "."))
        or (len(value) >= 2 and value[0].isalpha() and value[1] == ":")
    )
    if not is_path:
        return value

    path = Path(value)
    if not path.is_file():
        raise ValueError(f"Invalid database URL: {value!r}")
    return path.read_text(encoding="utf-8").strip()


@dataclass
class Settings:
    db_url: Optional[str] = None
    table: Optional[str] = None
    schema: Optional[str] = None
    batch_size: int = DEFAULT_BATCH_SIZE
    null_value: str = DEFAULT_NULL_VALUE
    error_table: Optional[str] = None
    error_db_url: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(key: str) -> Optional[str]:
            return env.get(ENV_PREFIX + key) or None

        batch_size = get("BATCH_SIZE")
        return cls(
            db_url=get("DB_URL"),
            table=get("TABLE"),
            schema=get("SCHEMA"),
            batch_size=(
                _positive_int(ENV_PREFIX + "BATCH_SIZE", batch_size)
                if batch_size
                else DEFAULT_BATCH_SIZE
            ),
            # An empty null sentinel is legal, so only a missing variable falls back.
            null_value=env.get(ENV_PREFIX + "NULL_CHAR", DEFAULT_NULL_VALUE),
            error_table=get("ERROR_TABLE"),
            error_db_url=get("ERROR_DB_URL"),
        )

    @property
    def error_logging_enabled(self) -> bool:
        return bool(self.error_table or self.error_db_url)

    @property
    def resolved_error_table(self) -> str:
        return self.error_table or DEFAULT_ERROR_TABLE
