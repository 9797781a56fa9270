"""SQL identifier validation and quoting."""

import re

from bulkcopy.errors import InvalidIdentifierError

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_valid_identifier(name: str) -> bool:
    return bool(IDENTIFIER_PATTERN.match(name))


def sanitize_identifier(identifier: str | None) -> str:
    """Strip bracket/quote delimiters and validate what is left.

    Returns the bare identifier, e.g. ``[dbo]`` -> ``dbo``.
    """
    if identifier is None or not identifier.strip():
        raise InvalidIdentifierError("SQL identifier cannot be null or empty")

    sanitized = identifier.strip().replace("[", "").replace("]", "").replace('"', "")
    if not is_valid_identifier(sanitized):
        raise InvalidIdentifierError(
            f"Invalid SQL identifier: {identifier!r}. Identifiers must start with a letter "
            "or underscore and contain only alphanumeric characters and underscores."
        )
    return sanitized


def quote_identifier(name: str) -> str:
    """Double-quote an identifier, doubling any embedded quote."""
    return '"' + name.replace('"', '""') + '"'


def qualified_name(table: str, schema: str | None = None) -> str:
    """Quoted ``"schema"."table"`` (or just ``"table"``)."""
    if schema:
        return f"{quote_identifier(schema)}.{quote_identifier(table)}"
    return quote_identifier(table)
