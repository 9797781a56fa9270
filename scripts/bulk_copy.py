"""CLI entry point for streaming CSV bulk import.

Usage:
    python -m scripts.bulk_copy data.csv --db-url sqlite:///data.db --table people \
        [--batch-size 2000] [--error-table bulkcopy_errors] [--empty] [--allow-empty-csv]

Every option falls back to a BULKCOPY_* environment variable (see bulkcopy.config).
"""

import argparse
import logging
import sys
from pathlib import Path

from bulkcopy import TableErrorSink, create_service, import_csv
from bulkcopy.config import Settings, resolve_db_url
from bulkcopy.csv_parser import DEFAULT_NULL_VALUE
from bulkcopy.errors import BulkCopyError

logger = logging.getLogger(__name__)


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bulk copy CSV data into a database table")
    parser.add_argument("csv_file", help="CSV file to import (.gz/.gzip are decompressed)")
    parser.add_argument(
        "--db-url",
        default=settings.db_url,
        help="Database URL, or a path to a file holding it (env: BULKCOPY_DB_URL)",
    )
    parser.add_argument(
        "--table", default=settings.table, help="Destination table (env: BULKCOPY_TABLE)"
    )
    parser.add_argument(
        "--schema", default=settings.schema, help="Destination schema (env: BULKCOPY_SCHEMA)"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.batch_size,
        help="Rows per bulk insert, default 2000 (env: BULKCOPY_BATCH_SIZE)",
    )
    parser.add_argument(
        "--null-char",
        default=settings.null_value,
        help="Unquoted value read as NULL, default \"␀\" (env: BULKCOPY_NULL_CHAR)",
    )
    parser.add_argument(
        "--error-table",
        default=settings.error_table,
        help="Log rejected rows to this table (env: BULKCOPY_ERROR_TABLE)",
    )
    parser.add_argument(
        "--error-db-url",
        default=settings.error_db_url,
        help="Database for the error table, defaults to --db-url (env: BULKCOPY_ERROR_DB_URL)",
    )
    parser.add_argument(
        "--empty", action="store_true", help="Delete all rows from the table before importing"
    )
    parser.add_argument(
        "--allow-empty-csv",
        action="store_true",
        help="Log a warning instead of failing when the CSV is empty",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        logger.error("Error: %s", e)
        return 1

    args = build_parser(settings).parse_args(argv)

    if not args.db_url:
        logger.error("Error: a database URL must be provided via --db-url or BULKCOPY_DB_URL.")
        return 1
    if not args.table:
        logger.error("Error: a table name must be provided via --table or BULKCOPY_TABLE.")
        return 1
    if args.batch_size <= 0:
        logger.error("Error: --batch-size must be positive, got %d.", args.batch_size)
        return 1
    if not Path(args.csv_file).is_file():
        logger.error("Error: CSV file not found: %s", args.csv_file)
        return 1
    if args.null_char != DEFAULT_NULL_VALUE:
        label = (
            "(empty string)"
            if args.null_char == ""
            else ", ".join(f"U+{ord(c):04X}" for c in args.null_char)
        )
        logger.info("Using custom null character: %s", label)

    try:
        service = create_service(resolve_db_url(args.db_url), pool_size=1)
    except ValueError as e:
        logger.error("Error: %s", e)
        return 1

    error_settings = Settings(error_table=args.error_table, error_db_url=args.error_db_url)
    error_service = None
    try:
        service.connect()
        error_sink = None
        if error_settings.error_logging_enabled:
            if args.error_db_url:
                error_service = create_service(resolve_db_url(args.error_db_url), pool_size=1)
                error_service.connect()
            destination = f"{args.schema}.{args.table}" if args.schema else args.table
            error_sink = TableErrorSink(
                error_service or service,
                source_database=service.database_name,
                source_table=destination,
                table=error_settings.resolved_error_table,
            )
            error_sink.ensure_table()

        logger.info("Starting bulk copy from %s to %s...", args.csv_file, args.table)
        outcome = import_csv(
            service,
            args.csv_file,
            args.table,
            schema=args.schema,
            batch_size=args.batch_size,
            null_value=args.null_char,
            error_sink=error_sink,
            allow_empty=args.allow_empty_csv,
            empty_table=args.empty,
        )
    except (BulkCopyError, ValueError, OSError) as e:
        logger.error("Error: %s", e)
        return 1
    except Exception:
        logger.exception("Bulk copy failed")
        return 1
    finally:
        if error_service is not None:
            error_service.close()
        service.close()

    logger.info(
        "Import completed: successes=%d errors=%d", outcome.success_count, outcome.failed_count
    )
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    sys.exit(main())
