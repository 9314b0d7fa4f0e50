"""
Command line entry point for sql-compare

Runs two SQL scripts against one database and verifies that they return
identical result sets.

Usage:
    sql-compare original.sql changed.sql "connection string"

Exit codes:
    0: results are identical
    1: usage error (arguments, files, blank connection string)
    2: any other failure (mismatch, connection or query error)
"""

import argparse
from types import ModuleType
from typing import List, Optional, Tuple

from sql_compare.comparison.comparator import ResultSetComparator
from sql_compare.config.settings import Settings
from sql_compare.database.connection import SqlConnection
from sql_compare.domain.query import Query
from sql_compare.domain.report import ComparisonReport
from sql_compare.exceptions import UsageError
from sql_compare.utils.logger import get_logger, set_log_level

logger = get_logger(__name__)

USAGE = 'Usage: sql-compare myoriginal.sql mychanged.sql "sql connection string"'
SUCCESS_MESSAGE = "SUCCESS: The results of original and compared file are identical."

EXIT_SUCCESS = 0
EXIT_USAGE = 1
EXIT_FAILURE = 2


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="sql-compare",
        usage=USAGE[len("Usage: "):],
        description=(
            "Run two SQL scripts on the same connection and verify that their "
            "result sets are identical."
        ),
    )
    parser.add_argument("original_file", help="Reference SQL script")
    parser.add_argument("compare_file", help="SQL script expected to return the same results")
    parser.add_argument(
        "connection_string",
        help="ODBC connection string, or secretsmanager:<secret-id>",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML settings file (default: sql-compare.yaml if present)",
    )
    return parser


def load_queries(original_file: str, compare_file: str, encoding: str) -> Tuple[Query, Query]:
    """Read both scripts; UsageError when either is missing or blank."""
    original = Query.from_file("original", original_file, encoding=encoding)
    compare = Query.from_file("compare", compare_file, encoding=encoding)
    return original, compare


def run(
    original: Query,
    compare: Query,
    connection_string: str,
    settings: Settings,
    driver: Optional[ModuleType] = None,
) -> ComparisonReport:
    """
    Open the connection, run both scripts and compare their results.

    The timing line is printed as soon as both scripts have executed.
    """
    comparator = ResultSetComparator(on_timings=lambda report: print(report.timing_line()))

    with SqlConnection(connection_string, settings.odbc_driver, driver=driver) as connection:
        return comparator.execute(original, compare, connection)


def main(argv: Optional[List[str]] = None, driver: Optional[ModuleType] = None) -> int:
    """
    Run sql-compare.

    Args:
        argv: Command line arguments (default: sys.argv[1:])
        driver: DB-API 2 module to connect with (default: pyodbc)

    Returns:
        Process exit code
    """
    try:
        args = build_parser().parse_args(argv)

        settings = Settings(args.config)
        set_log_level(settings.log_level)
        settings.setup_redaction_filter()

        original, compare = load_queries(
            args.original_file, args.compare_file, settings.file_encoding
        )
        if not args.connection_string.strip():
            raise UsageError("The connection string is blank")

        connection_string = settings.resolve_connection_string(args.connection_string)
        logger.info(
            "Comparing scripts",
            operation="main",
            context={"original": str(original), "compare": str(compare)},
        )

        run(original, compare, connection_string, settings, driver=driver)

        print(SUCCESS_MESSAGE)
        return EXIT_SUCCESS

    except UsageError as e:
        logger.warning("Invalid usage", operation="main", error=str(e))
        print(f"{e}")
        print(USAGE)
        return EXIT_USAGE

    except Exception as e:
        logger.error("Comparison failed", operation="main", error=str(e))
        print(f"Error: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
