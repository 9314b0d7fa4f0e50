"""
Root of the sql-compare exception hierarchy.

Every error the tool raises on its own derives from SqlCompareError so the
CLI can tell tool failures apart from programming errors.
"""


class SqlCompareError(Exception):
    """Base exception for all sql-compare errors."""

    pass


class UsageError(SqlCompareError):
    """
    Raised when the command line or the input files are unusable.

    Wrong argument count, a missing or blank script file, or a blank
    connection string. The CLI answers with the usage text and exit code 1.
    """

    pass
