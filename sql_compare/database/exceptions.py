"""
Custom exception hierarchy for database operations.

Driver exceptions (pyodbc.Error and friends) are translated into these
types at the connection boundary so the rest of the tool never imports
the driver.
"""

from sql_compare.exceptions import SqlCompareError


class DatabaseException(SqlCompareError):
    """
    Base exception for all database-related errors.
    """

    pass


class ConnectionError(DatabaseException):
    """
    Raised when the connection cannot be opened (bad server, login failure,
    missing ODBC driver, etc.).
    """

    pass


class QueryExecutionError(DatabaseException):
    """
    Raised when the server rejects a script or fails while streaming its
    result sets.

    Attributes:
        query_name: Name of the query that failed ("original" or "compare")
    """

    def __init__(self, message: str, query_name: str = ""):
        super().__init__(message)
        self.query_name = query_name
