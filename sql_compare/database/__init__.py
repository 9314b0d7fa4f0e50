"""Database module - ODBC connection and forward-only cursors."""

from .connection import SqlConnection, build_connection_string
from .cursor import ForwardCursor
from .exceptions import (
    DatabaseException,
    ConnectionError,
    QueryExecutionError,
)

__all__ = [
    "SqlConnection",
    "build_connection_string",
    "ForwardCursor",
    "DatabaseException",
    "ConnectionError",
    "QueryExecutionError",
]
