"""
ODBC connection used to run both scripts.

One connection is opened per run with multiple active result sets enabled,
so the original cursor can stay open while the compared script executes on
the same connection.
"""

import re
import time
from types import ModuleType
from typing import Any, Dict, Optional, Tuple

from sql_compare.domain.query import Query
from sql_compare.utils.logger import get_logger, log_operation, mask_connection_string
from .cursor import ForwardCursor
from .exceptions import ConnectionError, QueryExecutionError


logger = get_logger(__name__)

DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"

# key=value pairs; braced values may contain ';' and escape '}' as '}}'
_PAIR = re.compile(r"\s*([^=;]+?)\s*=\s*(\{(?:[^}]|\}\})*\}|[^;]*?)\s*(?:;|$)")

# ADO.NET keywords accepted for convenience, mapped to their ODBC names
_KEYWORD_ALIASES = {
    "data source": "Server",
    "address": "Server",
    "addr": "Server",
    "network address": "Server",
    "initial catalog": "Database",
    "user id": "UID",
    "user": "UID",
    "password": "PWD",
    "trust server certificate": "TrustServerCertificate",
}

_TRUTHY = {"true", "yes", "sspi"}

# ADO.NET booleans the ODBC driver only accepts as yes/no
_BOOLEAN_KEYWORDS = ("encrypt", "trustservercertificate")
_BOOLEANS = {"true": "yes", "false": "no"}


def parse_connection_string(raw: str) -> Dict[str, Tuple[str, str]]:
    """
    Split a connection string into its keywords.

    Args:
        raw: "Key=Value;Key2={braced;value}" connection string

    Returns:
        Ordered dict of lower-cased keyword -> (keyword, value)

    Raises:
        ConnectionError: If no keyword could be parsed
    """
    pairs: Dict[str, Tuple[str, str]] = {}
    for match in _PAIR.finditer(raw):
        key, value = match.group(1), match.group(2)
        if not key.strip():
            continue
        key = _KEYWORD_ALIASES.get(key.lower(), key)
        pairs[key.lower()] = (key, value)

    if not pairs:
        raise ConnectionError(
            f"Invalid connection string: {mask_connection_string(raw)}"
        )
    return pairs


def build_connection_string(raw: str, odbc_driver: str = DEFAULT_ODBC_DRIVER) -> str:
    """
    Normalize a connection string for the ODBC driver.

    Forces MARS_Connection=yes, adds the ODBC driver when none is named and
    maps Integrated Security to Trusted_Connection. True/False values of
    Encrypt and TrustServerCertificate become yes/no. Other keywords are
    kept in their original order.

    Args:
        raw: Connection string as given on the command line
        odbc_driver: Driver name used when the string names none

    Returns:
        ODBC connection string
    """
    pairs = parse_connection_string(raw)

    integrated = pairs.pop("integrated security", None)
    if integrated is not None and integrated[1].lower() in _TRUTHY:
        pairs.setdefault("trusted_connection", ("Trusted_Connection", "yes"))

    for name in _BOOLEAN_KEYWORDS:
        if name in pairs:
            key, value = pairs[name]
            pairs[name] = (key, _BOOLEANS.get(value.lower(), value))

    pairs.pop("multipleactiveresultsets", None)
    pairs["mars_connection"] = ("MARS_Connection", "yes")

    if "driver" not in pairs:
        pairs = {"driver": ("Driver", f"{{{odbc_driver}}}"), **pairs}

    return ";".join(f"{key}={value}" for key, value in pairs.values())


class SqlConnection:
    """
    Single database connection shared by the original and compared scripts.

    Args:
        connection_string: Connection string as given on the command line
        odbc_driver: Driver name used when the string names none
        driver: DB-API 2 module (default: pyodbc, imported on open)
    """

    def __init__(
        self,
        connection_string: str,
        odbc_driver: str = DEFAULT_ODBC_DRIVER,
        driver: Optional[ModuleType] = None,
    ):
        self.connection_string = build_connection_string(connection_string, odbc_driver)
        self._driver = driver
        self._connection: Optional[Any] = None

    @property
    def driver(self) -> Any:
        if self._driver is None:
            import pyodbc

            self._driver = pyodbc
        return self._driver

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @log_operation("open_connection")
    def open(self) -> None:
        """
        Open the connection (autocommit, as a plain SQL Server session).

        Raises:
            ConnectionError: If the driver cannot connect
        """
        if self._connection is not None:
            return

        logger.debug(
            "Opening connection",
            operation="open_connection",
            context={"connection_string": mask_connection_string(self.connection_string)},
        )
        try:
            self._connection = self.driver.connect(self.connection_string, autocommit=True)
        except self.driver.Error as e:
            raise ConnectionError(f"Cannot open the database connection: {e}") from e

    def execute(self, query: Query) -> Tuple[ForwardCursor, int]:
        """
        Execute a script and return a reader over its result sets.

        Args:
            query: Script to execute

        Returns:
            (ForwardCursor, elapsed execution time in milliseconds)

        Raises:
            QueryExecutionError: If the server rejects the script
        """
        if self._connection is None:
            raise ConnectionError("The database connection is not open")

        driver_errors = (self.driver.Error,)
        context = {"query": query.name, "source": query.source}

        try:
            cursor = self._connection.cursor()
        except driver_errors as e:
            raise QueryExecutionError(
                f"Cannot create a cursor for the {query.name} query: {e}",
                query_name=query.name,
            ) from e

        start_time = time.time()
        try:
            cursor.execute(query.text)
            elapsed_ms = int(round((time.time() - start_time) * 1000))
            reader = ForwardCursor(cursor, query_name=query.name, driver_errors=driver_errors)
        except driver_errors as e:
            cursor.close()
            logger.error(
                "Query execution failed",
                operation="execute_query",
                context=context,
                error=str(e),
            )
            raise QueryExecutionError(
                f"The {query.name} query failed: {e}", query_name=query.name
            ) from e
        except QueryExecutionError:
            cursor.close()
            raise

        logger.info(
            "Query executed",
            operation="execute_query",
            context=context,
            duration_ms=elapsed_ms,
        )
        return reader, elapsed_ms

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        try:
            connection.close()
        except self.driver.Error as e:
            logger.warning(
                "Failed to close connection", operation="close_connection", error=str(e)
            )

    def __enter__(self) -> "SqlConnection":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
