"""
Forward-only reader over the chained result sets of one executed script.

Wraps a DB-API 2 cursor so the comparator only ever sees three moves:
look at the current field names, read the next row, advance to the next
result set.
"""

from typing import Any, Callable, Optional, Tuple, Type

from sql_compare.utils.logger import get_logger
from .exceptions import QueryExecutionError


logger = get_logger(__name__)

Row = Tuple[Any, ...]


class ForwardCursor:
    """
    Forward-only cursor over chained result sets.

    Statements that return no rows description (INSERT/UPDATE row counts,
    SET NOCOUNT, variable assignments) are not result sets; they are skipped
    both when the cursor is opened and when it advances.

    Args:
        cursor: DB-API 2 cursor positioned on the first set of an executed script
        query_name: Name used in error messages ("original" or "compare")
        driver_errors: Driver exception types translated to QueryExecutionError
    """

    def __init__(
        self,
        cursor: Any,
        query_name: str = "",
        driver_errors: Tuple[Type[BaseException], ...] = (),
    ):
        self._cursor = cursor
        self.query_name = query_name
        self._driver_errors = driver_errors
        self._closed = False
        self._on_result_set = self._call(self._skip_row_counts)

    @property
    def field_names(self) -> Tuple[str, ...]:
        """Column names of the current result set, in position order."""
        if not self._on_result_set:
            return ()
        return tuple(column[0] for column in self._cursor.description)

    def read(self) -> Optional[Row]:
        """Return the next row of the current result set, or None when exhausted."""
        if not self._on_result_set:
            return None
        row = self._call(self._cursor.fetchone)
        return None if row is None else tuple(row)

    def next_result(self) -> bool:
        """
        Advance to the next chained result set.

        Unread rows of the current set are discarded.

        Returns:
            True if positioned on another result set, False when none is left
        """
        if not self._on_result_set:
            return False
        self._on_result_set = self._call(self._advance)
        return self._on_result_set

    def close(self) -> None:
        """Close the underlying cursor. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._cursor.close()
        except self._driver_errors as e:
            logger.warning(
                "Failed to close cursor",
                operation="close_cursor",
                context={"query": self.query_name},
                error=str(e),
            )

    def _advance(self) -> bool:
        if not self._next_set():
            return False
        return self._skip_row_counts()

    def _skip_row_counts(self) -> bool:
        while self._cursor.description is None:
            if not self._next_set():
                return False
        return True

    def _next_set(self) -> bool:
        nextset = getattr(self._cursor, "nextset", None)
        if nextset is None:
            return False
        return bool(nextset())

    def _call(self, func: Callable[[], Any]) -> Any:
        try:
            return func()
        except self._driver_errors as e:
            raise QueryExecutionError(
                f"The {self.query_name} query failed: {e}", query_name=self.query_name
            ) from e

    def __enter__(self) -> "ForwardCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
