"""
Mismatch errors raised by the result set comparator.

The first difference aborts the comparison, so each error describes exactly
one location: the result set index (1-based) and, where it applies, the row
number and field name.
"""

from typing import Optional

from sql_compare.exceptions import SqlCompareError


class ComparisonError(SqlCompareError):
    """Base exception for a difference between original and compared results."""

    def __init__(
        self,
        message: str,
        result_set_index: int,
        row_number: Optional[int] = None,
        field_name: Optional[str] = None,
    ):
        super().__init__(message)
        self.result_set_index = result_set_index
        self.row_number = row_number
        self.field_name = field_name


class SchemaMismatch(ComparisonError):
    """Field count or field names differ between the two result sets."""

    pass


class RowCountMismatch(ComparisonError):
    """One reader ran out of rows before the other."""

    pass


class ValueMismatch(ComparisonError):
    """A cell value differs. `field_name` names the offending column."""

    pass


class MissingResultSet(ComparisonError):
    """The original script emitted a result set the compared script did not."""

    pass


class ExtraResultSet(ComparisonError):
    """The compared script emitted a result set the original script did not."""

    pass
