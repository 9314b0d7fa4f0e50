"""Comparison module - lockstep result set comparison."""

from .comparator import ResultSetComparator
from .exceptions import (
    ComparisonError,
    SchemaMismatch,
    RowCountMismatch,
    ValueMismatch,
    MissingResultSet,
    ExtraResultSet,
)

__all__ = [
    "ResultSetComparator",
    "ComparisonError",
    "SchemaMismatch",
    "RowCountMismatch",
    "ValueMismatch",
    "MissingResultSet",
    "ExtraResultSet",
]
