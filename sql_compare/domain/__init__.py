"""Domain models for sql-compare."""

from .query import Query
from .report import ComparisonReport

__all__ = ["Query", "ComparisonReport"]
