"""
Result set comparator.

Runs the original and the compared script one after the other on the same
connection and walks both readers in lockstep: schema first, then rows,
then on to the next chained result set. The first difference aborts the
whole comparison.
"""

from typing import Any, Callable, Optional, Protocol, Sequence, Tuple

from sql_compare.domain.query import Query
from sql_compare.domain.report import ComparisonReport
from sql_compare.utils.logger import get_logger
from .exceptions import (
    SchemaMismatch,
    RowCountMismatch,
    ValueMismatch,
    MissingResultSet,
    ExtraResultSet,
)


logger = get_logger(__name__)


class ResultReader(Protocol):
    """Forward-only reader over chained result sets."""

    @property
    def field_names(self) -> Sequence[str]: ...

    def read(self) -> Optional[Sequence[Any]]: ...

    def next_result(self) -> bool: ...

    def close(self) -> None: ...


class QueryRunner(Protocol):
    """Executes a script and returns its reader with the elapsed milliseconds."""

    def execute(self, query: Query) -> Tuple[ResultReader, int]: ...


class ResultSetComparator:
    """
    Asserts that two scripts produce identical chained result sets.

    Args:
        on_timings: Called with the report as soon as both scripts have run,
            before any row is compared, so timings are known even when the
            comparison fails.
    """

    def __init__(self, on_timings: Optional[Callable[[ComparisonReport], None]] = None):
        self.on_timings = on_timings

    def execute(
        self, original: Query, compare: Query, connection: QueryRunner
    ) -> ComparisonReport:
        """
        Run both scripts sequentially and compare their results.

        Args:
            original: Reference script
            compare: Script expected to return the same results
            connection: Open connection both scripts run on

        Returns:
            ComparisonReport with both timings and the comparison counters

        Raises:
            ComparisonError: On the first schema, row count, value or
                result set count difference
            DatabaseException: If either script cannot be executed
        """
        original_reader, original_ms = connection.execute(original)
        try:
            compare_reader, compare_ms = connection.execute(compare)
            try:
                report = ComparisonReport(original_ms=original_ms, compare_ms=compare_ms)
                logger.info(
                    report.timing_line(),
                    operation="execute",
                    context=report.to_dict(),
                )
                if self.on_timings is not None:
                    self.on_timings(report)

                report.result_sets_compared, report.rows_compared = self.compare_all(
                    original_reader, compare_reader
                )
            finally:
                compare_reader.close()
        finally:
            original_reader.close()

        logger.info(
            "Result sets are identical",
            operation="execute",
            context=report.to_dict(),
        )
        return report

    def compare_all(
        self, original_reader: ResultReader, compare_reader: ResultReader
    ) -> Tuple[int, int]:
        """
        Compare every chained result set of both readers.

        Returns:
            (number of result sets compared, number of row pairs compared)

        Raises:
            SchemaMismatch: Field count or names differ
            RowCountMismatch: One result set has more rows than the other
            ValueMismatch: A cell value differs
            MissingResultSet: The compared reader has fewer result sets
            ExtraResultSet: The compared reader has more result sets
        """
        result_set_index = 1
        total_rows = 0

        while True:
            field_names = self.compare_schema(original_reader, compare_reader, result_set_index)
            total_rows += self.compare_rows(
                original_reader, compare_reader, field_names, result_set_index
            )

            original_has_next = original_reader.next_result()
            compare_has_next = compare_reader.next_result()

            if original_has_next and compare_has_next:
                result_set_index += 1
                continue

            if original_has_next:
                raise MissingResultSet(
                    f"The compared file should have a next result {result_set_index + 1}!",
                    result_set_index=result_set_index + 1,
                )

            if compare_has_next:
                raise ExtraResultSet(
                    f"The compared file should not have a next result {result_set_index + 1}!",
                    result_set_index=result_set_index + 1,
                )

            return result_set_index, total_rows

    def compare_schema(
        self,
        original_reader: ResultReader,
        compare_reader: ResultReader,
        result_set_index: int,
    ) -> Tuple[str, ...]:
        """Check field count and names by position; return the field names."""
        original_fields = tuple(original_reader.field_names)
        compare_fields = tuple(compare_reader.field_names)

        if len(original_fields) != len(compare_fields):
            raise SchemaMismatch(
                f"Result set {result_set_index}: field count {len(compare_fields)} "
                f"should be {len(original_fields)}. "
                f"Original fields: {', '.join(original_fields)}. "
                f"Compared fields: {', '.join(compare_fields)}.",
                result_set_index=result_set_index,
            )

        for position, (original_name, compare_name) in enumerate(
            zip(original_fields, compare_fields), 1
        ):
            if original_name != compare_name:
                raise SchemaMismatch(
                    f"Result set {result_set_index}: field {position} is named "
                    f"'{compare_name}' but should be '{original_name}'. "
                    f"Original fields: {', '.join(original_fields)}. "
                    f"Compared fields: {', '.join(compare_fields)}.",
                    result_set_index=result_set_index,
                    field_name=original_name,
                )

        logger.debug(
            "Schema matches",
            operation="compare_schema",
            context={"result_set": result_set_index, "fields": list(original_fields)},
        )
        return original_fields

    def compare_rows(
        self,
        original_reader: ResultReader,
        compare_reader: ResultReader,
        field_names: Sequence[str],
        result_set_index: int,
    ) -> int:
        """Compare the rows of the current result set; return how many matched."""
        row_number = 0

        while True:
            pair = self.read_pair(original_reader, compare_reader, result_set_index, row_number)
            if pair is None:
                break
            row_number += 1
            original_row, compare_row = pair

            for field_name, original_value, compare_value in zip(
                field_names, original_row, compare_row
            ):
                if original_value != compare_value:
                    raise ValueMismatch(
                        f"Result set {result_set_index}, row {row_number}: "
                        f"Field: {field_name}. "
                        f"Value {compare_value!r} should be {original_value!r}.",
                        result_set_index=result_set_index,
                        row_number=row_number,
                        field_name=field_name,
                    )

        logger.debug(
            "Rows match",
            operation="compare_rows",
            context={"result_set": result_set_index, "rows": row_number},
        )
        return row_number

    @staticmethod
    def read_pair(
        original_reader: ResultReader,
        compare_reader: ResultReader,
        result_set_index: int = 1,
        rows_read: int = 0,
    ) -> Optional[Tuple[Sequence[Any], Sequence[Any]]]:
        """
        Advance both readers by one row.

        Returns:
            (original_row, compare_row), or None when both are exhausted

        Raises:
            RowCountMismatch: If exactly one reader is exhausted
        """
        original_row = original_reader.read()
        compare_row = compare_reader.read()

        if original_row is not None and compare_row is not None:
            return original_row, compare_row

        if original_row is None and compare_row is None:
            return None

        if original_row is None:
            message = (
                f"Result set {result_set_index}: the compared file returns more rows "
                f"than the original ({rows_read} rows matched)."
            )
        else:
            message = (
                f"Result set {result_set_index}: the compared file returns fewer rows "
                f"than the original ({rows_read} rows matched)."
            )
        raise RowCountMismatch(
            message, result_set_index=result_set_index, row_number=rows_read + 1
        )
