"""
ComparisonReport domain model.

Holds the execution timings of both scripts and the counters collected while
their result sets were walked.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any


FASTER = "faster"
SLOWER = "slower"


@dataclass
class ComparisonReport:
    """
    Outcome of one sql-compare run.

    Attributes:
        original_ms: Execution time of the original script in milliseconds
        compare_ms: Execution time of the compared script in milliseconds
        result_sets_compared: Number of chained result sets walked
        rows_compared: Number of row pairs found equal
    """

    original_ms: int
    compare_ms: int
    result_sets_compared: int = 0
    rows_compared: int = 0

    @property
    def verdict(self) -> str:
        """"faster" when the compared script beat the original, else "slower"."""
        return FASTER if self.compare_ms < self.original_ms else SLOWER

    def timing_line(self) -> str:
        """Human-readable timing summary printed by the CLI."""
        return (
            f"Time of original: {self.original_ms}ms. "
            f"Time of compared: {self.compare_ms}ms. "
            f"The compared file is {self.verdict}."
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON logging."""
        data = asdict(self)
        data["verdict"] = self.verdict
        return data
