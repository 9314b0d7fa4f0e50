"""
Query domain model.

A Query is one of the two SQL scripts handed to the tool. It is loaded once
and never changed afterwards.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from sql_compare.exceptions import UsageError


@dataclass(frozen=True)
class Query:
    """
    SQL script to execute.

    Attributes:
        name: "original" or "compare"
        text: Full script text, possibly several statements
        source: Path the script was read from, if any
    """

    name: str
    text: str
    source: Optional[str] = None

    @classmethod
    def from_file(
        cls, name: str, path: Union[str, Path], encoding: str = "utf-8"
    ) -> "Query":
        """
        Read a script file completely.

        Args:
            name: Query name ("original" or "compare")
            path: Path to the script file
            encoding: Text encoding of the file

        Returns:
            Query instance

        Raises:
            UsageError: If the file does not exist or contains only whitespace
        """
        path = Path(path)
        if not path.is_file():
            raise UsageError(f"The {name} file '{path}' does not exist")

        try:
            text = path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise UsageError(f"The {name} file '{path}' cannot be read: {e}") from e

        # BOM written by some Windows editors
        text = text.lstrip("\ufeff")

        if not text.strip():
            raise UsageError(f"The {name} file '{path}' is empty")

        return cls(name=name, text=text, source=str(path))

    def __str__(self) -> str:
        return self.source or self.name
