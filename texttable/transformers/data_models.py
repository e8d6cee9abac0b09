"""
Data models for text/table conversion.

This module defines the core data structures shared by the converter,
the language-model client, the file components and the session layer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class TableData:
    """
    In-memory table: a title, column names and rows of string cells.

    A cell value of None marks an absent cell, which is distinct from an
    empty string.

    Attributes:
        title: Table title
        columns: Column names (uniqueness is not enforced)
        rows: Data rows, excluding the header row
        created_at: Creation timestamp
        last_modified_at: Timestamp of the last append operation
    """
    title: str = ""
    columns: List[str] = field(default_factory=list)
    rows: List[List[Optional[str]]] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_modified_at: datetime = field(default_factory=datetime.now)

    @property
    def column_count(self) -> int:
        """Number of columns."""
        return len(self.columns)

    @property
    def row_count(self) -> int:
        """Number of data rows."""
        return len(self.rows)

    def add_row(self, row: Sequence[Optional[str]]) -> None:
        """
        Append a data row.

        Args:
            row: Cell values, one per column

        Raises:
            ValueError: If the cell count differs from the column count
        """
        if len(row) != len(self.columns):
            raise ValueError(
                f"Row has {len(row)} cells but the table has {len(self.columns)} columns"
            )
        self.rows.append(list(row))
        self.last_modified_at = datetime.now()

    def add_column(self, column_name: str, default_value: Optional[str] = "") -> None:
        """
        Append a column, padding every existing row with default_value.

        Args:
            column_name: Name of the new column
            default_value: Value placed in the new cell of existing rows
        """
        self.columns.append(column_name)
        for row in self.rows:
            row.append(default_value)
        self.last_modified_at = datetime.now()

    def to_array(self) -> List[List[Optional[str]]]:
        """Return the table as a 2-D array whose first row is the header."""
        return [list(self.columns)] + [list(row) for row in self.rows]

    @classmethod
    def from_array(cls, data: Sequence[Sequence[Optional[str]]], title: str = "") -> "TableData":
        """
        Build a table from a 2-D array whose first row is the header.

        Args:
            data: Header row followed by data rows
            title: Optional table title

        Raises:
            ValueError: If data is empty
        """
        if not data:
            raise ValueError("Table data cannot be empty")

        return cls(
            title=title,
            columns=[str(name) for name in data[0]],
            rows=[list(row) for row in data[1:]],
        )


@dataclass(frozen=True)
class ConversionResult(Generic[T]):
    """
    Tagged outcome of a conversion.

    Attributes:
        success: Whether the conversion succeeded
        value: Result value, present only on success
        error: Human-readable message, present only on failure
    """
    success: bool
    value: Optional[T] = None
    error: Optional[str] = None

    def __post_init__(self):
        """Reject mixed success/failure states."""
        if self.success and self.error is not None:
            raise ValueError("A successful result cannot carry an error")
        if not self.success and not self.error:
            raise ValueError("A failed result must carry an error message")
        if not self.success and self.value is not None:
            raise ValueError("A failed result cannot carry a value")

    @classmethod
    def ok(cls, value: T) -> "ConversionResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "ConversionResult[T]":
        return cls(success=False, error=error)


@dataclass
class ColumnAnalysis:
    """
    Structure summary for a single column.

    Attributes:
        name: Column name
        non_null_percentage: Share of rows with a non-null cell (0-100)
        distinct_count: Number of distinct non-null values
        suggested_type: "Numeric", "Date", "Text", or None when the column
            has no non-null values
    """
    name: str
    non_null_percentage: float
    distinct_count: int
    suggested_type: Optional[str] = None


@dataclass
class StructureAnalysis:
    """Structure summary for a whole table."""
    column_count: int
    row_count: int
    columns: List[ColumnAnalysis] = field(default_factory=list)

    def get_column(self, name: str) -> Optional[ColumnAnalysis]:
        """Return the first column analysis with the given name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def __str__(self) -> str:
        """Human-readable report."""
        lines = [
            "Table Analysis:",
            f"- Number of columns: {self.column_count}",
            f"- Number of rows: {self.row_count}",
            "",
            "Column Details:",
        ]
        for column in self.columns:
            lines.append("")
            lines.append(f"Column: {column.name}")
            lines.append(f"- Non-null values: {column.non_null_percentage:.1f}%")
            lines.append(f"- Distinct values: {column.distinct_count}")
            if column.suggested_type is not None:
                lines.append(f"- Suggested Type: {column.suggested_type}")
        return "\n".join(lines)
