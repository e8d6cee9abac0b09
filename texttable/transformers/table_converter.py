#!/usr/bin/env python3
"""
TableConverter - mechanical text/table transforms.

Converts delimited and fixed-width text into TableData and back, renders
markdown tables and produces a best-effort structure analysis of a table.
Ragged input is reconciled (missing cells become None, surplus cells are
dropped) instead of being rejected.
"""

import logging
import os
import re
from datetime import datetime
from typing import List, Optional, Sequence

from .data_models import ColumnAnalysis, StructureAnalysis, TableData

logger = logging.getLogger(__name__)


class TableConverter:
    """
    Converts between text and TableData.

    Features:
    - Delimiter-based text <-> table
    - Fixed-width text <-> table
    - Markdown table rendering
    - Column type inference (Numeric > Date > Text)
    """

    TYPE_NUMERIC = "Numeric"
    TYPE_DATE = "Date"
    TYPE_TEXT = "Text"

    LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")

    # Optional sign, optional thousands grouping, optional fraction. No exponent.
    NUMERIC_PATTERN = re.compile(
        r"^[+-]?(?:(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d*)?|\.\d+)$"
    )

    DATE_FORMATS = (
        "%Y-%m-%d",
        "%Y/%m/%d",
        "%Y.%m.%d",
        "%m/%d/%Y",
        "%d/%m/%Y",
        "%m-%d-%Y",
        "%d-%m-%Y",
        "%d.%m.%Y",
        "%m/%d/%y",
        "%Y-%m-%d %H:%M",
        "%Y-%m-%d %H:%M:%S",
        "%Y/%m/%d %H:%M",
        "%Y/%m/%d %H:%M:%S",
        "%m/%d/%Y %H:%M",
        "%m/%d/%Y %H:%M:%S",
        "%m/%d/%Y %I:%M %p",
        "%m/%d/%Y %I:%M:%S %p",
        "%d %b %Y",
        "%d %B %Y",
        "%b %d %Y",
        "%b %d, %Y",
        "%B %d %Y",
        "%B %d, %Y",
        "%H:%M",
        "%H:%M:%S",
    )

    def __init__(self, newline: str = os.linesep):
        """
        Initialize converter.

        Args:
            newline: Line terminator written by the *_to_text methods
        """
        self.newline = newline

    # ------------------------------------------------------------------
    # Delimited text
    # ------------------------------------------------------------------

    def text_to_table(self, text: str, delimiter: str = "\t") -> TableData:
        """
        Convert delimited text to a table.

        The first line is the header. Blank header cells are named
        "ColumnN" after their 1-based position. Data lines with too many
        cells are truncated; missing trailing cells become None. Empty
        lines are skipped, except in a single-column table where they are
        rows holding "".

        Args:
            text: Delimited text
            delimiter: Cell separator (default: tab)

        Returns:
            TableData (empty when text is blank)

        Raises:
            ValueError: If delimiter is empty
        """
        self._validate_delimiter(delimiter)

        lines = self._split_lines(text, keep_empty=True)
        if not lines:
            return TableData()

        columns = self._build_columns(lines[0].split(delimiter), trim=False)
        table = TableData(columns=columns)

        for line_number, line in enumerate(lines[1:], 2):
            if not line and len(columns) > 1:
                continue
            values = line.split(delimiter)
            if len(values) != len(columns):
                logger.debug(
                    f"Line {line_number}: {len(values)} cells for {len(columns)} columns, reconciling"
                )
            table.rows.append(self._fit_row(values, len(columns)))

        return table

    def table_to_text(self, table: TableData, delimiter: str = "\t") -> str:
        """
        Convert a table to delimited text.

        Every line, including the last, ends with the line terminator.
        None cells render as empty strings.

        Args:
            table: Table to convert
            delimiter: Cell separator (default: tab)

        Returns:
            Delimited text
        """
        self._validate_delimiter(delimiter)

        parts = [delimiter.join(table.columns) + self.newline]
        for row in table.rows:
            cells = self._fit_row(row, len(table.columns))
            parts.append(delimiter.join("" if cell is None else cell for cell in cells))
            parts.append(self.newline)
        return "".join(parts)

    # ------------------------------------------------------------------
    # Fixed-width text
    # ------------------------------------------------------------------

    def fixed_width_to_table(self, text: str, column_widths: Sequence[int]) -> TableData:
        """
        Convert fixed-width text to a table.

        Each line is sliced at the given widths and the slices are
        right-stripped of padding. A slice that starts past the end of a
        short line is None. Characters beyond the total width are ignored.

        Args:
            text: Fixed-width text, first line is the header
            column_widths: Character width of each column

        Returns:
            TableData with len(column_widths) columns (empty when text is blank)

        Raises:
            ValueError: If a width is not a positive integer
        """
        self._validate_widths(column_widths)

        lines = self._split_lines(text)
        if not lines:
            return TableData()

        header = [
            "" if cell is None else cell.strip()
            for cell in self._slice_line(lines[0], column_widths)
        ]
        table = TableData(columns=self._build_columns(header))

        for line in lines[1:]:
            table.rows.append(self._slice_line(line, column_widths))

        return table

    def table_to_fixed_width_text(self, table: TableData, column_widths: Sequence[int]) -> str:
        """
        Convert a table to fixed-width text.

        Values longer than their width are truncated, shorter ones are
        right-padded with spaces.

        Args:
            table: Table to convert
            column_widths: Character width of each column

        Returns:
            Fixed-width text, one terminated line per header/row

        Raises:
            ValueError: If a width is not a positive integer
        """
        self._validate_widths(column_widths)

        lines = []
        for row in [table.columns] + table.rows:
            cells = self._fit_row(row, len(column_widths))
            lines.append("".join(
                self._pad_to_width(cell, width) for cell, width in zip(cells, column_widths)
            ))
        return "".join(line + self.newline for line in lines)

    def suggest_column_widths(self, table: TableData, padding: int = 1) -> List[int]:
        """
        Widest value in each column (header included) plus padding.

        Args:
            table: Table to measure
            padding: Extra spaces after the widest value

        Returns:
            One width per column
        """
        widths = []
        for index, name in enumerate(table.columns):
            widest = len(name)
            for row in table.rows:
                if index < len(row) and row[index] is not None:
                    widest = max(widest, len(row[index]))
            widths.append(max(widest + padding, 1))
        return widths

    # ------------------------------------------------------------------
    # Markdown
    # ------------------------------------------------------------------

    def table_to_markdown(self, table: TableData) -> str:
        """
        Render a table as a pipe-delimited markdown table.

        Pipes inside cells are escaped as "\\|".

        Args:
            table: Table to render

        Returns:
            Markdown table text ("" for a table without columns)
        """
        if not table.columns:
            return ""

        def render(cells: Sequence[Optional[str]]) -> str:
            escaped = ["" if cell is None else cell.replace("|", "\\|") for cell in cells]
            return "| " + " | ".join(escaped) + " |"

        lines = [
            render(table.columns),
            "|" + "|".join("---" for _ in table.columns) + "|",
        ]
        for row in table.rows:
            lines.append(render(self._fit_row(row, len(table.columns))))
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Structure analysis
    # ------------------------------------------------------------------

    def analyze_structure(self, table: TableData) -> StructureAnalysis:
        """
        Summarize each column of a table.

        For each column: share of non-null cells, distinct value count and
        a suggested type. Every non-null value must parse for a type to be
        suggested; Numeric is tried before Date, Text is the fallback.
        Columns with no non-null value get no suggested type.

        Args:
            table: Table to analyze

        Returns:
            StructureAnalysis
        """
        total_rows = len(table.rows)
        columns = []

        for index, name in enumerate(table.columns):
            values = [
                row[index] for row in table.rows
                if index < len(row) and row[index] is not None
            ]

            non_null_percentage = (len(values) * 100.0 / total_rows) if total_rows else 0.0

            columns.append(ColumnAnalysis(
                name=name,
                non_null_percentage=non_null_percentage,
                distinct_count=len(set(values)),
                suggested_type=self.infer_column_type(values),
            ))

        return StructureAnalysis(
            column_count=len(table.columns),
            row_count=total_rows,
            columns=columns,
        )

    def infer_column_type(self, values: Sequence[str]) -> Optional[str]:
        """
        Suggest a type for a list of non-null values.

        Returns:
            "Numeric", "Date", "Text", or None for an empty list
        """
        if not values:
            return None
        if all(self.is_numeric(value) for value in values):
            return self.TYPE_NUMERIC
        if all(self.is_date(value) for value in values):
            return self.TYPE_DATE
        return self.TYPE_TEXT

    def is_numeric(self, value: str) -> bool:
        """True if value parses as a decimal number."""
        return bool(self.NUMERIC_PATTERN.match(value.strip()))

    def is_date(self, value: str) -> bool:
        """True if value parses as a calendar date or time of day."""
        candidate = value.strip()
        if not candidate:
            return False

        try:
            datetime.fromisoformat(candidate)
            return True
        except ValueError:
            pass

        for date_format in self.DATE_FORMATS:
            try:
                datetime.strptime(candidate, date_format)
                return True
            except ValueError:
                continue
        return False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _split_lines(self, text: Optional[str], keep_empty: bool = False) -> List[str]:
        """
        Split on any line terminator.

        Empty lines are dropped. With keep_empty, only the final line
        terminator and empty lines before the header are dropped.
        """
        if text is None or not text.strip():
            return []

        lines = self.LINE_BREAK_PATTERN.split(text)
        if not keep_empty:
            return [line for line in lines if line]

        if lines[-1] == "":
            lines.pop()
        start = 0
        while not lines[start]:
            start += 1
        return lines[start:]

    def _build_columns(self, header_cells: Sequence[str], trim: bool = True) -> List[str]:
        """Name blank header cells by position, trimming the others if trim is set."""
        columns = []
        for position, cell in enumerate(header_cells, 1):
            name = cell.strip() if trim else cell
            columns.append(name if name.strip() else f"Column{position}")
        return columns

    @staticmethod
    def _fit_row(values: Sequence[Optional[str]], column_count: int) -> List[Optional[str]]:
        """Truncate or pad (with None) a row to column_count cells."""
        row = list(values[:column_count])
        row.extend([None] * (column_count - len(row)))
        return row

    @staticmethod
    def _slice_line(line: str, column_widths: Sequence[int]) -> List[Optional[str]]:
        """Slice a line into fixed-width cells."""
        cells: List[Optional[str]] = []
        start = 0
        for width in column_widths:
            if start >= len(line):
                cells.append(None)
            else:
                cells.append(line[start:start + width].rstrip())
            start += width
        return cells

    @staticmethod
    def _pad_to_width(text: Optional[str], width: int) -> str:
        """Truncate or right-pad text to exactly width characters."""
        if not text:
            return " " * width
        if len(text) > width:
            return text[:width]
        return text.ljust(width)

    @staticmethod
    def _validate_delimiter(delimiter: str) -> None:
        if not isinstance(delimiter, str) or not delimiter:
            raise ValueError("Delimiter must be a non-empty string")

    @staticmethod
    def _validate_widths(column_widths: Sequence[int]) -> None:
        if not column_widths:
            raise ValueError("At least one column width is required")
        for width in column_widths:
            if isinstance(width, bool) or not isinstance(width, int) or width < 1:
                raise ValueError(f"Column widths must be positive integers, got {width!r}")
