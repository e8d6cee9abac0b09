#!/usr/bin/env python3
"""
FileWriter component for table export.

Handles writing text files and exporting tables as CSV, tab-delimited
text or Excel workbooks.
"""

import csv
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.utils.exceptions import IllegalCharacterError

from ..data_models import TableData

logger = logging.getLogger(__name__)

TableLike = Union[TableData, Sequence[Sequence[Optional[str]]]]


class FileWriter:
    """
    Writes text and table files.

    Features:
    - UTF-8 encoding for all text files
    - Parent directory creation as needed
    - Export format chosen from the file extension (.csv, .txt/.tsv, .xlsx)
    """

    SHEET_NAME = "Sheet1"
    SUPPORTED_EXPORT_FORMATS = (".csv", ".txt", ".tsv", ".xlsx")

    def __init__(self, newline: str = os.linesep):
        """
        Initialize file writer.

        Args:
            newline: Line terminator for CSV and text exports
        """
        self.newline = newline

    def validate_file_path(self, file_path: Union[str, Path, None]) -> bool:
        """
        Check that a path is usable for writing.

        Creates the parent directory when it does not exist.

        Returns:
            bool: True if the path is usable
        """
        if file_path is None or not str(file_path).strip():
            return False

        try:
            path = Path(file_path).resolve()
            path.parent.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.warning(f"Invalid file path {file_path}: {e}")
            return False

    def save_file(self, file_path: Union[str, Path], content: str) -> Path:
        """
        Write text content to a file.

        Raises:
            ValueError: If the path is invalid
            IOError: If writing fails
        """
        if not self.validate_file_path(file_path):
            raise ValueError(f"Invalid file path: {file_path}")

        path = Path(file_path)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise IOError(f"Error saving file: {e}")

        logger.info(f"Saved file: {path}")
        return path

    def export_table(self, file_path: Union[str, Path], table: TableLike) -> Path:
        """
        Export a table, choosing the format from the file extension.

        Args:
            file_path: Destination (.csv, .txt, .tsv or .xlsx)
            table: TableData or 2-D array (header first)

        Returns:
            Path to the written file

        Raises:
            ValueError: If the path is invalid, the table is empty or the
                format is not supported
            IOError: If writing fails
        """
        if file_path is None or not str(file_path).strip():
            raise ValueError(f"Invalid file path: {file_path}")

        path = Path(file_path)
        extension = path.suffix.lower()
        if extension not in self.SUPPORTED_EXPORT_FORMATS:
            raise ValueError(f"Format {extension or '(none)'} is not supported for export.")

        rows = self._to_rows(table)
        if not rows:
            raise ValueError("Table data cannot be empty")

        if not self.validate_file_path(path):
            raise ValueError(f"Invalid file path: {file_path}")

        try:
            if extension == ".csv":
                self.save_csv(path, rows)
            elif extension in (".txt", ".tsv"):
                self.save_text(path, rows)
            else:
                self.save_excel(path, rows)
        except IllegalCharacterError as e:
            raise ValueError(f"Table contains characters that cannot be written to Excel: {e}")
        except OSError as e:
            raise IOError(f"Error exporting table: {e}")

        logger.info(f"Exported {len(rows)} rows to {path}")
        return path

    def save_csv(self, file_path: Path, rows: List[List[str]]) -> None:
        """Write rows as CSV with every cell quoted."""
        # utf-8-sig so spreadsheet applications detect the encoding
        with open(file_path, "w", encoding="utf-8-sig", newline="") as f:
            writer = csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator=self.newline)
            writer.writerows(rows)

    def save_text(self, file_path: Path, rows: List[List[str]]) -> None:
        """Write rows as tab-delimited text."""
        content = "".join("\t".join(row) + self.newline for row in rows)
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def save_excel(self, file_path: Path, rows: List[List[str]]) -> None:
        """
        Write rows to the first sheet of a new workbook.

        Every cell is stored as a string, so a value such as "=1+2" is
        written as text and not as a formula.

        Raises:
            IllegalCharacterError: If a cell holds a control character
        """
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = self.SHEET_NAME
        for row_index, row in enumerate(rows, 1):
            for column_index, value in enumerate(row, 1):
                cell = sheet.cell(row=row_index, column=column_index, value=value)
                cell.data_type = "s"
        workbook.save(str(file_path))

    @staticmethod
    def _to_rows(table: TableLike) -> List[List[str]]:
        """Normalize a table to a list of string rows (None -> "")."""
        if table is None:
            raise ValueError("Table data cannot be empty")

        data = table.to_array() if isinstance(table, TableData) else table
        if isinstance(table, TableData) and not table.columns and not table.rows:
            return []

        return [
            ["" if cell is None else str(cell) for cell in row]
            for row in data
        ]
