#!/usr/bin/env python3
"""
Unit tests for data models.

Tests TableData, ConversionResult, ColumnAnalysis and StructureAnalysis.
"""

import pytest
from texttable.transformers.data_models import (
    TableData,
    ConversionResult,
    ColumnAnalysis,
    StructureAnalysis,
)


class TestTableData:
    """Test TableData dataclass."""

    def test_new_table_is_empty(self):
        """Test a new table has no columns or rows."""
        table = TableData()
        assert table.title == ""
        assert table.column_count == 0
        assert table.row_count == 0

    def test_add_row_matching_columns(self):
        """Test appending a row with one cell per column."""
        table = TableData(columns=["Name", "Age"])
        table.add_row(["Ann", "30"])
        assert table.row_count == 1
        assert table.rows[0] == ["Ann", "30"]

    def test_add_row_mismatch_raises(self):
        """Test appending a row with the wrong cell count."""
        table = TableData(columns=["Name", "Age"])
        with pytest.raises(ValueError, match="2 columns"):
            table.add_row(["Ann"])
        assert table.row_count == 0

    def test_add_row_updates_last_modified(self):
        """Test add_row touches last_modified_at."""
        table = TableData(columns=["A"])
        before = table.last_modified_at
        table.add_row(["x"])
        assert table.last_modified_at >= before

    def test_add_row_copies_input(self):
        """Test the stored row is independent of the caller's list."""
        table = TableData(columns=["A"])
        row = ["x"]
        table.add_row(row)
        row[0] = "changed"
        assert table.rows[0] == ["x"]

    def test_add_column_pads_existing_rows(self):
        """Test add_column extends every row with the default value."""
        table = TableData(columns=["A"], rows=[["1"], ["2"]])
        table.add_column("B", "-")
        assert table.columns == ["A", "B"]
        assert table.rows == [["1", "-"], ["2", "-"]]

    def test_add_column_default_is_empty_string(self):
        """Test the default padding value is an empty string."""
        table = TableData(columns=["A"], rows=[["1"]])
        table.add_column("B")
        assert table.rows[0] == ["1", ""]

    def test_to_array_header_first(self):
        """Test to_array returns header then rows."""
        table = TableData(columns=["A", "B"], rows=[["1", None]])
        assert table.to_array() == [["A", "B"], ["1", None]]

    def test_from_array(self):
        """Test building a table from a 2-D array."""
        table = TableData.from_array([["A", "B"], ["1", "2"], ["3", "4"]], title="T")
        assert table.title == "T"
        assert table.columns == ["A", "B"]
        assert table.rows == [["1", "2"], ["3", "4"]]

    def test_from_array_header_only(self):
        """Test a single header row gives a table without rows."""
        table = TableData.from_array([["A"]])
        assert table.columns == ["A"]
        assert table.row_count == 0

    def test_from_array_empty_raises(self):
        """Test empty input is rejected."""
        with pytest.raises(ValueError, match="empty"):
            TableData.from_array([])


class TestConversionResult:
    """Test ConversionResult tagged outcome."""

    def test_ok(self):
        """Test a successful result carries a value and no error."""
        result = ConversionResult.ok("value")
        assert result.success is True
        assert result.value == "value"
        assert result.error is None

    def test_fail(self):
        """Test a failed result carries an error and no value."""
        result = ConversionResult.fail("boom")
        assert result.success is False
        assert result.value is None
        assert result.error == "boom"

    def test_fail_requires_message(self):
        """Test a failure without a message is rejected."""
        with pytest.raises(ValueError):
            ConversionResult.fail("")

    def test_success_with_error_rejected(self):
        """Test mixed states are rejected."""
        with pytest.raises(ValueError):
            ConversionResult(success=True, value="x", error="boom")

    def test_failure_with_value_rejected(self):
        """Test a failure cannot carry a value."""
        with pytest.raises(ValueError):
            ConversionResult(success=False, value="x", error="boom")

    def test_immutable(self):
        """Test results are frozen."""
        result = ConversionResult.ok("x")
        with pytest.raises(Exception):
            result.value = "y"


class TestStructureAnalysis:
    """Test StructureAnalysis report."""

    @pytest.fixture
    def analysis(self):
        return StructureAnalysis(
            column_count=2,
            row_count=4,
            columns=[
                ColumnAnalysis(name="Qty", non_null_percentage=75.0, distinct_count=3,
                               suggested_type="Numeric"),
                ColumnAnalysis(name="Empty", non_null_percentage=0.0, distinct_count=0),
            ],
        )

    def test_get_column(self, analysis):
        """Test lookup by name."""
        assert analysis.get_column("Qty").distinct_count == 3
        assert analysis.get_column("Missing") is None

    def test_report_header(self, analysis):
        """Test the report starts with table totals."""
        report = str(analysis)
        assert report.startswith("Table Analysis:")
        assert "- Number of columns: 2" in report
        assert "- Number of rows: 4" in report

    def test_report_column_details(self, analysis):
        """Test per-column lines are formatted with one decimal."""
        report = str(analysis)
        assert "Column: Qty" in report
        assert "- Non-null values: 75.0%" in report
        assert "- Distinct values: 3" in report
        assert "- Suggested Type: Numeric" in report

    def test_report_omits_missing_type(self, analysis):
        """Test columns without a suggested type have no type line."""
        report = str(analysis)
        empty_section = report.split("Column: Empty")[1]
        assert "Suggested Type" not in empty_section
