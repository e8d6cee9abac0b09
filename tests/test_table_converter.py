#!/usr/bin/env python3
"""
Tests for TableConverter.

Covers delimited and fixed-width conversion, markdown rendering and the
column type heuristic.
"""

import pytest
from texttable.transformers.data_models import TableData
from texttable.transformers.table_converter import TableConverter


@pytest.fixture
def converter():
    """Converter with a fixed "\\n" line terminator."""
    return TableConverter(newline="\n")


class TestTextToTable:
    """Test delimited text -> table."""

    def test_basic_tab_delimited(self, converter):
        """Test header and rows are split on tabs."""
        table = converter.text_to_table("Name\tAge\nAnn\t30\nBob\t25")
        assert table.columns == ["Name", "Age"]
        assert table.rows == [["Ann", "30"], ["Bob", "25"]]

    def test_custom_delimiter(self, converter):
        """Test a comma delimiter."""
        table = converter.text_to_table("a,b\n1,2", ",")
        assert table.columns == ["a", "b"]
        assert table.rows == [["1", "2"]]

    def test_mixed_line_endings(self, converter):
        """Test CRLF, CR and LF are all line breaks."""
        table = converter.text_to_table("a\tb\r\n1\t2\r3\t4\n5\t6")
        assert table.row_count == 3

    def test_empty_lines_dropped(self, converter):
        """Test blank lines do not produce rows."""
        table = converter.text_to_table("a\tb\n\n1\t2\n\n")
        assert table.rows == [["1", "2"]]

    def test_cells_keep_surrounding_spaces(self, converter):
        """Test neither header names nor data cells are trimmed."""
        table = converter.text_to_table(" a \t b \n 1 \t2")
        assert table.columns == [" a ", " b "]
        assert table.rows == [[" 1 ", "2"]]

    def test_single_column_keeps_empty_rows(self, converter):
        """Test an empty line in a one-column table is a row holding ""."""
        table = converter.text_to_table("A\nx\n\ny\n")
        assert table.rows == [["x"], [""], ["y"]]

    def test_single_column_trailing_empty_row(self, converter):
        """Test only the final line terminator is dropped."""
        table = converter.text_to_table("A\r\nx\r\n\r\n")
        assert table.rows == [["x"], [""]]

    def test_blank_header_named_by_position(self, converter):
        """Test blank header cells become ColumnN."""
        table = converter.text_to_table("a\t\tc\n1\t2\t3")
        assert table.columns == ["a", "Column2", "c"]

    def test_short_row_padded_with_none(self, converter):
        """Test missing trailing cells are None."""
        table = converter.text_to_table("a\tb\tc\n1")
        assert table.rows == [["1", None, None]]

    def test_long_row_truncated(self, converter):
        """Test surplus cells are dropped."""
        table = converter.text_to_table("a\tb\n1\t2\t3\t4")
        assert table.rows == [["1", "2"]]

    def test_header_only(self, converter):
        """Test a single line gives columns without rows."""
        table = converter.text_to_table("a\tb")
        assert table.columns == ["a", "b"]
        assert table.row_count == 0

    @pytest.mark.parametrize("text", ["", "   ", "\n\n", None])
    def test_blank_input_gives_empty_table(self, converter, text):
        """Test blank input returns an empty table."""
        table = converter.text_to_table(text)
        assert table.column_count == 0
        assert table.row_count == 0

    def test_empty_delimiter_rejected(self, converter):
        """Test an empty delimiter is an error."""
        with pytest.raises(ValueError, match="Delimiter"):
            converter.text_to_table("a\tb", "")


class TestTableToText:
    """Test table -> delimited text."""

    def test_every_line_terminated(self, converter):
        """Test the last line also ends with the terminator."""
        table = TableData(columns=["a", "b"], rows=[["1", "2"]])
        assert converter.table_to_text(table) == "a\tb\n1\t2\n"

    def test_none_renders_empty(self, converter):
        """Test None cells become empty strings."""
        table = TableData(columns=["a", "b"], rows=[[None, "2"]])
        assert converter.table_to_text(table, ",") == "a,b\n,2\n"

    def test_platform_newline_default(self):
        """Test the default terminator is os.linesep."""
        import os
        table = TableData(columns=["a"], rows=[["1"]])
        assert TableConverter().table_to_text(table) == f"a{os.linesep}1{os.linesep}"

    def test_round_trip(self, converter):
        """Test text -> table -> text preserves rectangular input."""
        text = "Name\tCity\nAnn\tParis\nBob\tRome\n"
        assert converter.table_to_text(converter.text_to_table(text)) == text

    @pytest.mark.parametrize("table", [
        TableData(columns=["A"], rows=[["x"], [""], ["y"]]),
        TableData(columns=["A"], rows=[["x"], [None]]),
        TableData(columns=[" a", "b "], rows=[["1", ""], ["", "2"]]),
    ])
    def test_round_trip_edge_tables(self, converter, table):
        """Test empty cells and padded headers survive table -> text -> table -> text."""
        text = converter.table_to_text(table)
        assert converter.table_to_text(converter.text_to_table(text)) == text


class TestFixedWidth:
    """Test fixed-width conversion."""

    def test_fixed_width_to_table(self, converter):
        """Test slicing and right-stripping."""
        text = "Name  Age\nAnn   30 \nBob   7"
        table = converter.fixed_width_to_table(text, [6, 3])
        assert table.columns == ["Name", "Age"]
        assert table.rows == [["Ann", "30"], ["Bob", "7"]]

    def test_short_line_gives_none(self, converter):
        """Test a column starting past the end of a line is None."""
        table = converter.fixed_width_to_table("AAABBB\nxy", [3, 3])
        assert table.rows == [["xy", None]]

    def test_extra_characters_ignored(self, converter):
        """Test characters beyond the total width are dropped."""
        table = converter.fixed_width_to_table("AB\n12345", [1, 1])
        assert table.rows == [["1", "2"]]

    def test_blank_header_slice_named(self, converter):
        """Test blank header slices become ColumnN."""
        table = converter.fixed_width_to_table("A   \n1234", [2, 2])
        assert table.columns == ["A", "Column2"]

    @pytest.mark.parametrize("widths", [[], [0], [3, -1], [2.5], [True]])
    def test_invalid_widths_rejected(self, converter, widths):
        """Test widths must be positive integers."""
        with pytest.raises(ValueError):
            converter.fixed_width_to_table("abc", widths)

    def test_table_to_fixed_width_text(self, converter):
        """Test padding and truncation."""
        table = TableData(columns=["Name", "Qty"], rows=[["Alexander", "5"], [None, "12"]])
        text = converter.table_to_fixed_width_text(table, [5, 3])
        assert text == "Name Qty\nAlexa5  \n     12 \n"

    def test_every_line_has_total_width(self, converter):
        """Test each line is exactly sum(widths) characters."""
        table = TableData(columns=["a", "b"], rows=[["xxxxxxxx", ""], ["", "y"]])
        for line in converter.table_to_fixed_width_text(table, [4, 2]).splitlines():
            assert len(line) == 6

    def test_suggest_column_widths(self, converter):
        """Test widths are the widest value plus padding."""
        table = TableData(columns=["Name", "Q"], rows=[["Alexander", "5"], [None, "123"]])
        assert converter.suggest_column_widths(table) == [10, 4]
        assert converter.suggest_column_widths(table, padding=0) == [9, 3]

    def test_fixed_width_round_trip(self, converter):
        """Test table -> fixed width -> table with suggested widths."""
        table = TableData(columns=["Name", "City"], rows=[["Ann", "Paris"], ["Bob", "Rome"]])
        widths = converter.suggest_column_widths(table)
        text = converter.table_to_fixed_width_text(table, widths)
        parsed = converter.fixed_width_to_table(text, widths)
        assert parsed.columns == table.columns
        assert parsed.rows == table.rows


class TestMarkdown:
    """Test markdown rendering."""

    def test_render(self, converter):
        """Test header, separator and rows."""
        table = TableData(columns=["a", "b"], rows=[["1", None]])
        assert converter.table_to_markdown(table) == "| a | b |\n|---|---|\n| 1 |  |"

    def test_pipes_escaped(self, converter):
        """Test literal pipes are escaped."""
        table = TableData(columns=["x"], rows=[["a|b"]])
        assert "| a\\|b |" in converter.table_to_markdown(table)

    def test_no_columns(self, converter):
        """Test an empty table renders as an empty string."""
        assert converter.table_to_markdown(TableData()) == ""


class TestAnalyzeStructure:
    """Test the column type heuristic."""

    def test_numeric_column(self, converter):
        """Test integers, decimals and grouped thousands are Numeric."""
        table = TableData(columns=["n"], rows=[["1"], ["-2.5"], ["1,234.50"], ["+.5"]])
        assert converter.analyze_structure(table).columns[0].suggested_type == "Numeric"

    def test_year_is_numeric(self, converter):
        """Test a bare year is classified Numeric, not Date."""
        table = TableData(columns=["year"], rows=[["2024"], ["1999"]])
        assert converter.analyze_structure(table).columns[0].suggested_type == "Numeric"

    def test_date_column(self, converter):
        """Test common date formats are Date."""
        table = TableData(columns=["d"], rows=[["2024-01-15"], ["03/15/2023"], ["15 Mar 2023"]])
        assert converter.analyze_structure(table).columns[0].suggested_type == "Date"

    def test_mixed_column_is_text(self, converter):
        """Test one unparseable value makes the column Text."""
        table = TableData(columns=["m"], rows=[["1"], ["2"], ["three"]])
        assert converter.analyze_structure(table).columns[0].suggested_type == "Text"

    def test_all_null_column_has_no_type(self, converter):
        """Test a column without non-null values has no suggestion."""
        table = TableData(columns=["a", "b"], rows=[["1", None], ["2", None]])
        column = converter.analyze_structure(table).get_column("b")
        assert column.suggested_type is None
        assert column.non_null_percentage == 0.0
        assert column.distinct_count == 0

    def test_percentages_and_distinct(self, converter):
        """Test non-null share and distinct count."""
        table = TableData(columns=["c"], rows=[["x"], ["x"], [None], ["y"]])
        column = converter.analyze_structure(table).columns[0]
        assert column.non_null_percentage == 75.0
        assert column.distinct_count == 2

    def test_counts(self, converter):
        """Test table-level counts."""
        table = TableData(columns=["a", "b"], rows=[["1", "2"]] * 3)
        analysis = converter.analyze_structure(table)
        assert analysis.column_count == 2
        assert analysis.row_count == 3
        assert len(analysis.columns) == 2

    def test_no_rows(self, converter):
        """Test a header-only table reports 0% without dividing by zero."""
        analysis = converter.analyze_structure(TableData(columns=["a"]))
        assert analysis.columns[0].non_null_percentage == 0.0
        assert analysis.columns[0].suggested_type is None

    def test_ragged_rows_tolerated(self, converter):
        """Test rows shorter than the header count as null cells."""
        table = TableData(columns=["a", "b"], rows=[["1"], ["2", "3"]])
        column = converter.analyze_structure(table).get_column("b")
        assert column.non_null_percentage == 50.0

    @pytest.mark.parametrize("value", ["1e5", "", "12a", "1,23", "--1"])
    def test_not_numeric(self, converter, value):
        """Test values that are not plain decimals."""
        assert not converter.is_numeric(value)

    @pytest.mark.parametrize("value", ["2024-02-30", "hello", "", "13/13/2023"])
    def test_not_date(self, converter, value):
        """Test invalid calendar values."""
        assert not converter.is_date(value)

    def test_infer_empty(self, converter):
        """Test an empty value list has no type."""
        assert converter.infer_column_type([]) is None
