#!/usr/bin/env python3
"""
Tests for FileWriter component.

Tests text saving and table export to CSV, tab-delimited text and Excel.
"""

import pytest
from openpyxl import load_workbook

from texttable.transformers.components.file_writer import FileWriter
from texttable.transformers.data_models import TableData


@pytest.fixture
def writer():
    """Writer with a fixed "\\n" line terminator."""
    return FileWriter(newline="\n")


@pytest.fixture
def sample_table():
    return TableData(
        columns=["Name", "Note"],
        rows=[["Ann", 'say "hi"'], [None, "x,y"]],
    )


class TestSaveFile:
    """Test plain text saving."""

    def test_save_file(self, writer, tmp_path):
        path = writer.save_file(tmp_path / "out.txt", "héllo")
        assert path.read_text(encoding="utf-8") == "héllo"

    def test_creates_parent_directory(self, writer, tmp_path):
        """Test missing directories are created."""
        path = writer.save_file(tmp_path / "a" / "b" / "out.txt", "x")
        assert path.exists()

    @pytest.mark.parametrize("bad_path", ["", "   ", None])
    def test_invalid_path(self, writer, bad_path):
        with pytest.raises(ValueError, match="Invalid file path"):
            writer.save_file(bad_path, "x")

    def test_validate_file_path(self, writer, tmp_path):
        assert writer.validate_file_path(tmp_path / "new" / "file.csv") is True
        assert (tmp_path / "new").is_dir()
        assert writer.validate_file_path("") is False


class TestExportCsv:
    """Test CSV export."""

    def test_all_cells_quoted(self, writer, tmp_path, sample_table):
        """Test every cell is quoted and quotes are doubled."""
        path = writer.export_table(tmp_path / "out.csv", sample_table)
        content = path.read_text(encoding="utf-8-sig")
        assert content == '"Name","Note"\n"Ann","say ""hi"""\n"","x,y"\n'

    def test_byte_order_mark(self, writer, tmp_path, sample_table):
        """Test the file starts with a UTF-8 BOM."""
        path = writer.export_table(tmp_path / "out.csv", sample_table)
        assert path.read_bytes().startswith(b"\xef\xbb\xbf")

    def test_array_input(self, writer, tmp_path):
        """Test a 2-D array is accepted as well as TableData."""
        path = writer.export_table(tmp_path / "out.csv", [["a"], ["1"]])
        assert path.read_text(encoding="utf-8-sig") == '"a"\n"1"\n'

    def test_uppercase_extension(self, writer, tmp_path, sample_table):
        path = writer.export_table(tmp_path / "OUT.CSV", sample_table)
        assert path.read_text(encoding="utf-8-sig").startswith('"Name"')


class TestExportText:
    """Test tab-delimited export."""

    @pytest.mark.parametrize("extension", [".txt", ".tsv"])
    def test_tab_delimited(self, writer, tmp_path, sample_table, extension):
        path = writer.export_table(tmp_path / f"out{extension}", sample_table)
        assert path.read_text(encoding="utf-8") == 'Name\tNote\nAnn\tsay "hi"\n\tx,y\n'


class TestExportExcel:
    """Test .xlsx export."""

    def test_sheet_contents(self, writer, tmp_path, sample_table):
        """Test header and rows land on Sheet1."""
        path = writer.export_table(tmp_path / "out.xlsx", sample_table)

        workbook = load_workbook(path)
        sheet = workbook.active
        assert sheet.title == "Sheet1"
        assert sheet["A1"].value == "Name"
        assert sheet["B1"].value == "Note"
        assert sheet["A2"].value == "Ann"
        assert sheet["B2"].value == 'say "hi"'
        assert sheet["B3"].value == "x,y"
        assert sheet.max_row == 3

    def test_formula_like_text_stays_text(self, writer, tmp_path):
        """Test a cell starting with "=" is stored as a string."""
        path = writer.export_table(tmp_path / "out.xlsx", [["H"], ["=1+2"]])

        cell = load_workbook(path).active["A2"]
        assert cell.data_type == "s"
        assert cell.value == "=1+2"

    def test_control_character_rejected(self, writer, tmp_path):
        """Test characters Excel cannot store raise ValueError."""
        with pytest.raises(ValueError, match="cannot be written to Excel"):
            writer.export_table(tmp_path / "out.xlsx", [["H"], ["a\x01b"]])


class TestExportErrors:
    """Test export validation."""

    def test_unsupported_format(self, writer, tmp_path, sample_table):
        with pytest.raises(ValueError, match="Format .json is not supported for export."):
            writer.export_table(tmp_path / "out.json", sample_table)
        assert not (tmp_path / "out.json").exists()

    def test_unsupported_format_leaves_no_directory(self, writer, tmp_path, sample_table):
        """Test the extension is checked before any directory is created."""
        with pytest.raises(ValueError, match="not supported"):
            writer.export_table(tmp_path / "new_dir" / "out.json", sample_table)
        assert not (tmp_path / "new_dir").exists()

    def test_empty_table(self, writer, tmp_path):
        with pytest.raises(ValueError, match="Table data cannot be empty"):
            writer.export_table(tmp_path / "out.csv", TableData())

    def test_empty_array(self, writer, tmp_path):
        with pytest.raises(ValueError, match="Table data cannot be empty"):
            writer.export_table(tmp_path / "out.csv", [])
