"""
FileReader Component

Reads importable documents and returns their text content. Plain text is
read as UTF-8; PDF, Word and spreadsheet files are decoded with their
respective libraries.
"""

import logging
from pathlib import Path
from typing import List

import pypdfium2 as pdfium
from docx import Document
from openpyxl import load_workbook

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {".txt", ".csv", ".tsv", ".md", ".text"}
PDF_EXTENSIONS = {".pdf"}
WORD_EXTENSIONS = {".docx"}
SPREADSHEET_EXTENSIONS = {".xlsx", ".xlsm"}


class FileReader:
    """Reads text, PDF, Word and spreadsheet files."""

    def read_any(self, file_path: str | Path) -> str:
        """
        Read a file, choosing the decoder from its extension.

        Unknown extensions are read as plain text.

        Args:
            file_path: File to read

        Returns:
            The file's text content

        Raises:
            FileNotFoundError: If the file does not exist
            IOError: If the file cannot be read or decoded
        """
        path = Path(file_path)
        extension = path.suffix.lower()

        if extension in PDF_EXTENSIONS:
            return self.read_pdf(path)
        if extension in WORD_EXTENSIONS:
            return self.read_word(path)
        if extension in SPREADSHEET_EXTENSIONS:
            return self.read_spreadsheet(path)
        return self.read_file(path)

    def read_file(self, file_path: str | Path) -> str:
        """
        Read the entire file contents as UTF-8 text.

        Raises:
            FileNotFoundError: If the file does not exist
            IOError: If the file cannot be read
        """
        path = self._existing(file_path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise IOError(f"Error reading file: {e}")

    def read_pdf(self, file_path: str | Path) -> str:
        """
        Extract the text of every page, in page order.

        Pages are joined with a line break.

        Raises:
            FileNotFoundError: If the file does not exist
            IOError: If the PDF cannot be opened or parsed
        """
        path = self._existing(file_path)
        page_texts: List[str] = []

        try:
            pdf = pdfium.PdfDocument(str(path))
        except pdfium.PdfiumError as e:
            raise IOError(f"Error reading file: {e}")

        try:
            for index in range(len(pdf)):
                page = pdf[index]
                textpage = page.get_textpage()
                try:
                    text = textpage.get_text_range()
                finally:
                    textpage.close()
                    page.close()
                page_texts.append(text.replace("\r\n", "\n").replace("\r", "\n"))
        except pdfium.PdfiumError as e:
            raise IOError(f"Error reading file: {e}")
        finally:
            pdf.close()

        logger.info(f"Read {len(page_texts)} pages from {path.name}")
        return "\n".join(page_texts)

    def read_word(self, file_path: str | Path) -> str:
        """
        Extract paragraph text followed by table cells.

        Each paragraph becomes one line. Each table row becomes one line of
        tab-separated, trimmed cell text.

        Raises:
            FileNotFoundError: If the file does not exist
            IOError: If the document cannot be opened
        """
        path = self._existing(file_path)
        try:
            document = Document(str(path))
        except Exception as e:
            # python-docx raises zipfile/lxml/KeyError variants for bad packages
            raise IOError(f"Error reading file: {e}")

        lines = [paragraph.text for paragraph in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                lines.append("\t".join(cell.text.strip() for cell in row.cells))

        logger.info(
            f"Read {len(document.paragraphs)} paragraphs and {len(document.tables)} tables from {path.name}"
        )
        return "\n".join(lines) + ("\n" if lines else "")

    def read_spreadsheet(self, file_path: str | Path) -> str:
        """
        Read the first worksheet as tab-delimited text.

        Empty cells become empty strings.

        Raises:
            FileNotFoundError: If the file does not exist
            IOError: If the workbook cannot be opened
        """
        path = self._existing(file_path)
        try:
            workbook = load_workbook(filename=str(path), read_only=True, data_only=True)
        except Exception as e:
            # openpyxl raises zipfile/KeyError/InvalidFileException variants
            raise IOError(f"Error reading file: {e}")

        try:
            sheet = workbook.worksheets[0]
            lines = [
                "\t".join("" if value is None else str(value) for value in row)
                for row in sheet.iter_rows(values_only=True)
            ]
        finally:
            workbook.close()

        return "".join(line + "\n" for line in lines)

    @staticmethod
    def _existing(file_path: str | Path) -> Path:
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path
