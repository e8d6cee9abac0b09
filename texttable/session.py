#!/usr/bin/env python3
"""
ConverterSession - interactive state and commands.

Holds the text being edited, the current table and a status message, and
exposes the user-facing commands. Each command claims a single-flight
slot, so a second request for a busy slot is rejected instead of racing
the first one into the same fields. Commands can also be dispatched to a
background thread with submit().
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from .transformers.components.file_reader import FileReader
from .transformers.components.file_writer import FileWriter
from .transformers.components.openai_client import OpenAITableClient
from .transformers.components.response_parser import parse_pipe_table
from .transformers.data_models import ConversionResult, StructureAnalysis, TableData
from .transformers.table_converter import TableConverter
from .utils.settings_store import SettingsStore
from .utils.single_flight import CancellationToken, SingleFlightGuard

logger = logging.getLogger(__name__)

T = TypeVar("T")

SLOT_CONVERT = "convert"
SLOT_FILE = "file"
SLOT_API_KEY = "api_key"

BUSY_MESSAGE = "Another operation is already in progress"


class ConverterSession:
    """
    State and commands behind the user interface.

    Attributes:
        input_text: Free text being converted
        table_markdown: Current table, as pipe-delimited text
        status_message: Last status shown to the user
    """

    COMMANDS = (
        "text_to_table",
        "table_to_text",
        "text_to_table_data",
        "extract_table",
        "generate_text",
        "describe_structure",
        "text_to_table_local",
        "open_file",
        "save_api_key",
        "clear_api_key",
        "analyze_structure",
        "export_table",
    )

    def __init__(
        self,
        client: Optional[OpenAITableClient] = None,
        settings: Optional[SettingsStore] = None,
        file_reader: Optional[FileReader] = None,
        file_writer: Optional[FileWriter] = None,
        converter: Optional[TableConverter] = None,
        max_workers: int = 2
    ):
        """
        Initialize session and load the saved API key.

        Args:
            client: OpenAI client (default: one using the settings' model)
            settings: Settings store (default: the configured settings file)
            file_reader: File reader component
            file_writer: File writer component
            converter: Mechanical table converter
            max_workers: Threads available to submit()
        """
        self.settings = settings or SettingsStore()
        self.client = client or OpenAITableClient(model=self.settings.get_default_model())
        self.file_reader = file_reader or FileReader()
        self.file_writer = file_writer or FileWriter()
        self.converter = converter or TableConverter()
        self.guard = SingleFlightGuard()
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

        self.input_text = ""
        self.table_markdown = ""
        self.status_message = ""

        self._load_api_key()

    def _load_api_key(self) -> None:
        api_key = self.settings.get_api_key()
        if not api_key.strip():
            self.status_message = "Please enter an API key"
            logger.info("No API key found")
            return

        try:
            self.client.set_api_key(api_key)
            self.status_message = "API key loaded automatically"
        except ValueError as e:
            self.status_message = f"API key load failed: {e}"
            logger.warning(self.status_message)

    @property
    def is_processing(self) -> bool:
        """True while any command holds a slot."""
        return bool(self.guard.active_keys())

    def _execute(
        self,
        slot: str,
        processing_message: str,
        action: Callable[[CancellationToken], ConversionResult[T]]
    ) -> ConversionResult[T]:
        """Run action while holding slot; reject when the slot is busy."""
        token = self.guard.try_acquire(slot)
        if token is None:
            self.status_message = BUSY_MESSAGE
            return ConversionResult.fail(BUSY_MESSAGE)

        try:
            self.status_message = processing_message
            return action(token)
        finally:
            self.guard.release(slot)

    # ------------------------------------------------------------------
    # Conversion commands
    # ------------------------------------------------------------------

    def text_to_table(self) -> ConversionResult[str]:
        """Convert input_text to a table with the language model."""
        if not self.input_text.strip():
            self.status_message = "Please enter some text"
            return ConversionResult.fail(self.status_message)

        def action(token: CancellationToken) -> ConversionResult[str]:
            result = self.client.text_to_table(self.input_text, token)
            if result.success:
                self.table_markdown = result.value or ""
                self.status_message = "Conversion complete"
            else:
                self.status_message = f"Conversion failed: {result.error}"
            return result

        return self._execute(SLOT_CONVERT, "Converting...", action)

    def table_to_text(self) -> ConversionResult[str]:
        """Describe table_markdown in natural language with the language model."""
        if not self.table_markdown.strip():
            self.status_message = "Please convert a table first"
            return ConversionResult.fail(self.status_message)

        def action(token: CancellationToken) -> ConversionResult[str]:
            result = self.client.table_to_text(self.table_markdown, token)
            if result.success:
                self.input_text = result.value or ""
                self.status_message = "Conversion complete"
            else:
                self.status_message = f"Conversion failed: {result.error}"
            return result

        return self._execute(SLOT_CONVERT, "Converting...", action)

    def text_to_table_data(self) -> ConversionResult[TableData]:
        """
        Convert input_text with the language model and parse the response.

        table_markdown is replaced by the normalized markdown of the parsed
        table, so a response that breaks the table grammar leaves it as is.
        """
        if not self.input_text.strip():
            self.status_message = "Please enter some text"
            return ConversionResult.fail(self.status_message)

        def action(token: CancellationToken) -> ConversionResult[TableData]:
            return self._apply_table(self.client.text_to_table_data(self.input_text, token))

        return self._execute(SLOT_CONVERT, "Converting...", action)

    def extract_table(self) -> ConversionResult[TableData]:
        """Have the language model pull the key information of input_text into a table."""
        if not self.input_text.strip():
            self.status_message = "Please enter some text"
            return ConversionResult.fail(self.status_message)

        def action(token: CancellationToken) -> ConversionResult[TableData]:
            rows = self.client.analyze_text(self.input_text, token)
            if rows.success:
                return self._apply_table(ConversionResult.ok(TableData.from_array(rows.value)))
            return self._apply_table(ConversionResult.fail(rows.error))

        return self._execute(SLOT_CONVERT, "Analyzing text...", action)

    def generate_text(self) -> ConversionResult[str]:
        """Describe the current table, cell by cell, with the language model."""
        try:
            rows = self.current_table().to_array()
        except ValueError as e:
            self.status_message = f"Conversion failed: {e}"
            return ConversionResult.fail(self.status_message)

        def action(token: CancellationToken) -> ConversionResult[str]:
            result = self.client.generate_text(rows, token)
            if result.success:
                self.input_text = result.value or ""
                self.status_message = "Conversion complete"
            else:
                self.status_message = f"Conversion failed: {result.error}"
            return result

        return self._execute(SLOT_CONVERT, "Generating text...", action)

    def describe_structure(self) -> ConversionResult[str]:
        """Ask the language model to comment on the current table's columns."""
        try:
            table = self.current_table()
        except ValueError as e:
            self.status_message = f"Analysis failed: {e}"
            return ConversionResult.fail(self.status_message)

        def action(token: CancellationToken) -> ConversionResult[str]:
            result = self.client.analyze_table_structure(table, token)
            if result.success:
                self.status_message = "Analysis complete"
            else:
                self.status_message = f"Analysis failed: {result.error}"
            return result

        return self._execute(SLOT_CONVERT, "Analyzing table...", action)

    def _apply_table(self, result: ConversionResult[TableData]) -> ConversionResult[TableData]:
        if not result.success:
            self.status_message = f"Conversion failed: {result.error}"
            return result

        table = result.value
        self.table_markdown = self.converter.table_to_markdown(table)
        self.status_message = (
            f"Conversion complete ({table.column_count} columns, {table.row_count} rows)"
        )
        return result

    def text_to_table_local(self, delimiter: str = "\t") -> ConversionResult[TableData]:
        """Convert delimited input_text to a table without the language model."""
        if not self.input_text.strip():
            self.status_message = "Please enter some text"
            return ConversionResult.fail(self.status_message)

        def action(token: CancellationToken) -> ConversionResult[TableData]:
            try:
                table = self.converter.text_to_table(self.input_text, delimiter)
            except ValueError as e:
                self.status_message = f"Conversion failed: {e}"
                return ConversionResult.fail(self.status_message)
            self.table_markdown = self.converter.table_to_markdown(table)
            self.status_message = (
                f"Conversion complete ({table.column_count} columns, {table.row_count} rows)"
            )
            return ConversionResult.ok(table)

        return self._execute(SLOT_CONVERT, "Converting...", action)

    def analyze_structure(self) -> ConversionResult[StructureAnalysis]:
        """Run the column type heuristic on the current table."""
        try:
            table = self.current_table()
        except ValueError as e:
            self.status_message = f"Analysis failed: {e}"
            return ConversionResult.fail(self.status_message)

        analysis = self.converter.analyze_structure(table)
        self.status_message = "Analysis complete"
        return ConversionResult.ok(analysis)

    def current_table(self) -> TableData:
        """
        Parse table_markdown into a TableData.

        Raises:
            ValueError: If there is no table or it is malformed
        """
        if not self.table_markdown.strip():
            raise ValueError("No table to work with")
        return TableData.from_array(parse_pipe_table(self.table_markdown))

    # ------------------------------------------------------------------
    # File commands
    # ------------------------------------------------------------------

    def open_file(self, file_path: Union[str, Path], auto_convert: bool = True) -> ConversionResult[str]:
        """
        Load a file into input_text and optionally convert it.

        Args:
            file_path: Text, PDF, Word or spreadsheet file
            auto_convert: Run text_to_table after loading

        Returns:
            ConversionResult with the file content
        """
        path = Path(file_path)

        def action(token: CancellationToken) -> ConversionResult[str]:
            try:
                content = self.file_reader.read_any(path) or ""
            except (OSError, ValueError) as e:
                self.input_text = ""
                self.status_message = f"Failed to open file: {e}"
                return ConversionResult.fail(self.status_message)

            self.input_text = content
            opened = f"Opened file: {path.name}"

            if auto_convert and content.strip() and not token.is_cancelled:
                conversion = self.text_to_table()
                if not conversion.success:
                    self.status_message = f"{opened} ({conversion.error})"
                    return ConversionResult.ok(content)

            self.status_message = opened
            return ConversionResult.ok(content)

        return self._execute(SLOT_FILE, "Opening file...", action)

    def export_table(self, file_path: Union[str, Path]) -> ConversionResult[Path]:
        """Export the current table; the format follows the file extension."""

        def action(token: CancellationToken) -> ConversionResult[Path]:
            try:
                table = self.current_table()
                written = self.file_writer.export_table(file_path, table)
            except (OSError, ValueError) as e:
                self.status_message = f"Export failed: {e}"
                return ConversionResult.fail(self.status_message)

            self.status_message = f"Exported table to {written}"
            return ConversionResult.ok(written)

        return self._execute(SLOT_FILE, "Exporting...", action)

    # ------------------------------------------------------------------
    # API key commands
    # ------------------------------------------------------------------

    def save_api_key(self, api_key: str) -> ConversionResult[bool]:
        """
        Validate, activate, persist and verify an API key.

        A key that fails verification is cleared everywhere.

        Returns:
            ConversionResult with True when the key was verified
        """
        if not api_key or not api_key.strip():
            self.status_message = "API key cannot be empty"
            return ConversionResult.fail(self.status_message)

        def action(token: CancellationToken) -> ConversionResult[bool]:
            try:
                self.client.set_api_key(api_key)
            except ValueError:
                self.status_message = "Invalid API key format"
                return ConversionResult.fail(self.status_message)

            try:
                self.settings.save_api_key(api_key)
            except OSError as e:
                self.status_message = f"Failed to save API key: {e}"
                return ConversionResult.fail(self.status_message)

            if self.client.test_connection(token):
                self.status_message = "API key verified"
                return ConversionResult.ok(True)

            self._forget_api_key()
            self.status_message = "API key verification failed"
            return ConversionResult.fail(self.status_message)

        return self._execute(SLOT_API_KEY, "Saving API key...", action)

    def clear_api_key(self) -> ConversionResult[bool]:
        """Forget the API key in memory, in the settings file and the environment."""
        self._forget_api_key()
        self.status_message = "API key cleared"
        return ConversionResult.ok(True)

    def _forget_api_key(self) -> None:
        self.client.clear_api_key()
        self.settings.clear_api_key()

    # ------------------------------------------------------------------
    # Background dispatch
    # ------------------------------------------------------------------

    def submit(self, command: str, *args, **kwargs) -> Future:
        """
        Run a command on a background thread.

        Args:
            command: One of COMMANDS
            *args, **kwargs: Passed to the command

        Returns:
            Future resolving to the command's ConversionResult

        Raises:
            ValueError: If command is unknown
        """
        if command not in self.COMMANDS:
            raise ValueError(f"Unknown command: {command}")
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="texttable"
            )
        return self._executor.submit(getattr(self, command), *args, **kwargs)

    def cancel(self) -> int:
        """Request cancellation of every in-flight command."""
        count = self.guard.cancel_all()
        if count:
            self.status_message = "Cancellation requested"
        return count

    def shutdown(self, wait: bool = True) -> None:
        """Stop the background executor."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
