#!/usr/bin/env python3
"""
Command-line interface for the TextTable Converter.

This module provides the `texttable` console script. Local conversions
(to-table, to-text, fixed-width, analyze, export) never contact the
language model; the llm-* and key commands go through ConverterSession.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .session import ConverterSession
from .transformers.components.file_reader import FileReader
from .transformers.components.file_writer import FileWriter
from .transformers.components.response_parser import parse_pipe_table
from .transformers.data_models import TableData
from .transformers.table_converter import TableConverter
from .utils.config import config
from .utils.credentials import mask_api_key
from .utils.settings_store import SettingsStore

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _delimiter(value: str) -> str:
    """argparse type: accepts a literal delimiter or the names tab/comma/pipe/semicolon."""
    named = {"tab": "\t", "\\t": "\t", "comma": ",", "pipe": "|", "semicolon": ";"}
    value = named.get(value.lower(), value)
    if not value:
        raise argparse.ArgumentTypeError("Delimiter must not be empty")
    return value


def _widths(value: str) -> List[int]:
    """argparse type: comma-separated positive integers."""
    try:
        widths = [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid column widths: {value}")
    if not widths or any(width <= 0 for width in widths):
        raise argparse.ArgumentTypeError(f"Column widths must be positive integers: {value}")
    return widths


def _read_table(path: str, delimiter: str) -> TableData:
    """Read a delimited or spreadsheet file into a table."""
    content = FileReader().read_any(path)
    if Path(path).suffix.lower() in (".xlsx", ".xlsm"):
        delimiter = "\t"
    return TableConverter().text_to_table(content, delimiter)


def _write_or_print(text: str, output: Optional[str]) -> None:
    if output:
        written = FileWriter().save_file(output, text)
        print(f"✅ Saved: {written}")
    else:
        print(text, end="" if text.endswith("\n") else "\n")


def cmd_to_table(args):
    """Delimited text to a pipe table."""
    table = _read_table(args.input_file, args.delimiter)
    _write_or_print(TableConverter(newline="\n").table_to_markdown(table), args.output)


def cmd_to_text(args):
    """Pipe table to delimited text."""
    rows = parse_pipe_table(FileReader().read_file(args.input_file))
    table = TableData.from_array(rows)
    _write_or_print(TableConverter(newline="\n").table_to_text(table, args.delimiter), args.output)


def cmd_fixed_width(args):
    """Fixed-width text to a pipe table, or a table to fixed-width text."""
    converter = TableConverter(newline="\n")

    if args.reverse:
        table = _read_table(args.input_file, args.delimiter)
        widths = args.widths or converter.suggest_column_widths(table)
        _write_or_print(converter.table_to_fixed_width_text(table, widths), args.output)
        return

    if not args.widths:
        raise ValueError("--widths is required when reading fixed-width text")
    table = converter.fixed_width_to_table(FileReader().read_file(args.input_file), args.widths)
    _write_or_print(converter.table_to_markdown(table), args.output)


def cmd_analyze(args):
    """Print the column type analysis of a delimited file."""
    table = _read_table(args.input_file, args.delimiter)
    print(TableConverter().analyze_structure(table))


def cmd_export(args):
    """Export a delimited file as CSV, text or Excel."""
    table = _read_table(args.input_file, args.delimiter)
    written = FileWriter().export_table(args.output_file, table)
    print(f"✅ Exported {table.row_count} rows to {written}")


def _session() -> ConverterSession:
    return ConverterSession()


def _report(session: ConverterSession, result) -> None:
    if not result.success:
        raise RuntimeError(result.error)
    logger.info(session.status_message)


def cmd_llm_to_table(args):
    """Convert a document to a table with the language model."""
    session = _session()
    try:
        session.input_text = FileReader().read_any(args.input_file)
        if args.parse:
            _report(session, session.text_to_table_data())
            _write_or_print(session.table_markdown, args.output)
        else:
            result = session.text_to_table()
            _report(session, result)
            _write_or_print(result.value, args.output)
    finally:
        session.shutdown()


def cmd_llm_extract(args):
    """Extract the key information of a document into a table with the language model."""
    session = _session()
    try:
        session.input_text = FileReader().read_any(args.input_file)
        _report(session, session.extract_table())
        _write_or_print(session.table_markdown, args.output)
    finally:
        session.shutdown()


def cmd_llm_describe(args):
    """Describe every cell of a pipe table with the language model."""
    session = _session()
    try:
        session.table_markdown = FileReader().read_file(args.input_file)
        result = session.generate_text()
        _report(session, result)
        _write_or_print(result.value, args.output)
    finally:
        session.shutdown()


def cmd_llm_analyze(args):
    """Ask the language model to review a table's column layout."""
    session = _session()
    try:
        session.table_markdown = FileReader().read_file(args.input_file)
        result = session.describe_structure()
        _report(session, result)
        print(result.value)
    finally:
        session.shutdown()


def cmd_llm_to_text(args):
    """Describe a pipe table in natural language with the language model."""
    session = _session()
    try:
        session.table_markdown = FileReader().read_file(args.input_file)
        result = session.table_to_text()
        _report(session, result)
        _write_or_print(result.value, args.output)
    finally:
        session.shutdown()


def cmd_set_key(args):
    """Save and verify an API key."""
    session = _session()
    result = session.save_api_key(args.api_key)
    if not result.success:
        raise RuntimeError(session.status_message)
    print(f"✅ {session.status_message} ({mask_api_key(args.api_key)})")


def cmd_clear_key(args):
    """Forget the saved API key."""
    session = _session()
    session.clear_api_key()
    print(f"✅ {session.status_message}")


def cmd_test_key(args):
    """Check the saved API key against the API."""
    session = _session()
    if not session.client.has_api_key:
        raise RuntimeError(session.status_message)
    if not session.client.test_connection():
        raise RuntimeError("API key verification failed, key cleared")
    print("✅ API key verified")


def cmd_settings(args):
    """Show or change persisted settings."""
    settings = SettingsStore()

    if args.toggle_dark_mode:
        print(f"Dark mode: {settings.toggle_dark_mode()}")
    if args.toggle_toolbar:
        print(f"Show toolbar: {settings.toggle_toolbar()}")

    print(f"\nSettings file: {settings.settings_path}")
    print(f"API key: {mask_api_key(settings.api_key)}")
    print(f"Dark mode: {settings.is_dark_mode}")
    print(f"Show toolbar: {settings.show_toolbar}")
    print(f"Google Drive credentials: {'set' if settings.google_drive_credentials else 'Not set'}")
    print(f"Default model: {settings.get_default_model()}")


def cmd_config(args):
    """Print the configuration summary."""
    config.print_config_summary()


def cmd_serve(args):
    """Run the REST API."""
    from .api import create_app

    app = create_app()
    print(f"Serving TextTable API on http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="texttable",
        description="Convert between free text and tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  texttable to-table data.tsv
  texttable to-table data.csv --delimiter comma --output table.md
  texttable to-text table.md --delimiter comma
  texttable fixed-width report.txt --widths 10,6,12
  texttable fixed-width data.tsv --reverse
  texttable analyze data.tsv
  texttable export data.tsv data.xlsx
  texttable llm-to-table notes.pdf
  texttable llm-to-table notes.pdf --parse
  texttable llm-analyze table.md
  texttable set-key sk-...
  texttable serve --port 5000
        """
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    def with_delimiter(sub):
        sub.add_argument('--delimiter', '-d', type=_delimiter, default="\t",
                         help='Column delimiter: a character or tab/comma/pipe/semicolon (default: tab)')

    to_table = subparsers.add_parser('to-table', help='Delimited text to a pipe table')
    to_table.add_argument('input_file', help='Text, CSV or spreadsheet file')
    with_delimiter(to_table)
    to_table.add_argument('--output', '-o', help='Write the result to a file')

    to_text = subparsers.add_parser('to-text', help='Pipe table to delimited text')
    to_text.add_argument('input_file', help='File containing a pipe table')
    with_delimiter(to_text)
    to_text.add_argument('--output', '-o', help='Write the result to a file')

    fixed = subparsers.add_parser('fixed-width', help='Fixed-width text to a table (or back)')
    fixed.add_argument('input_file', help='Input file')
    fixed.add_argument('--widths', '-w', type=_widths, help='Comma-separated column widths')
    fixed.add_argument('--reverse', action='store_true',
                       help='Read a delimited file and write fixed-width text')
    with_delimiter(fixed)
    fixed.add_argument('--output', '-o', help='Write the result to a file')

    analyze = subparsers.add_parser('analyze', help='Suggest column types')
    analyze.add_argument('input_file', help='Text, CSV or spreadsheet file')
    with_delimiter(analyze)

    export = subparsers.add_parser('export', help='Export a table to .csv, .txt, .tsv or .xlsx')
    export.add_argument('input_file', help='Text, CSV or spreadsheet file')
    export.add_argument('output_file', help='Destination; the extension selects the format')
    with_delimiter(export)

    llm_table = subparsers.add_parser('llm-to-table', help='Document to table with the language model')
    llm_table.add_argument('input_file', help='Text, PDF, Word or spreadsheet file')
    llm_table.add_argument('--parse', action='store_true',
                           help='Validate the response and print it as a normalized table')
    llm_table.add_argument('--output', '-o', help='Write the result to a file')

    llm_text = subparsers.add_parser('llm-to-text', help='Pipe table to prose with the language model')
    llm_text.add_argument('input_file', help='File containing a pipe table')
    llm_text.add_argument('--output', '-o', help='Write the result to a file')

    llm_extract = subparsers.add_parser('llm-extract', help='Extract key information into a table')
    llm_extract.add_argument('input_file', help='Text, PDF, Word or spreadsheet file')
    llm_extract.add_argument('--output', '-o', help='Write the result to a file')

    llm_describe = subparsers.add_parser('llm-describe', help='Generate text from every cell of a pipe table')
    llm_describe.add_argument('input_file', help='File containing a pipe table')
    llm_describe.add_argument('--output', '-o', help='Write the result to a file')

    llm_analyze = subparsers.add_parser('llm-analyze', help='Review a pipe table\'s columns with the language model')
    llm_analyze.add_argument('input_file', help='File containing a pipe table')

    set_key = subparsers.add_parser('set-key', help='Save and verify an OpenAI API key')
    set_key.add_argument('api_key', help='OpenAI API key (sk-...)')

    subparsers.add_parser('clear-key', help='Forget the saved API key')
    subparsers.add_parser('test-key', help='Verify the saved API key')

    settings = subparsers.add_parser('settings', help='Show or change settings')
    settings.add_argument('--toggle-dark-mode', action='store_true', help='Flip dark mode')
    settings.add_argument('--toggle-toolbar', action='store_true', help='Flip toolbar visibility')

    subparsers.add_parser('config', help='Show configuration summary')

    serve = subparsers.add_parser('serve', help='Run the REST API')
    serve.add_argument('--host', default='127.0.0.1', help='Bind address (default: 127.0.0.1)')
    serve.add_argument('--port', type=int, default=5000, help='Port (default: 5000)')
    serve.add_argument('--debug', action='store_true', help='Flask debug mode')

    return parser


COMMAND_HANDLERS = {
    'to-table': cmd_to_table,
    'to-text': cmd_to_text,
    'fixed-width': cmd_fixed_width,
    'analyze': cmd_analyze,
    'export': cmd_export,
    'llm-to-table': cmd_llm_to_table,
    'llm-to-text': cmd_llm_to_text,
    'llm-extract': cmd_llm_extract,
    'llm-describe': cmd_llm_describe,
    'llm-analyze': cmd_llm_analyze,
    'set-key': cmd_set_key,
    'clear-key': cmd_clear_key,
    'test-key': cmd_test_key,
    'settings': cmd_settings,
    'config': cmd_config,
    'serve': cmd_serve,
}


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args.verbose)

    try:
        COMMAND_HANDLERS[args.command](args)
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled.")
        sys.exit(130)
    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
