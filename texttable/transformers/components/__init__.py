"""
Components used by the converter session.

This package contains the OpenAI client, the model response parser and
the file reader/writer.
"""

from .file_reader import FileReader
from .file_writer import FileWriter
from .openai_client import OpenAITableClient
from .response_parser import parse_pipe_table

__all__ = [
    "FileReader",
    "FileWriter",
    "OpenAITableClient",
    "parse_pipe_table",
]
