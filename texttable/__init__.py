"""
TextTable Converter

Converts free text to tables and back, either mechanically (delimited and
fixed-width text) or with an OpenAI language model, and imports/exports
text, PDF, Word, CSV and Excel files.
"""

__version__ = "1.0.0"
__author__ = "TextTable"

# Main classes available for library use
from .session import ConverterSession
from .transformers.table_converter import TableConverter
from .transformers.data_models import TableData, ConversionResult, ColumnAnalysis, StructureAnalysis
from .transformers.components.openai_client import OpenAITableClient
from .transformers.components.file_reader import FileReader
from .transformers.components.file_writer import FileWriter
from .utils.settings_store import SettingsStore
from .utils.config import get_default_model, get_settings_path

__all__ = [
    "ConverterSession",
    "TableConverter",
    "TableData",
    "ConversionResult",
    "ColumnAnalysis",
    "StructureAnalysis",
    "OpenAITableClient",
    "FileReader",
    "FileWriter",
    "SettingsStore",
    "get_default_model",
    "get_settings_path",
]
