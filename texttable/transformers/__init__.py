"""
Text/table transformers.

Mechanical text <-> table conversion plus the data models shared by the
rest of the package.
"""

from .table_converter import TableConverter
from .data_models import TableData, ConversionResult, ColumnAnalysis, StructureAnalysis

__all__ = [
    "TableConverter",
    "TableData",
    "ConversionResult",
    "ColumnAnalysis",
    "StructureAnalysis",
]
