"""Spreadsheet exporters."""

from .schemas import ColumnSchema, ColumnType
from .xlsx import CSVExporter, ExportResult, SheetData, XLSXExporter, get_exporter

__all__ = [
    "ColumnSchema",
    "ColumnType",
    "CSVExporter",
    "ExportResult",
    "SheetData",
    "XLSXExporter",
    "get_exporter",
]
