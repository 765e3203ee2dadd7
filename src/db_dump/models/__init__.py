"""Pydantic models for export configuration, metadata and results."""

from .config import ExportConfig
from .database import Column, Database, Table, TypeCode
from .result import ExportResult, TableExportResult, TableStatus

__all__ = [
    "ExportConfig",
    "TypeCode",
    "Column",
    "Table",
    "Database",
    "ExportResult",
    "TableExportResult",
    "TableStatus",
]
