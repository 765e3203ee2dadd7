"""Core export pipeline."""

from .batcher import StatementBatcher
from .connection import ConnectionFactory, DatabaseConnection
from .exporter import DatabaseExporter, ExportState
from .inspector import MetadataInspector, resolve_type_code
from .pipeline import OutputPipeline

__all__ = [
    "ConnectionFactory",
    "DatabaseConnection",
    "MetadataInspector",
    "resolve_type_code",
    "StatementBatcher",
    "OutputPipeline",
    "DatabaseExporter",
    "ExportState",
]
