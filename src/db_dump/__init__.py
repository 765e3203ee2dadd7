"""
db_dump - Export a relational database as a replayable PostgreSQL script

Reads table metadata through SQLAlchemy reflection and writes every row as
batched INSERT statements, framed by constraint, trigger and transaction
statements.
"""

__version__ = "1.0.0"

from .exceptions import ConfigurationError, DumpError, IntrospectionError
from .models.config import ExportConfig
from .models.database import Column, Database, Table, TypeCode
from .models.result import ExportResult, TableExportResult, TableStatus

__all__ = [
    "ExportConfig",
    "TypeCode",
    "Column",
    "Table",
    "Database",
    "ExportResult",
    "TableExportResult",
    "TableStatus",
    "DumpError",
    "ConfigurationError",
    "IntrospectionError",
]
