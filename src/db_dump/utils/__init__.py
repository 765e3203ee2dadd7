"""Utility modules for SQL literal and JSON serialization."""

from db_dump.utils.escaping import escape, quote
from db_dump.utils.serialization import (
    SERIALIZERS,
    dumps,
    serialize,
    write_value,
)

__all__ = [
    "escape",
    "quote",
    "SERIALIZERS",
    "serialize",
    "write_value",
    "dumps",
]
