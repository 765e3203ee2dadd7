"""Value serialization: SQL literals for row data and JSON for run summaries.

Every source type code maps to one named literal strategy:
- binary: hex-encoded bytes wrapped in decode('...', 'hex')
- large_character: whole text stream, escaped and quoted
- character / temporal_text: str() of the value, escaped and quoted
- quoted_integer: small integers, emitted as quoted strings
- unquoted_numeric: integers and decimals, emitted as-is
- null_checked_float: floating point, null decided only by the was-null flag
- generic: str() of the value, unquoted
"""

import datetime
import io
import math
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Iterator, TextIO

import orjson
from pydantic import BaseModel

from db_dump.models.database import TypeCode
from db_dump.utils.escaping import quote

NULL = "NULL"

# Bytes read from a binary stream per hex-encoding step
HEX_CHUNK_SIZE = 2048

ValueWriter = Callable[[Any, bool, TextIO], None]


def _iter_binary_chunks(value: Any) -> Iterator[bytes]:
    """Yield the bytes of a binary value in HEX_CHUNK_SIZE pieces."""
    if hasattr(value, "read"):
        while True:
            chunk = value.read(HEX_CHUNK_SIZE)
            if not chunk:
                return
            yield bytes(chunk)

    if isinstance(value, str):
        value = value.encode("utf-8")

    data = memoryview(value).cast("B")
    for offset in range(0, len(data), HEX_CHUNK_SIZE):
        yield data[offset : offset + HEX_CHUNK_SIZE].tobytes()


def _as_text(value: Any) -> str:
    """Text form of a character value; byte strings are decoded as UTF-8."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _read_text(value: Any) -> str:
    """Read a character large object completely."""
    if hasattr(value, "read"):
        return _as_text(value.read())
    return _as_text(value)


def _number_text(value: Any) -> str:
    """Numeric text; values without a SQL numeric literal are quoted."""
    if isinstance(value, float):
        if math.isnan(value):
            return "'NaN'"
        if math.isinf(value):
            return "'-Infinity'" if value < 0 else "'Infinity'"
    elif isinstance(value, Decimal) and not value.is_finite():
        if value.is_nan():
            return "'NaN'"
        return "'-Infinity'" if value.is_signed() else "'Infinity'"
    return str(value)


def write_binary(value: Any, is_null: bool, out: TextIO) -> None:
    """Write bytes (or a readable binary stream) as a hex decode() literal."""
    if is_null:
        out.write(NULL)
        return

    out.write("decode('")
    for chunk in _iter_binary_chunks(value):
        out.write(chunk.hex().upper())
    out.write("', 'hex')")


def write_large_character(value: Any, is_null: bool, out: TextIO) -> None:
    """Write a CLOB value, reading the whole character stream first."""
    if is_null:
        out.write(NULL)
        return
    out.write(quote(_read_text(value)))


def write_character(value: Any, is_null: bool, out: TextIO) -> None:
    """Write an escaped, quoted string."""
    if is_null:
        out.write(NULL)
        return
    out.write(quote(_as_text(value)))


def write_temporal_text(value: Any, is_null: bool, out: TextIO) -> None:
    """Write a date, time or timestamp as quoted text."""
    if is_null:
        out.write(NULL)
        return
    out.write(quote(str(value)))


def write_quoted_integer(value: Any, is_null: bool, out: TextIO) -> None:
    """Write a small integer quoted as a string."""
    if is_null:
        out.write(NULL)
        return
    out.write(f"'{value}'")


def write_unquoted_numeric(value: Any, is_null: bool, out: TextIO) -> None:
    """Write an integer or decimal unquoted."""
    if is_null:
        out.write(NULL)
        return
    out.write(_number_text(value))


def write_null_checked_float(value: Any, is_null: bool, out: TextIO) -> None:
    """Write a floating point value.

    A fetched zero is a valid value: only the was-null flag yields NULL.
    """
    if is_null:
        out.write(NULL)
        return
    out.write(_number_text(value))


def write_generic(value: Any, is_null: bool, out: TextIO) -> None:
    """Write str() of the value, unquoted."""
    if is_null:
        out.write(NULL)
        return
    out.write(str(value))


SERIALIZERS: dict[TypeCode, ValueWriter] = {
    TypeCode.BINARY: write_binary,
    TypeCode.VARBINARY: write_binary,
    TypeCode.BLOB: write_binary,
    TypeCode.CLOB: write_large_character,
    TypeCode.CHAR: write_character,
    TypeCode.VARCHAR: write_character,
    TypeCode.LONGVARCHAR: write_character,
    TypeCode.DATE: write_temporal_text,
    TypeCode.TIME: write_temporal_text,
    TypeCode.TIMESTAMP: write_temporal_text,
    TypeCode.SMALLINT: write_quoted_integer,
    TypeCode.INTEGER: write_unquoted_numeric,
    TypeCode.BIGINT: write_unquoted_numeric,
    TypeCode.NUMERIC: write_unquoted_numeric,
    TypeCode.DECIMAL: write_unquoted_numeric,
    TypeCode.REAL: write_null_checked_float,
    TypeCode.FLOAT: write_null_checked_float,
    TypeCode.DOUBLE: write_null_checked_float,
    TypeCode.OTHER: write_generic,
}


def write_value(
    type_code: TypeCode, value: Any, out: TextIO, was_null: bool = False
) -> None:
    """
    Write the SQL literal for a column value.

    Args:
        type_code: Source type code of the column
        value: Fetched value (None for SQL NULL)
        out: Text stream to write the literal to
        was_null: Driver-reported null flag for the fetched value

    Raises:
        OSError: If a binary or character stream cannot be read
    """
    writer = SERIALIZERS.get(type_code, write_generic)
    writer(value, was_null or value is None, out)


def serialize(type_code: TypeCode, value: Any, was_null: bool = False) -> str:
    """
    Get the SQL literal for a column value.

    Args:
        type_code: Source type code of the column
        value: Fetched value (None for SQL NULL)
        was_null: Driver-reported null flag for the fetched value

    Returns:
        Literal text ready to embed in an INSERT statement
    """
    buffer = io.StringIO()
    write_value(type_code, value, buffer, was_null=was_null)
    return buffer.getvalue()


def _default_handler(obj: Any) -> Any:
    """
    Custom default handler for types orjson doesn't handle natively.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation

    Raises:
        TypeError: If object cannot be serialized
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")

    # timedelta - convert to total seconds
    if isinstance(obj, datetime.timedelta):
        return obj.total_seconds()

    if isinstance(obj, Decimal):
        return str(obj)

    if isinstance(obj, Path):
        return str(obj)

    if isinstance(obj, BaseException):
        return f"{type(obj).__name__}: {obj}"

    # Sets - convert to list
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)

    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def dumps(obj: Any) -> str:
    """
    Serialize object to an indented JSON string using orjson.

    Args:
        obj: Object to serialize

    Returns:
        JSON string
    """
    return orjson.dumps(
        obj, default=_default_handler, option=orjson.OPT_INDENT_2
    ).decode("utf-8")
