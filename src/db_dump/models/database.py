"""Database, table and column models built by schema introspection."""

import warnings
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Select, column, select, table as table_clause

# Suppress the specific warning about field 'schema' shadowing
warnings.filterwarnings(
    "ignore",
    message=r'Field name "schema" in "(Table|Database)" shadows an attribute in parent',
    category=UserWarning,
)


class TypeCode(str, Enum):
    """Source SQL type of a column, as resolved from reflected metadata."""

    BINARY = "BINARY"
    VARBINARY = "VARBINARY"
    BLOB = "BLOB"
    CLOB = "CLOB"
    CHAR = "CHAR"
    VARCHAR = "VARCHAR"
    LONGVARCHAR = "LONGVARCHAR"
    DATE = "DATE"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"
    SMALLINT = "SMALLINT"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    NUMERIC = "NUMERIC"
    DECIMAL = "DECIMAL"
    REAL = "REAL"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    OTHER = "OTHER"


class Column(BaseModel):
    """A column of an exported table."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Column name")
    type_code: TypeCode = Field(..., description="Resolved source type code")
    type_name: Optional[str] = Field(
        None, description="Reflected type as reported by the database"
    )


class Table(BaseModel):
    """A table of the source schema together with its export queries."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Table name")
    schema: Optional[str] = Field(default=None, description="Schema name")
    columns: tuple[Column, ...] = Field(
        default_factory=tuple, description="Columns in ordinal order"
    )
    excluded: bool = Field(
        default=False, description="Whether the table is left out of the export"
    )
    exclusion_reason: Optional[str] = Field(
        None, description="Why the table was excluded"
    )

    @field_validator("columns")
    @classmethod
    def validate_unique_columns(cls, v: tuple[Column, ...]) -> tuple[Column, ...]:
        """Reject duplicate column names."""
        seen: set[str] = set()
        for col in v:
            if col.name in seen:
                raise ValueError(f"Duplicate column name: {col.name}")
            seen.add(col.name)
        return v

    @property
    def column_names(self) -> list[str]:
        """Get column names in ordinal order."""
        return [col.name for col in self.columns]

    @property
    def select_query(self) -> Select:
        """SELECT over every column, in column order.

        Identifiers are quoted by the source dialect when the statement is
        compiled for execution.
        """
        source = table_clause(
            self.name,
            *(column(name) for name in self.column_names),
            schema=self.schema,
        )
        return select(*source.c)

    @property
    def insert_sql(self) -> str:
        """Header of a multi-row INSERT statement for this table."""
        return f"INSERT INTO {self.name} ({','.join(self.column_names)}) VALUES"

    def get_column(self, name: str) -> Optional[Column]:
        """Get column by name."""
        for col in self.columns:
            if col.name == name:
                return col
        return None


class Database(BaseModel):
    """The tables of one schema, in export order."""

    model_config = ConfigDict(frozen=True)

    schema: str = Field(..., description="Schema the tables were read from")
    tables: tuple[Table, ...] = Field(
        default_factory=tuple, description="Tables in export order"
    )

    @field_validator("tables")
    @classmethod
    def validate_unique_tables(cls, v: tuple[Table, ...]) -> tuple[Table, ...]:
        """Reject duplicate table names."""
        seen: set[str] = set()
        for tbl in v:
            if tbl.name in seen:
                raise ValueError(f"Duplicate table name: {tbl.name}")
            seen.add(tbl.name)
        return v

    @property
    def exported_tables(self) -> list[Table]:
        """Tables that take part in the export."""
        return [tbl for tbl in self.tables if not tbl.excluded]

    @property
    def excluded_tables(self) -> list[Table]:
        """Tables left out of the export."""
        return [tbl for tbl in self.tables if tbl.excluded]

    def get_table(self, name: str) -> Optional[Table]:
        """Get table by name."""
        for tbl in self.tables:
            if tbl.name == name:
                return tbl
        return None
