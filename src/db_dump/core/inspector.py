"""Metadata inspection using SQLAlchemy reflection."""

import fnmatch
import logging
from typing import Any, Optional

from sqlalchemy import Connection, inspect as sa_inspect
from sqlalchemy import types as sqltypes
from sqlalchemy.engine import Dialect
from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.exc import SQLAlchemyError

from db_dump.exceptions import IntrospectionError
from db_dump.models.config import ExportConfig
from db_dump.models.database import Column, Database, Table, TypeCode

logger = logging.getLogger(__name__)

# Checked in order, so subclasses must come before their base classes
TYPE_CODE_RULES: tuple[tuple[type, TypeCode], ...] = (
    (sqltypes.BLOB, TypeCode.BLOB),
    (sqltypes.VARBINARY, TypeCode.VARBINARY),
    (sqltypes.BINARY, TypeCode.BINARY),
    (sqltypes.LargeBinary, TypeCode.BLOB),
    (sqltypes.CLOB, TypeCode.CLOB),
    (sqltypes.Text, TypeCode.LONGVARCHAR),
    (sqltypes.CHAR, TypeCode.CHAR),
    (sqltypes.Uuid, TypeCode.CHAR),
    (sqltypes.String, TypeCode.VARCHAR),
    (sqltypes.DateTime, TypeCode.TIMESTAMP),
    (sqltypes.Date, TypeCode.DATE),
    (sqltypes.Time, TypeCode.TIME),
    (sqltypes.SmallInteger, TypeCode.SMALLINT),
    (sqltypes.BigInteger, TypeCode.BIGINT),
    (sqltypes.Integer, TypeCode.INTEGER),
    (sqltypes.REAL, TypeCode.REAL),
    (sqltypes.Double, TypeCode.DOUBLE),
    (sqltypes.Float, TypeCode.FLOAT),
    (sqltypes.DECIMAL, TypeCode.DECIMAL),
    (sqltypes.Numeric, TypeCode.NUMERIC),
)

# Catalog schemas whose tables belong to the database engine itself.
# SQLite reflection already leaves out its sqlite_ tables.
SYSTEM_SCHEMAS: dict[str, frozenset[str]] = {
    "postgresql": frozenset({"pg_catalog", "information_schema", "pg_toast"}),
    "mysql": frozenset(
        {"information_schema", "mysql", "performance_schema", "sys"}
    ),
}


def resolve_type_code(sa_type: Any) -> TypeCode:
    """
    Resolve a reflected SQLAlchemy type to a source type code.

    Args:
        sa_type: Type instance from Inspector.get_columns()

    Returns:
        The most specific matching type code, OTHER when nothing matches
    """
    for type_class, type_code in TYPE_CODE_RULES:
        if isinstance(sa_type, type_class):
            return type_code
    return TypeCode.OTHER


class MetadataInspector:
    """Builds the Database model of the configured schema."""

    def __init__(self, config: ExportConfig):
        """
        Initialize metadata inspector.

        Args:
            config: Export configuration (schema name and exclusion patterns)
        """
        self.config = config

    def read_database(self, connection: Connection) -> Database:
        """
        Read tables and columns of the configured schema.

        Args:
            connection: Open connection to the source database

        Returns:
            Database model with every table, excluded ones flagged

        Raises:
            IntrospectionError: If the metadata cannot be read
        """
        try:
            inspector = sa_inspect(connection)
            schema = self._resolve_schema(inspector)

            table_names = list(inspector.get_table_names(schema=schema))
            foreign_names = self._get_foreign_table_names(inspector, schema)
            for name in foreign_names:
                if name not in table_names:
                    table_names.append(name)

            tables = []
            for table_name in table_names:
                reason = self._exclusion_reason(
                    table_name, schema, connection.dialect.name, foreign_names
                )
                columns = [
                    self._column_from_sa(col_data, connection.dialect)
                    for col_data in inspector.get_columns(table_name, schema=schema)
                ]
                if reason is None:
                    self._warn_generic_columns(table_name, columns)
                tables.append(
                    Table(
                        name=table_name,
                        schema=schema,
                        columns=tuple(columns),
                        excluded=reason is not None,
                        exclusion_reason=reason,
                    )
                )
                logger.debug(
                    f"Table {table_name}: {len(columns)} columns"
                    + (f" (excluded: {reason})" if reason else "")
                )

            database = Database(schema=schema, tables=tuple(tables))
        except IntrospectionError:
            raise
        except (SQLAlchemyError, ValueError) as e:
            raise IntrospectionError(
                f"Failed to read metadata of schema {self.config.schema_name}: {e}"
            ) from e

        logger.info(
            f"Resolved {len(database.exported_tables)} tables in schema {schema} "
            f"({len(database.excluded_tables)} excluded)"
        )
        return database

    def _resolve_schema(self, inspector: Inspector) -> str:
        """Find the configured schema, matching case-insensitively if needed."""
        wanted = self.config.schema_name
        schemas = inspector.get_schema_names()
        if wanted in schemas:
            return wanted

        for schema in schemas:
            if schema.lower() == wanted.lower():
                logger.info(f"Using schema {schema} for configured name {wanted}")
                return schema

        raise IntrospectionError(
            f"Schema {wanted} not found. Available: {', '.join(sorted(schemas))}"
        )

    def _get_foreign_table_names(
        self, inspector: Inspector, schema: str
    ) -> list[str]:
        """Foreign tables of the schema, where the dialect can list them."""
        get_foreign = getattr(inspector, "get_foreign_table_names", None)
        if get_foreign is None:
            return []
        return list(get_foreign(schema=schema))

    def _exclusion_reason(
        self,
        table_name: str,
        schema: str,
        dialect: str,
        foreign_names: list[str],
    ) -> Optional[str]:
        """Why a table is left out of the export, None if it is exported."""
        if table_name in foreign_names:
            return "foreign table"

        if schema.lower() in SYSTEM_SCHEMAS.get(dialect, frozenset()):
            return "system table"

        name = table_name.lower()
        for pattern in self.config.exclude_tables:
            if fnmatch.fnmatchcase(name, pattern.lower()):
                return f"matches exclusion pattern {pattern}"

        return None

    def _warn_generic_columns(self, table_name: str, columns: list[Column]) -> None:
        """Flag columns written with str(), which may not be valid SQL."""
        for col in columns:
            if col.type_code == TypeCode.OTHER:
                logger.warning(
                    f"Column {table_name}.{col.name} has unmapped type "
                    f"{col.type_name}, values are written unquoted as text"
                )

    def _column_from_sa(self, col_data: dict, dialect: Dialect) -> Column:
        """Convert SQLAlchemy column data to Column."""
        sa_type = col_data["type"]
        try:
            type_name = sa_type.compile(dialect=dialect)
        except SQLAlchemyError:
            type_name = type(sa_type).__name__

        return Column(
            name=col_data["name"],
            type_code=resolve_type_code(sa_type),
            type_name=type_name,
        )
