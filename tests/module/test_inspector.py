"""Module Tests for MetadataInspector

Tests schema introspection against file-backed SQLite databases.
"""

import logging

import pytest
from sqlalchemy import types as sqltypes
from sqlalchemy.dialects import postgresql

from db_dump.core.connection import DatabaseConnection
from db_dump.core.inspector import MetadataInspector, resolve_type_code
from db_dump.exceptions import IntrospectionError
from db_dump.models import Database, ExportConfig, TypeCode


def read_database(config) -> Database:
    with DatabaseConnection(config) as connection:
        with connection.get_connection() as conn:
            return MetadataInspector(config).read_database(conn)


class TestTypeCodeResolution:
    """Test SQLAlchemy types map to the most specific type code."""

    @pytest.mark.parametrize(
        "sa_type, expected",
        [
            (sqltypes.BLOB(), TypeCode.BLOB),
            (sqltypes.LargeBinary(), TypeCode.BLOB),
            (postgresql.BYTEA(), TypeCode.BLOB),
            (sqltypes.VARBINARY(16), TypeCode.VARBINARY),
            (sqltypes.BINARY(16), TypeCode.BINARY),
            (sqltypes.CLOB(), TypeCode.CLOB),
            (sqltypes.TEXT(), TypeCode.LONGVARCHAR),
            (sqltypes.CHAR(3), TypeCode.CHAR),
            (sqltypes.VARCHAR(25), TypeCode.VARCHAR),
            (sqltypes.Unicode(10), TypeCode.VARCHAR),
            (postgresql.UUID(), TypeCode.CHAR),
            (sqltypes.DATE(), TypeCode.DATE),
            (sqltypes.TIME(), TypeCode.TIME),
            (sqltypes.TIMESTAMP(), TypeCode.TIMESTAMP),
            (sqltypes.DateTime(), TypeCode.TIMESTAMP),
            (sqltypes.SMALLINT(), TypeCode.SMALLINT),
            (sqltypes.INTEGER(), TypeCode.INTEGER),
            (sqltypes.BIGINT(), TypeCode.BIGINT),
            (sqltypes.REAL(), TypeCode.REAL),
            (postgresql.DOUBLE_PRECISION(), TypeCode.DOUBLE),
            (sqltypes.FLOAT(), TypeCode.FLOAT),
            (sqltypes.DECIMAL(10, 2), TypeCode.DECIMAL),
            (sqltypes.NUMERIC(10, 2), TypeCode.NUMERIC),
            (sqltypes.BOOLEAN(), TypeCode.OTHER),
            (postgresql.JSONB(), TypeCode.OTHER),
            (sqltypes.NullType(), TypeCode.OTHER),
        ],
    )
    def test_resolve(self, sa_type, expected):
        """Test each reflected type class."""
        assert resolve_type_code(sa_type) == expected


class TestMetadataInspector:
    """Test reading tables and columns."""

    def test_tables_in_reflection_order(self, sample_config):
        """Test every user table is read, ordered by name."""
        database = read_database(sample_config)

        assert database.schema == "main"
        assert [t.name for t in database.tables] == ["EMPTY", "MIXED", "T"]
        assert database.excluded_tables == []

    def test_column_order_and_types(self, sample_config):
        """Test columns keep their ordinal order and resolve to type codes."""
        database = read_database(sample_config)
        mixed = database.get_table("MIXED")

        assert mixed.column_names == [
            "ID", "SMALL", "BIG", "AMOUNT", "RATIO", "SCORE", "PAYLOAD", "NOTE"
        ]
        assert [c.type_code for c in mixed.columns] == [
            TypeCode.INTEGER,
            TypeCode.SMALLINT,
            TypeCode.BIGINT,
            TypeCode.DECIMAL,
            TypeCode.REAL,
            TypeCode.DOUBLE,
            TypeCode.BLOB,
            TypeCode.LONGVARCHAR,
        ]

    def test_temporal_and_character_types(self, sample_config):
        """Test the reference table's column types."""
        table = read_database(sample_config).get_table("T")

        assert [c.type_code for c in table.columns] == [
            TypeCode.INTEGER,
            TypeCode.VARCHAR,
            TypeCode.DATE,
            TypeCode.TIMESTAMP,
            TypeCode.LONGVARCHAR,
        ]
        assert table.get_column("DES").type_name == "VARCHAR(25)"

    def test_tables_carry_schema(self, sample_config):
        """Test tables are qualified by the resolved schema."""
        database = read_database(sample_config)
        assert {t.schema for t in database.tables} == {"main"}

    def test_exclusion_patterns(self, sample_db_url, export_config_factory):
        """Test tables matching a pattern are flagged, case-insensitively."""
        config = export_config_factory(sample_db_url, exclude_tables=["mix*", "t"])

        database = read_database(config)

        assert [t.name for t in database.exported_tables] == ["EMPTY"]
        mixed = database.get_table("MIXED")
        assert mixed.excluded is True
        assert mixed.exclusion_reason == "matches exclusion pattern mix*"

    def test_schema_matched_case_insensitively(
        self, sample_db_url, export_config_factory
    ):
        """Test a differently cased schema name resolves."""
        config = export_config_factory(sample_db_url, schema_name="MAIN")
        assert read_database(config).schema == "main"

    def test_missing_schema(self, sample_db_url, export_config_factory):
        """Test an unknown schema is an introspection error."""
        config = export_config_factory(sample_db_url, schema_name="nope")

        with pytest.raises(IntrospectionError, match="Schema nope not found"):
            read_database(config)

    def test_empty_schema(self, sqlite_db_factory, export_config_factory):
        """Test a schema without tables gives an empty database."""
        config = export_config_factory(sqlite_db_factory([]))
        assert read_database(config).tables == ()

    def test_views_not_exported(self, sqlite_db_factory, export_config_factory):
        """Test only base tables are read."""
        url = sqlite_db_factory(
            [
                ("CREATE TABLE A (ID INTEGER)", None),
                ("CREATE VIEW V AS SELECT ID FROM A", None),
            ]
        )

        database = read_database(export_config_factory(url))

        assert [t.name for t in database.tables] == ["A"]

    def test_unmapped_type_warns(
        self, sqlite_db_factory, export_config_factory, caplog
    ):
        """Test columns written with the generic strategy are reported."""
        url = sqlite_db_factory(
            [("CREATE TABLE FLAGS (ID INTEGER, ACTIVE BOOLEAN)", None)]
        )

        with caplog.at_level(logging.WARNING, logger="db_dump.core.inspector"):
            table = read_database(export_config_factory(url)).get_table("FLAGS")

        assert table.get_column("ACTIVE").type_code == TypeCode.OTHER
        assert "Column FLAGS.ACTIVE has unmapped type BOOLEAN" in caplog.text
        assert "FLAGS.ID" not in caplog.text

    def test_excluded_table_not_warned(
        self, sqlite_db_factory, export_config_factory, caplog
    ):
        """Test unmapped types in excluded tables are not reported."""
        url = sqlite_db_factory([("CREATE TABLE FLAGS (ACTIVE BOOLEAN)", None)])
        config = export_config_factory(url, exclude_tables=["flags"])

        with caplog.at_level(logging.WARNING, logger="db_dump.core.inspector"):
            read_database(config)

        assert "unmapped type" not in caplog.text


class TestExclusionRules:
    """Test each reason a table is left out of the export."""

    @staticmethod
    def make_inspector(url="postgresql://u:p@localhost/db", **overrides):
        values = {"url": url, "schema_name": "public"}
        values.update(overrides)
        return MetadataInspector(ExportConfig(**values))

    @pytest.mark.parametrize(
        "name", ["sql_queries", "pg_jobs", "users", "sqlite_notes"]
    )
    def test_user_schema_tables_exported(self, name):
        """Test user tables are exported whatever their name looks like."""
        inspector = self.make_inspector()
        assert inspector._exclusion_reason(name, "public", "postgresql", []) is None

    def test_foreign_table(self):
        """Test foreign tables are never exported."""
        inspector = self.make_inspector()
        assert (
            inspector._exclusion_reason("remote", "public", "postgresql", ["remote"])
            == "foreign table"
        )

    @pytest.mark.parametrize(
        "dialect, schema",
        [
            ("postgresql", "pg_catalog"),
            ("postgresql", "information_schema"),
            ("postgresql", "pg_toast"),
            ("mysql", "mysql"),
            ("mysql", "performance_schema"),
            ("mysql", "INFORMATION_SCHEMA"),
            ("mysql", "sys"),
        ],
    )
    def test_system_schema(self, dialect, schema):
        """Test tables of the engine's catalog schemas are never exported."""
        inspector = self.make_inspector()
        assert (
            inspector._exclusion_reason("pg_class", schema, dialect, [])
            == "system table"
        )

    def test_system_schema_names_are_per_dialect(self):
        """Test a user schema named like another engine's catalog is exported."""
        inspector = self.make_inspector()
        assert inspector._exclusion_reason("t", "sys", "postgresql", []) is None
        assert inspector._exclusion_reason("t", "mysql", "sqlite", []) is None

    def test_user_pattern(self):
        """Test user glob patterns match case-insensitively."""
        inspector = self.make_inspector(exclude_tables=["Audit_*"])
        assert (
            inspector._exclusion_reason("AUDIT_LOG", "public", "postgresql", [])
            == "matches exclusion pattern Audit_*"
        )
        assert inspector._exclusion_reason("LOG", "public", "postgresql", []) is None

    def test_foreign_table_reported_before_pattern(self):
        """Test the first matching reason is reported."""
        inspector = self.make_inspector(exclude_tables=["*"])
        assert (
            inspector._exclusion_reason("remote", "public", "postgresql", ["remote"])
            == "foreign table"
        )

    def test_prefixed_user_table_exported(
        self, sqlite_db_factory, export_config_factory
    ):
        """Test tables with engine-like prefixes are read as user tables."""
        url = sqlite_db_factory(
            [
                ("CREATE TABLE pg_jobs (ID INTEGER)", None),
                ("CREATE TABLE sql_queries (ID INTEGER)", None),
            ]
        )

        database = read_database(export_config_factory(url))

        assert [t.name for t in database.exported_tables] == ["pg_jobs", "sql_queries"]
