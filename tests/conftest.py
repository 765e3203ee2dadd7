"""Pytest configuration and shared fixtures for db-dump tests"""

import io
import os
from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine, text

from db_dump.core import DatabaseConnection, DatabaseExporter
from db_dump.models.config import ENV_VARS, ExportConfig
from db_dump.models.result import ExportResult

# Load environment variables
load_dotenv()

BIG_CLOB = "<SampleClobData>" * 1000

CLEANUP_SQL = "-- cleanup\n"

# Tables: EMPTY (no rows), MIXED (numeric, binary and text types), T (the
# character, temporal and CLOB row of the reference export)
SAMPLE_SCHEMA: list[tuple[str, Optional[dict]]] = [
    ("CREATE TABLE EMPTY (ID INTEGER)", None),
    (
        "CREATE TABLE MIXED (ID INTEGER, SMALL SMALLINT, BIG BIGINT, "
        "AMOUNT DECIMAL(10,2), RATIO REAL, SCORE DOUBLE, PAYLOAD BLOB, NOTE TEXT)",
        None,
    ),
    (
        "INSERT INTO MIXED VALUES "
        "(:id, :small, :big, :amount, :ratio, :score, :payload, :note)",
        {
            "id": 1,
            "small": 7,
            "big": 9007199254740993,
            "amount": 12.5,
            "ratio": 0.0,
            "score": None,
            "payload": b"\x00\xff",
            "note": "it's",
        },
    ),
    (
        "CREATE TABLE T (ID INTEGER, DES VARCHAR(25), TIME DATE, "
        "NULLTIME TIMESTAMP, CLOBDATA CLOB)",
        None,
    ),
    (
        "INSERT INTO T VALUES (:id, :des, :time, :nulltime, :clobdata)",
        {
            "id": 1,
            "des": "TestData",
            "time": "1970-01-01",
            "nulltime": None,
            "clobdata": BIG_CLOB,
        },
    ),
]

Statements = Iterable[tuple[str, Optional[dict]]]


# ==================== Configuration Fixtures ====================


@pytest.fixture(scope="session")
def pg_database_url() -> Optional[str]:
    """PostgreSQL test database URL from environment"""
    return os.getenv("PG_TEST_DATABASE_URL")


@pytest.fixture
def isolated_env(monkeypatch) -> dict[str, str]:
    """Process environment without any db-dump settings"""
    env = {
        key: value
        for key, value in os.environ.items()
        if key not in ENV_VARS.values() and key != "CONFIG_FILE"
    }
    monkeypatch.setattr(os, "environ", env)
    return env


@pytest.fixture
def cleanup_file(tmp_path: Path) -> Path:
    """Small cleanup fragment used instead of the packaged one"""
    path = tmp_path / "cleanup.sql"
    path.write_text(CLEANUP_SQL, encoding="utf-8")
    return path


# ==================== SQLite Fixtures ====================


@pytest.fixture
def sqlite_db_factory(tmp_path: Path) -> Callable[..., str]:
    """Create file-backed SQLite databases from DDL/DML statements"""
    counter = {"n": 0}

    def create(statements: Statements) -> str:
        counter["n"] += 1
        db_path = tmp_path / f"source_{counter['n']}.db"
        url = f"sqlite:///{db_path}"
        engine = create_engine(url)
        try:
            with engine.begin() as conn:
                for sql, params in statements:
                    conn.execute(text(sql), params or {})
        finally:
            engine.dispose()
        return url

    return create


@pytest.fixture
def sample_db_url(sqlite_db_factory) -> str:
    """SQLite database with the sample tables"""
    return sqlite_db_factory(SAMPLE_SCHEMA)


@pytest.fixture
def export_config_factory(cleanup_file: Path) -> Callable[..., ExportConfig]:
    """Build an ExportConfig for a SQLite database"""

    def build(url: str, **overrides) -> ExportConfig:
        values = {
            "url": url,
            "schema_name": "main",
            "cleanup_sql_path": str(cleanup_file),
        }
        values.update(overrides)
        return ExportConfig(**values)

    return build


@pytest.fixture
def sample_config(sample_db_url: str, export_config_factory) -> ExportConfig:
    """Export configuration for the sample database"""
    return export_config_factory(sample_db_url)


@pytest.fixture
def run_export() -> Callable[[ExportConfig], tuple[str, ExportResult]]:
    """Run an export into memory and return the script and the result"""

    def run(config: ExportConfig) -> tuple[str, ExportResult]:
        out = io.StringIO()
        with DatabaseConnection(config) as connection:
            exporter = DatabaseExporter(config, connection.get_connection)
            result = exporter.export(out)
        return out.getvalue(), result

    return run


# ==================== Pytest Configuration ====================


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "postgresql: PostgreSQL-specific tests")
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring database"
    )
    config.addinivalue_line("markers", "slow: Slow-running tests")
