"""Export orchestration: framing statements around batched table data."""

import logging
import time
from enum import Enum
from importlib import resources
from typing import Optional, TextIO

from sqlalchemy import Connection
from sqlalchemy.exc import SQLAlchemyError

from db_dump.core.batcher import StatementBatcher, Write
from db_dump.core.connection import ConnectionFactory
from db_dump.core.inspector import MetadataInspector
from db_dump.core.pipeline import OutputPipeline
from db_dump.models.config import ExportConfig
from db_dump.models.database import Database, Table
from db_dump.models.result import ExportResult, TableExportResult, TableStatus

logger = logging.getLogger(__name__)

# Characters copied per step from the cleanup fragment
CLEANUP_CHUNK_SIZE = 8192


class ExportState(str, Enum):
    """Stages of an export run, in the order they are reached.

    TRUNCATE and BATCH_INSERT repeat for every exported table.
    """

    INIT = "init"
    SCHEMA_RESOLVED = "schema_resolved"
    CONSTRAINTS_DEFERRED = "constraints_deferred"
    TRIGGERS_DISABLED = "triggers_disabled"
    IN_TRANSACTION = "in_transaction"
    TRUNCATE = "truncate"
    BATCH_INSERT = "batch_insert"
    COMMITTED = "committed"
    TRIGGERS_ENABLED = "triggers_enabled"
    CONSTRAINTS_RESTORED = "constraints_restored"
    CLEANUP_EMITTED = "cleanup_emitted"
    DONE = "done"


class DatabaseExporter:
    """Exports every table of a schema as a replayable SQL script.

    Table failures follow an abort policy: the first failing table stops the
    remaining tables, but the closing statements are still written so the
    script stays well-formed, and the result reports the failure.
    """

    def __init__(
        self,
        config: ExportConfig,
        connection_factory: ConnectionFactory,
        inspector: Optional[MetadataInspector] = None,
        batcher: Optional[StatementBatcher] = None,
    ):
        """
        Initialize database exporter.

        Args:
            config: Export configuration
            connection_factory: Callable returning a context manager that
                yields an open SQLAlchemy connection
            inspector: Metadata inspector (built from config when None)
            batcher: Statement batcher (built from config when None)
        """
        self.config = config
        self.connection_factory = connection_factory
        self.inspector = inspector or MetadataInspector(config)
        self.batcher = batcher or StatementBatcher(config.max_rows_per_insert)
        self.state = ExportState.INIT

    def export(self, out: TextIO) -> ExportResult:
        """
        Export the configured schema to a text stream.

        Nothing is written until the schema has been read, so metadata
        errors leave the output empty.

        Args:
            out: Output sink

        Returns:
            Per-table outcomes of the run

        Raises:
            IntrospectionError: If the schema cannot be read
        """
        start_time = time.time()
        logger.info("Resolving database structure...")

        with self.connection_factory() as conn:
            database = self.inspector.read_database(conn)
            self._advance(ExportState.SCHEMA_RESOLVED)

            if self.config.buffer_max_size > 0:
                with OutputPipeline(out, self.config.buffer_max_size) as pipeline:
                    result = self._export_database(database, conn, pipeline.put)
            else:
                result = self._export_database(database, conn, out.write)
                out.flush()

        self._advance(ExportState.DONE)
        result.duration_seconds = time.time() - start_time
        logger.info("Reading done.")
        return result

    def _export_database(
        self, database: Database, conn: Connection, write: Write
    ) -> ExportResult:
        """Write the whole script for an introspected database."""
        tables = database.exported_tables
        result = ExportResult(
            schema_name=database.schema,
            excluded_tables=[t.name for t in database.excluded_tables],
        )

        logger.info("Fetching database data...")

        write("SET CONSTRAINTS ALL DEFERRED;\n")
        self._advance(ExportState.CONSTRAINTS_DEFERRED)

        for table in tables:
            write(f"ALTER TABLE {table.name} DISABLE TRIGGER ALL;\n")
        self._advance(ExportState.TRIGGERS_DISABLED)

        write("BEGIN;\n")
        self._advance(ExportState.IN_TRANSACTION)

        for table in tables:
            if result.aborted:
                result.tables.append(
                    TableExportResult(table=table.name, status=TableStatus.NOT_REACHED)
                )
                continue

            table_result = self._export_table(table, conn, write)
            result.tables.append(table_result)

            if not table_result.succeeded:
                result.aborted = True
                write(f"-- export aborted: table {table.name} failed\n")

        write("COMMIT;\n")
        self._advance(ExportState.COMMITTED)

        for table in tables:
            write(f"ALTER TABLE {table.name} ENABLE TRIGGER ALL;\n")
        self._advance(ExportState.TRIGGERS_ENABLED)

        write("SET CONSTRAINTS ALL IMMEDIATE;\n")
        self._advance(ExportState.CONSTRAINTS_RESTORED)

        self._write_cleanup(write)
        self._advance(ExportState.CLEANUP_EMITTED)

        return result

    def _export_table(
        self, table: Table, conn: Connection, write: Write
    ) -> TableExportResult:
        """Write the optional truncate and the batched inserts of one table."""
        logger.info(f"Table {table.name}...")

        truncated = False
        if self.config.truncate_tables:
            write(f"DELETE FROM {table.name};\n")
            truncated = True
            self._advance(ExportState.TRUNCATE)

        self._advance(ExportState.BATCH_INSERT)

        if not table.columns:
            logger.warning(f"Table {table.name} has no columns, no data exported")
            return TableExportResult(
                table=table.name, status=TableStatus.EXPORTED, truncated=truncated
            )

        try:
            rows = conn.execute(
                table.select_query,
                execution_options={"yield_per": self.config.fetch_size},
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed querying table {table.name}: {e}")
            return TableExportResult(
                table=table.name,
                status=TableStatus.FAILED,
                truncated=truncated,
                error=f"{type(e).__name__}: {e}",
            )

        try:
            table_result = self.batcher.write_table(table, rows, write)
        finally:
            rows.close()

        if table_result.succeeded:
            logger.info(f"Exported {table.name}. {table_result.row_count} rows.")

        return table_result.model_copy(update={"truncated": truncated})

    def _write_cleanup(self, write: Write) -> None:
        """Copy the cleanup fragment verbatim."""
        logger.info("Writing cleanup procedures")

        if self.config.cleanup_sql_path:
            source = open(self.config.cleanup_sql_path, encoding="utf-8")
        else:
            source = (
                resources.files("db_dump")
                .joinpath("resources")
                .joinpath("cleanup.sql")
                .open("r", encoding="utf-8")
            )

        with source as f:
            while True:
                chunk = f.read(CLEANUP_CHUNK_SIZE)
                if not chunk:
                    break
                write(chunk)

    def _advance(self, state: ExportState) -> None:
        logger.debug(f"Export state: {self.state.value} -> {state.value}")
        self.state = state
