"""Command entry point: export the configured schema as a SQL script.

All settings come from the environment (optionally a dotenv file), see
ExportConfig.from_env.
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, TextIO

from sqlalchemy.exc import SQLAlchemyError

from db_dump.core import DatabaseConnection, DatabaseExporter
from db_dump.exceptions import ConfigurationError, IntrospectionError
from db_dump.models.config import ExportConfig
from db_dump.models.result import ExportResult
from db_dump.utils import dumps

logger = logging.getLogger(__name__)


@contextmanager
def open_output(path: Optional[str]) -> Iterator[TextIO]:
    """
    Open the output sink: a UTF-8 file, or standard output when path is None.

    Raises:
        ConfigurationError: If the file cannot be opened for writing
    """
    if path is None:
        if (sys.stdout.encoding or "").lower().replace("-", "") != "utf8":
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        yield sys.stdout
        return

    try:
        output = open(path, "w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise ConfigurationError(f"Cannot write output file {path}: {e}") from e

    with output:
        yield output


def check_cleanup_source(config: ExportConfig) -> None:
    """
    Make sure a configured cleanup fragment can be read before exporting.

    Raises:
        ConfigurationError: If the cleanup file is missing
    """
    if config.cleanup_sql_path and not Path(config.cleanup_sql_path).is_file():
        raise ConfigurationError(
            f"Cleanup SQL file not found: {config.cleanup_sql_path}"
        )


def write_summary(result: ExportResult, path: str) -> None:
    """Write the run summary as JSON."""
    Path(path).write_text(dumps(result.to_summary()), encoding="utf-8")
    logger.info(f"Wrote export summary to {path}")


def run_export(config: ExportConfig) -> int:
    """
    Run one export with a validated configuration.

    Args:
        config: Export configuration

    Returns:
        Process exit status (0 on success)
    """
    logger.info(f"Exporting schema {config.schema_name} from {config.safe_url}")

    try:
        check_cleanup_source(config)
        with DatabaseConnection(config) as connection:
            with open_output(config.output_path) as out:
                exporter = DatabaseExporter(config, connection.get_connection)
                result = exporter.export(out)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except IntrospectionError as e:
        logger.error(f"Cannot read database structure: {e}")
        return 1
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        return 1
    except OSError as e:
        logger.error(f"Error writing output: {e}")
        return 1

    if config.summary_path:
        write_summary(result, config.summary_path)

    if not result.success:
        failed = ", ".join(t.table for t in result.failed_tables)
        logger.error(f"Export aborted, failed tables: {failed}")
        return 1

    logger.info(
        f"Exported {len(result.tables)} tables, {result.total_rows} rows "
        f"in {result.duration_seconds:.1f}s"
    )
    return 0


def main(env_file: Optional[str] = None) -> int:
    """
    Load configuration from the environment and run the export.

    Args:
        env_file: Dotenv file to load before reading the environment

    Returns:
        Process exit status (0 on success)
    """
    try:
        config = ExportConfig.from_env(env_file)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    return run_export(config)


def cli_entry() -> None:
    """
    Synchronous entry point for console script.

    This function is called by the 'db-dump' console script.
    """
    # Log to stderr so the script on stdout stays clean
    logging.basicConfig(level=logging.INFO)

    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.error("Export interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    cli_entry()
