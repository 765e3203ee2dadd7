"""Database connection management with SQLAlchemy."""

from contextlib import AbstractContextManager, contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import Connection, Engine, create_engine, text

from db_dump.models.config import ExportConfig

# Anything that hands out an open connection for the duration of a with-block
ConnectionFactory = Callable[[], AbstractContextManager[Connection]]


class DatabaseConnection:
    """Manages the SQLAlchemy engine used to read the source database."""

    def __init__(self, config: ExportConfig):
        """
        Initialize database connection.

        Args:
            config: Export configuration with the connection URL
        """
        self.config = config
        self.engine: Optional[Engine] = None
        self._dialect = config.dialect
        self._driver = config.driver

    def initialize(self) -> None:
        """Create the engine."""
        if self.engine is not None:
            return  # Already initialized

        self.engine = create_engine(
            self.config.url,
            pool_pre_ping=True,  # Verify connections before using
            echo=self.config.echo_sql,
        )

    def dispose(self) -> None:
        """Dispose of the connection pool and cleanup resources."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    @contextmanager
    def get_connection(self) -> Iterator[Connection]:
        """
        Get a connection from the pool as a context manager.

        Yields:
            Connection for executing queries

        Raises:
            RuntimeError: If engine not initialized
        """
        if self.engine is None:
            raise RuntimeError(
                "DatabaseConnection not initialized. Call initialize() first."
            )

        with self.engine.connect() as conn:
            if self.config.read_only:
                self._set_readonly(conn)
            yield conn

    def _set_readonly(self, conn: Connection) -> None:
        """Set connection to read-only mode based on database dialect."""
        if self._dialect == "postgresql":
            conn.execute(text("SET SESSION CHARACTERISTICS AS TRANSACTION READ ONLY"))
        elif self._dialect == "mysql":
            conn.execute(text("SET SESSION TRANSACTION READ ONLY"))
        elif self._dialect == "sqlite":
            conn.exec_driver_sql("PRAGMA query_only = ON")

    @property
    def dialect(self) -> str:
        """Get database dialect name."""
        return self._dialect

    @property
    def driver(self) -> str:
        """Get database driver name."""
        return self._driver

    @property
    def is_initialized(self) -> bool:
        """Check if engine is initialized."""
        return self.engine is not None

    def __enter__(self) -> "DatabaseConnection":
        """Context manager entry."""
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.dispose()
