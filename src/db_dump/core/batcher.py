"""Framing of table rows into batched multi-row INSERT statements."""

import io
import logging
from typing import Any, Callable, Iterable, Sequence

from db_dump.models.database import Table
from db_dump.models.result import TableExportResult, TableStatus
from db_dump.utils.serialization import write_value

logger = logging.getLogger(__name__)

Write = Callable[[str], Any]


class StatementBatcher:
    """Writes rows as INSERT statements holding at most max_rows tuples each."""

    def __init__(self, max_rows: int = 100):
        """
        Initialize statement batcher.

        Args:
            max_rows: Maximum value tuples per INSERT statement
        """
        if max_rows < 1:
            raise ValueError(f"max_rows must be at least 1, got {max_rows}")
        self.max_rows = max_rows

    def render_row(self, table: Table, row: Sequence[Any]) -> str:
        """
        Render one row as a parenthesized tuple of literals.

        Args:
            table: Table the row belongs to
            row: Column values in table column order

        Returns:
            Tuple text such as (1,'abc',NULL)
        """
        buffer = io.StringIO()
        buffer.write("(")
        for index, (col, value) in enumerate(zip(table.columns, row, strict=True)):
            if index:
                buffer.write(",")
            write_value(col.type_code, value, buffer)
        buffer.write(")")
        return buffer.getvalue()

    def write_table(
        self, table: Table, rows: Iterable[Sequence[Any]], write: Write
    ) -> TableExportResult:
        """
        Write every row of a cursor as batched INSERT statements.

        A row is rendered completely before any of it is written, and the
        open statement is terminated even when reading or rendering fails,
        so the output never ends inside a statement.

        Args:
            table: Table being exported
            rows: Forward-only row cursor
            write: Output callable receiving text fragments

        Returns:
            Result with the number of rows and statements written
        """
        row_count = 0
        statement_count = 0

        try:
            for row in rows:
                rendered = self.render_row(table, row)

                if row_count % self.max_rows == 0:
                    if row_count:
                        write(";\n")
                    write(f"{table.insert_sql} ")
                    statement_count += 1
                else:
                    write(",\n")

                write(rendered)
                row_count += 1
        except Exception as e:
            if row_count:
                write(";\n")
            logger.error(
                f"Failed exporting table {table.name} after {row_count} rows: {e}",
                exc_info=True,
            )
            return TableExportResult(
                table=table.name,
                status=TableStatus.FAILED,
                row_count=row_count,
                statement_count=statement_count,
                error=f"{type(e).__name__}: {e}",
            )

        if row_count:
            write(";\n")

        return TableExportResult(
            table=table.name,
            status=TableStatus.EXPORTED,
            row_count=row_count,
            statement_count=statement_count,
        )
