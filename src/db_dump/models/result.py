"""Export outcome models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TableStatus(str, Enum):
    """Outcome of a single table."""

    EXPORTED = "exported"
    FAILED = "failed"
    NOT_REACHED = "not_reached"


class TableExportResult(BaseModel):
    """Outcome of exporting one table."""

    table: str = Field(..., description="Table name")
    status: TableStatus = Field(..., description="Table outcome")
    row_count: int = Field(default=0, ge=0, description="Rows written to the output")
    statement_count: int = Field(
        default=0, ge=0, description="INSERT statements written"
    )
    truncated: bool = Field(
        default=False, description="Whether a DELETE FROM was emitted"
    )
    error: Optional[str] = Field(None, description="Failure description")

    @property
    def succeeded(self) -> bool:
        """Whether the table was exported completely."""
        return self.status == TableStatus.EXPORTED


class ExportResult(BaseModel):
    """Outcome of a whole export run."""

    schema_name: str = Field(..., description="Exported schema")
    tables: list[TableExportResult] = Field(
        default_factory=list, description="Per-table outcomes in export order"
    )
    excluded_tables: list[str] = Field(
        default_factory=list, description="Tables left out of the export"
    )
    aborted: bool = Field(
        default=False, description="Whether a table failure stopped the export"
    )
    duration_seconds: Optional[float] = Field(
        None, description="Wall time of the export"
    )

    @property
    def success(self) -> bool:
        """Whether every table was exported."""
        return not self.aborted and all(t.succeeded for t in self.tables)

    @property
    def total_rows(self) -> int:
        """Rows written across all tables."""
        return sum(t.row_count for t in self.tables)

    @property
    def failed_tables(self) -> list[TableExportResult]:
        """Tables whose export failed."""
        return [t for t in self.tables if t.status == TableStatus.FAILED]

    def get_table(self, name: str) -> Optional[TableExportResult]:
        """Get a table outcome by name."""
        for result in self.tables:
            if result.table == name:
                return result
        return None

    def to_summary(self) -> dict:
        """Plain summary for JSON output."""
        return {
            **self.model_dump(mode="json"),
            "success": self.success,
            "total_rows": self.total_rows,
        }
