"""Pydantic models for import options, results and snapshot previews.

Usage:
    from db_importer.importer.models import ImportOptions, ImportStrategy

    options = ImportOptions(strategy=ImportStrategy.OVERWRITE, tables=["users", "posts"])
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ImportStrategy(str, Enum):
    """How existing data in the target is treated.

    - ``replace``: delete all rows of each table, then insert.
    - ``skip``: only import into tables that are currently empty.
    - ``merge``: insert new rows, leave conflicting existing rows untouched.
    - ``overwrite``: insert new rows, update rows matched by id; incoming
      rows win unique-key conflicts.  Requires ``preserve_ids``.
    """

    REPLACE = "replace"
    SKIP = "skip"
    MERGE = "merge"
    OVERWRITE = "overwrite"

    @property
    def tolerates_row_errors(self) -> bool:
        """Row failures are absorbed as skips instead of aborting the run."""
        return self in (ImportStrategy.MERGE, ImportStrategy.OVERWRITE)


class ImportOptions(BaseModel):
    """Options for a single import run.

    Attributes:
        strategy: Conflict-handling mode.
        tables: Only import these tables (``None`` imports every table).
        disable_foreign_key_checks: Suspend FK enforcement while importing.
        preserve_ids: Whether export ids are meaningful.  ``None`` means use
            ``metadata.preserveIds`` from the snapshot (default ``True``).
        documentation_fallback: Run the post-commit documentation safety net.
    """

    strategy: ImportStrategy = ImportStrategy.MERGE
    tables: list[str] | None = None
    disable_foreign_key_checks: bool = True
    preserve_ids: bool | None = None
    documentation_fallback: bool = True


class TableError(BaseModel):
    """An error recorded against one table."""

    table: str
    error: str


class TableStats(BaseModel):
    """Per-table row counters."""

    imported: int = 0
    skipped: int = 0
    errored: int = 0
    warnings: int = 0


class ImportResult(BaseModel):
    """Outcome of an import run.

    ``success`` is ``True`` whenever the transaction committed; soft failures
    are listed in ``errors`` and ``skipped_tables``.
    """

    success: bool = True
    strategy: ImportStrategy = ImportStrategy.MERGE
    tables_imported: int = 0
    rows_imported: int = 0
    errors: list[TableError] = Field(default_factory=list)
    skipped_tables: list[str] = Field(default_factory=list)
    table_stats: dict[str, TableStats] = Field(default_factory=dict)
    post_type_stats: dict[str, TableStats] = Field(default_factory=dict)
    summary_counts: dict[str, int] = Field(default_factory=dict)
    cycles_detected: list[Any] = Field(default_factory=list)

    def stats_for(self, table: str) -> TableStats:
        """Return (creating if needed) the counters for *table*."""
        return self.table_stats.setdefault(table, TableStats())


class ValidationReport(BaseModel):
    """Result of ``validate_export_data``."""

    valid: bool
    error: str | None = None


class TablePreview(BaseModel):
    """Row count of one table in a snapshot."""

    table: str
    rows: int


class ExportPreview(BaseModel):
    """Summary of a snapshot file, computed without touching a database."""

    valid: bool
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    tables: int = 0
    total_rows: int = 0
    table_details: list[TablePreview] = Field(default_factory=list)
