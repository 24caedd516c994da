"""Snapshot import engine: validation, ordering, conflict handling, orchestration.

Usage:
    from db_importer.importer import DatabaseImporter, ImportOptions, ImportStrategy
"""

from db_importer.importer.conflicts import ConflictResolver, savepoint_name
from db_importer.importer.dedupe import ModuleInstanceDeduplicator
from db_importer.importer.jsonb import bind_jsonb_params, normalize_row
from db_importer.importer.models import (
    ExportPreview,
    ImportOptions,
    ImportResult,
    ImportStrategy,
    TableError,
    TableStats,
    ValidationReport,
)
from db_importer.importer.ordering import (
    PostOrdering,
    order_tables_by_dependency,
    sort_posts_by_dependency,
)
from db_importer.importer.service import DatabaseImporter, import_database
from db_importer.importer.validator import describe_export, validate_export_data

__all__ = [
    "ConflictResolver",
    "savepoint_name",
    "ModuleInstanceDeduplicator",
    "bind_jsonb_params",
    "normalize_row",
    "ExportPreview",
    "ImportOptions",
    "ImportResult",
    "ImportStrategy",
    "TableError",
    "TableStats",
    "ValidationReport",
    "PostOrdering",
    "order_tables_by_dependency",
    "sort_posts_by_dependency",
    "DatabaseImporter",
    "import_database",
    "describe_export",
    "validate_export_data",
]
