"""db-importer: Transactional import of CMS export snapshots.

Validates a JSON export, orders tables and rows by foreign-key dependency,
and writes everything inside one transaction with a selectable conflict
strategy (replace, skip, merge, overwrite) on Postgres, MySQL or SQLite.

Usage:
    from db_importer import DatabaseImporter, ImportOptions, ImportStrategy
    from db_importer import get_import_database

    database = get_import_database("staging")
    result = await DatabaseImporter(database).import_from_file(
        "export.json", ImportOptions(strategy=ImportStrategy.MERGE)
    )
"""

__version__ = "0.1.0"

# Adapters
from db_importer.adapters.base import ImportDatabase, ImportTransaction
from db_importer.adapters.sql import AsyncSqlImportDatabase

# Config
from db_importer.config.loader import load_importer_config
from db_importer.config.models import DatabaseProfile, ImportDefaults, ImporterConfig

# Errors
from db_importer.errors import (
    ExportValidationError,
    ImporterError,
    ProfileNotFoundError,
    RowImportError,
    TableImportError,
)

# Events
from db_importer.events import CollectingEventSink, EventKind, ImportEvent, LoggingEventSink

# Factory
from db_importer.factory import get_import_database, resolve_url

# Engine
from db_importer.importer.models import ImportOptions, ImportResult, ImportStrategy
from db_importer.importer.service import DatabaseImporter, import_database
from db_importer.importer.validator import describe_export, validate_export_data

__all__ = [
    # Adapters
    "ImportDatabase",
    "ImportTransaction",
    "AsyncSqlImportDatabase",
    # Config
    "load_importer_config",
    "DatabaseProfile",
    "ImportDefaults",
    "ImporterConfig",
    # Errors
    "ImporterError",
    "ExportValidationError",
    "ProfileNotFoundError",
    "RowImportError",
    "TableImportError",
    # Events
    "CollectingEventSink",
    "EventKind",
    "ImportEvent",
    "LoggingEventSink",
    # Factory
    "get_import_database",
    "resolve_url",
    # Engine
    "DatabaseImporter",
    "import_database",
    "ImportOptions",
    "ImportResult",
    "ImportStrategy",
    "describe_export",
    "validate_export_data",
]
