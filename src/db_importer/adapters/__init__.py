"""Database access layer.

Provides the ``ImportDatabase`` / ``ImportTransaction`` Protocols the import
engine is written against, and the SQLAlchemy implementation used for real
targets (Postgres, MySQL, SQLite).

Usage:
    from db_importer.adapters import AsyncSqlImportDatabase, ImportDatabase
"""

from db_importer.adapters.base import ImportDatabase, ImportTransaction
from db_importer.adapters.sql import AsyncSqlImportDatabase, AsyncSqlTransaction

__all__ = [
    "ImportDatabase",
    "ImportTransaction",
    "AsyncSqlImportDatabase",
    "AsyncSqlTransaction",
]
