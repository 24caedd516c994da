"""Supported database dialects and their capabilities.

The import engine branches on the dialect in a handful of places (row
savepoints, native upsert, FK toggles, sequence maintenance).  Those
differences are captured once in ``DialectCapabilities`` and looked up at
the start of a run instead of being re-checked per row.

Usage:
    from db_importer.dialects import Dialect, capabilities_for

    dialect = Dialect.from_name("postgresql")
    caps = capabilities_for(dialect)
    if caps.row_savepoints:
        ...
"""

from dataclasses import dataclass
from enum import Enum


class Dialect(str, Enum):
    """Relational database family of the target connection."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def from_name(cls, name: str) -> "Dialect":
        """Map a driver or SQLAlchemy dialect name onto a ``Dialect``.

        Args:
            name: Dialect or driver name such as ``"postgresql"``, ``"pg"``,
                ``"mysql2"``, ``"mariadb"`` or ``"better-sqlite3"``.

        Raises:
            ValueError: If the name does not belong to a supported family.
        """
        key = name.lower().split("+")[0]
        for dialect, aliases in _ALIASES.items():
            if key in aliases:
                return dialect
        raise ValueError(f"Unsupported database dialect: {name}")


_ALIASES: dict[Dialect, frozenset[str]] = {
    Dialect.POSTGRES: frozenset({"postgres", "postgresql", "pg", "asyncpg"}),
    Dialect.MYSQL: frozenset({"mysql", "mysql2", "mariadb", "aiomysql"}),
    Dialect.SQLITE: frozenset({"sqlite", "sqlite3", "better-sqlite3", "aiosqlite"}),
}


@dataclass(frozen=True)
class DialectCapabilities:
    """What a dialect supports, consulted once per import run.

    Attributes:
        dialect: The dialect these capabilities describe.
        row_savepoints: Wrap each row attempt in a savepoint.  Required on
            Postgres, where a failed statement aborts the whole transaction.
        native_upsert: Has an insert-or-update statement keyed on ``id``.
        native_insert_ignore: Has an insert that silently skips duplicates.
        serial_sequences: Serial sequences need resyncing after id-preserving
            imports.
        disable_fk_sql: Statement suspending FK enforcement for the session.
        enable_fk_sql: Statement restoring FK enforcement.
        table_exists_sql: Query returning at least one row when ``:table``
            exists.
    """

    dialect: Dialect
    row_savepoints: bool
    native_upsert: bool
    native_insert_ignore: bool
    serial_sequences: bool
    disable_fk_sql: str
    enable_fk_sql: str
    table_exists_sql: str


CAPABILITIES: dict[Dialect, DialectCapabilities] = {
    Dialect.POSTGRES: DialectCapabilities(
        dialect=Dialect.POSTGRES,
        row_savepoints=True,
        native_upsert=True,
        native_insert_ignore=True,
        serial_sequences=True,
        disable_fk_sql="SET session_replication_role = replica",
        enable_fk_sql="SET session_replication_role = DEFAULT",
        table_exists_sql=(
            "SELECT 1 FROM pg_tables "
            "WHERE schemaname = current_schema() AND tablename = :table"
        ),
    ),
    Dialect.MYSQL: DialectCapabilities(
        dialect=Dialect.MYSQL,
        row_savepoints=False,
        native_upsert=True,
        native_insert_ignore=True,
        serial_sequences=False,
        disable_fk_sql="SET FOREIGN_KEY_CHECKS = 0",
        enable_fk_sql="SET FOREIGN_KEY_CHECKS = 1",
        table_exists_sql=(
            "SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = DATABASE() AND table_name = :table"
        ),
    ),
    Dialect.SQLITE: DialectCapabilities(
        dialect=Dialect.SQLITE,
        row_savepoints=False,
        native_upsert=True,
        native_insert_ignore=True,
        serial_sequences=False,
        disable_fk_sql="PRAGMA foreign_keys = OFF",
        enable_fk_sql="PRAGMA foreign_keys = ON",
        table_exists_sql=(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = :table"
        ),
    ),
}


def capabilities_for(dialect: Dialect) -> DialectCapabilities:
    """Return the capability table entry for *dialect*."""
    return CAPABILITIES[dialect]
