"""Database access protocols used by the import engine.

Defines ``ImportDatabase`` (a connection handle that can open transactions
and answer count queries) and ``ImportTransaction`` (the single transaction
an import run owns).  All methods are ``async def``.

The engine only depends on these Protocols, so it can be driven by the
SQLAlchemy implementation in ``db_importer.adapters.sql`` or by an
in-memory fake in tests.

Usage:
    from db_importer.adapters.base import ImportDatabase

    async def wipe(database: ImportDatabase) -> None:
        trx = await database.begin()
        try:
            await trx.delete("activity_logs")
            await trx.commit()
        except Exception:
            await trx.rollback()
            raise
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from db_importer.dialects import Dialect


class ImportTransaction(Protocol):
    """An open transaction on the target database.

    Write methods take normalized rows (see ``importer.jsonb``); the
    implementation is responsible for binding structured columns the way
    its dialect needs.
    """

    dialect: Dialect

    async def table_exists(self, table: str) -> bool:
        """Return ``True`` if *table* exists in the target schema."""
        ...

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
    ) -> list[dict]:
        """Select rows matching all *filters* (AND).

        Example:
            rows = await trx.select("users", "id", filters={"email": "a@x.com"})
        """
        ...

    async def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        """Count rows matching all *filters* (AND)."""
        ...

    async def insert(self, table: str, data: dict) -> None:
        """Insert one row.

        Raises:
            Exception: On any constraint violation (driver error).
        """
        ...

    async def insert_ignore(self, table: str, data: dict) -> bool:
        """Insert one row with the dialect's duplicate-ignoring insert.

        Returns:
            ``True`` if a row was written, ``False`` if it was ignored.
        """
        ...

    async def upsert(self, table: str, data: dict, key: str = "id") -> int:
        """Insert one row or update all non-key columns when *key* matches.

        Returns:
            Affected row count reported by the driver.
        """
        ...

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> int:
        """Update rows matching *filters*; returns the affected row count."""
        ...

    async def delete(self, table: str, filters: dict[str, Any] | None = None) -> int:
        """Delete rows matching *filters* (all rows when ``None``)."""
        ...

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement."""
        ...

    def savepoint(self, name: str) -> AbstractAsyncContextManager[None]:
        """Scope a nested savepoint.

        Released when the block exits normally, rolled back (and the
        exception re-raised) when it exits with an error.
        """
        ...

    async def commit(self) -> None:
        """Commit and release the connection."""
        ...

    async def rollback(self) -> None:
        """Roll back and release the connection."""
        ...


class ImportDatabase(Protocol):
    """A target database that import runs can open transactions on."""

    dialect: Dialect

    async def begin(self) -> ImportTransaction:
        """Open a connection and start a transaction on it."""
        ...

    async def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        """Count committed rows, outside of any import transaction."""
        ...

    async def close(self) -> None:
        """Dispose of pooled connections."""
        ...
