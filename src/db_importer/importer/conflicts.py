"""Per-row conflict resolution.

``ConflictResolver`` writes one row at a time on behalf of the ``merge``
and ``overwrite`` strategies:

- ``insert_or_ignore`` inserts a row unless it (or a unique-key twin)
  already exists.
- ``upsert_row`` inserts a row or updates the existing row with the same
  id; the incoming row wins unique-key conflicts.

On Postgres every attempt runs inside its own savepoint, because a failed
statement would otherwise abort the enclosing import transaction.  MySQL
and SQLite roll back only the failing statement, so plain inserts use their
native insert-ignore statement directly.  Writes that first delete a
unique-key twin run inside a savepoint on every dialect, so the twin is
restored when the write does not land.

Usage:
    resolver = ConflictResolver(trx, capabilities_for(trx.dialect), events)
    inserted = await resolver.insert_or_ignore("users", row)
    affected = await resolver.upsert_row("posts", row)
"""

import re
import secrets
from collections.abc import Mapping
from typing import Any

from db_importer.adapters.base import ImportTransaction
from db_importer.dialects import DialectCapabilities
from db_importer.errors import ConflictKind, RowImportError, classify_db_error, constraint_name
from db_importer.events import EventKind, ImportEvent, ImportEventSink
from db_importer.importer.registry import UNIQUE_KEYS

# Postgres truncates identifiers longer than 63 bytes
_MAX_IDENTIFIER = 63
_UNSAFE = re.compile(r"[^a-z0-9_]+")


class _RowNotWritten(Exception):
    """Raised inside a savepoint to undo the attempt when a row is skipped."""


def savepoint_name(table: str, row_id: Any = None) -> str:
    """Derive a valid, collision-resistant savepoint identifier.

    The name is ``sp_<table>_<id>`` reduced to ``[a-z0-9_]``, always with a
    short random suffix so two attempts on the same row never share a name,
    and truncated to the 63-character Postgres identifier limit.

    Example:
        >>> savepoint_name("posts", "7c9e-66").startswith("sp_posts_7c9e_66_")
        True
    """
    table_part = _UNSAFE.sub("_", table.lower()).strip("_") or "t"
    id_part = _UNSAFE.sub("_", str(row_id).lower()).strip("_") if row_id is not None else ""
    suffix = secrets.token_hex(4)

    base = f"sp_{table_part}_{id_part}" if id_part else f"sp_{table_part}"
    base = base[: _MAX_IDENTIFIER - len(suffix) - 1]
    return f"{base}_{suffix}"


class ConflictResolver:
    """Dialect-aware insert-or-ignore and upsert for single rows.

    Args:
        trx: The import transaction.
        capabilities: Capabilities of ``trx.dialect``, looked up once per run.
        events: Sink for row-level diagnostics (normally sampled).
        unique_keys: Table -> secondary unique column groups.
    """

    def __init__(
        self,
        trx: ImportTransaction,
        capabilities: DialectCapabilities,
        events: ImportEventSink,
        unique_keys: Mapping[str, tuple[tuple[str, ...], ...]] = UNIQUE_KEYS,
    ) -> None:
        self._trx = trx
        self._capabilities = capabilities
        self._events = events
        self._unique_keys = unique_keys
        # Native statements only where a failed statement leaves the transaction usable
        self._native_insert_ignore = (
            capabilities.native_insert_ignore and not capabilities.row_savepoints
        )
        self._native_upsert = capabilities.native_upsert and not capabilities.row_savepoints

    # ------------------------------------------------------------------
    # Secondary unique keys
    # ------------------------------------------------------------------

    async def resolve_unique_conflicts(self, table: str, row: dict) -> int:
        """Delete existing rows that share a unique key with *row* under another id.

        The incoming row is treated as authoritative for the unique key: two
        environments can create the same logical record (same email, same
        slug) under different generated ids.  Rows without an ``id`` treat
        every match as a conflict.

        Returns:
            Number of existing rows deleted.
        """
        row_id = row.get("id")
        deleted = 0

        for columns in self._unique_keys.get(table, ()):
            if any(row.get(c) is None for c in columns):
                continue

            filters = {c: row[c] for c in columns}
            existing = await self._trx.select(table, "*", filters=filters)

            for other in existing:
                other_id = other.get("id")
                if row_id is not None and other_id == row_id:
                    continue

                if other_id is not None:
                    await self._trx.delete(table, {"id": other_id})
                else:
                    await self._trx.delete(table, filters)
                deleted += 1

                self._events.emit(ImportEvent(
                    kind=EventKind.ROW_CONFLICT,
                    table=table,
                    message=(
                        f"Replaced existing row {other_id!r} sharing "
                        f"{', '.join(columns)} with incoming row {row_id!r}"
                    ),
                    data={"row_id": row_id, "replaced_id": other_id, "columns": list(columns)},
                ))

        return deleted

    async def _exists(self, table: str, row_id: Any) -> bool:
        return bool(await self._trx.select(table, "id", filters={"id": row_id}))

    # ------------------------------------------------------------------
    # Insert or ignore
    # ------------------------------------------------------------------

    async def insert_or_ignore(
        self,
        table: str,
        row: dict,
        *,
        incoming_wins: bool = False,
    ) -> bool:
        """Insert *row* unless it conflicts with existing data.

        Args:
            table: Target table.
            row: Normalized row.
            incoming_wins: Delete existing rows that share a secondary unique
                key with *row* before inserting (``overwrite`` semantics).
                When ``False`` the existing row wins and the incoming row is
                skipped (``merge`` semantics).  The deletions are undone when
                the row is not inserted after all.

        Returns:
            ``True`` if the row was inserted, ``False`` if it was skipped.

        Raises:
            Exception: Any database error that is not a unique, foreign-key
                or not-null violation.
        """
        if self._native_insert_ignore and not incoming_wins:
            return await self._trx.insert_ignore(table, row)

        row_id = row.get("id")
        try:
            async with self._trx.savepoint(savepoint_name(table, row_id)):
                if incoming_wins:
                    await self.resolve_unique_conflicts(table, row)

                if self._native_insert_ignore:
                    if not await self._trx.insert_ignore(table, row):
                        raise _RowNotWritten(table, row_id)
                    return True

                if row_id is not None and await self._exists(table, row_id):
                    raise _RowNotWritten(table, row_id)
                await self._trx.insert(table, row)
                return True
        except _RowNotWritten:
            return False
        except Exception as e:
            kind = classify_db_error(e)
            if kind is ConflictKind.UNIQUE:
                self._events.emit(ImportEvent(
                    kind=EventKind.ROW_CONFLICT,
                    table=table,
                    message=f"Row {row_id!r} already exists ({constraint_name(e) or 'unique'})",
                    data={"row_id": row_id, "constraint": constraint_name(e)},
                ))
                return False
            if kind in (ConflictKind.FOREIGN_KEY, ConflictKind.NOT_NULL):
                self._events.emit(ImportEvent(
                    kind=EventKind.ROW_SKIPPED,
                    table=table,
                    message=f"Skipped row {row_id!r}: {kind.value} violation ({constraint_name(e) or e})",
                    data={"row_id": row_id, "kind": kind.value, "constraint": constraint_name(e)},
                ))
                return False
            raise

    # ------------------------------------------------------------------
    # Upsert
    # ------------------------------------------------------------------

    async def upsert_row(self, table: str, row: dict) -> int:
        """Insert *row*, or update every non-id column of the row with its id.

        Existing rows sharing a secondary unique key with *row* under another
        id are deleted first, in the same savepoint as the write.

        Returns:
            ``1`` if the write landed, ``0`` if an update could not be
            confirmed by re-reading the row.

        Raises:
            RowImportError: Wrapping any database error, with table and id
                context.  The caller decides whether it is fatal.
        """
        row_id = row.get("id")

        try:
            async with self._trx.savepoint(savepoint_name(table, row_id)):
                if self._native_upsert:
                    await self.resolve_unique_conflicts(table, row)
                    affected = await self._trx.upsert(table, row, key="id")
                    return 1 if affected else 0

                if await self._exists(table, row_id):
                    changes = {k: v for k, v in row.items() if k != "id"}
                    if changes:
                        await self._trx.update(table, changes, {"id": row_id})
                    return 1 if await self._exists(table, row_id) else 0

                await self.resolve_unique_conflicts(table, row)
                await self._trx.insert(table, row)
                return 1
        except Exception as e:
            raise RowImportError(table, row_id, str(e)) from e
