"""Shared fixtures: an in-memory implementation of the import database Protocols."""

import copy
from contextlib import asynccontextmanager
from typing import Any

import pytest

from db_importer.dialects import Dialect
from db_importer.importer.registry import UNIQUE_KEYS


class FakeDbError(Exception):
    """Driver-style error carrying a SQLSTATE code."""

    def __init__(self, message: str, sqlstate: str, constraint_name: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate
        self.constraint_name = constraint_name


def _matches(row: dict, filters: dict | None) -> bool:
    return all(row.get(k) == v for k, v in (filters or {}).items())


class FakeTransaction:
    """Works on a private copy of the database state until commit."""

    def __init__(self, database: "FakeDatabase") -> None:
        self._database = database
        self.dialect = database.dialect
        self.tables: dict[str, list[dict]] = copy.deepcopy(database.tables)
        self.executed: list[tuple[str, dict | None]] = []
        self.savepoints: list[str] = []
        self.committed = False
        self.rolled_back = False

    def _rows(self, table: str) -> list[dict]:
        if table not in self.tables:
            raise FakeDbError(f'relation "{table}" does not exist', "42P01")
        return self.tables[table]

    def _check_unique(self, table: str, data: dict, ignore: dict | None = None) -> None:
        rows = [r for r in self._rows(table) if r is not ignore]
        if data.get("id") is not None and any(r.get("id") == data["id"] for r in rows):
            raise FakeDbError(
                f"duplicate key value violates unique constraint \"{table}_pkey\"",
                "23505",
                f"{table}_pkey",
            )
        for columns in self._database.unique_keys.get(table, ()):
            if any(data.get(c) is None for c in columns):
                continue
            if any(all(r.get(c) == data[c] for c in columns) for r in rows):
                name = f"{table}_{'_'.join(columns)}_unique"
                raise FakeDbError(
                    f"duplicate key value violates unique constraint \"{name}\"",
                    "23505",
                    name,
                )

    async def table_exists(self, table: str) -> bool:
        return table in self.tables

    async def select(self, table: str, columns: str = "*", filters: dict[str, Any] | None = None) -> list[dict]:
        rows = [dict(r) for r in self._rows(table) if _matches(r, filters)]
        if columns.strip() == "*":
            return rows
        wanted = [c.strip() for c in columns.split(",")]
        return [{c: r.get(c) for c in wanted} for r in rows]

    async def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        return len([r for r in self._rows(table) if _matches(r, filters)])

    async def insert(self, table: str, data: dict) -> None:
        if table in self._database.fail_inserts:
            raise FakeDbError(f"insert into {table} rejected", "XX000")
        self._check_unique(table, data)
        self._rows(table).append(dict(data))

    async def insert_ignore(self, table: str, data: dict) -> bool:
        if table in self._database.fail_inserts:
            raise FakeDbError(f"insert into {table} rejected", "XX000")
        try:
            self._check_unique(table, data)
        except FakeDbError:
            return False
        self._rows(table).append(dict(data))
        return True

    async def upsert(self, table: str, data: dict, key: str = "id") -> int:
        for row in self._rows(table):
            if row.get(key) == data.get(key):
                self._check_unique(table, {k: v for k, v in data.items() if k != "id"}, ignore=row)
                row.update(data)
                return 1
        await self.insert(table, data)
        return 1

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> int:
        matched = [r for r in self._rows(table) if _matches(r, filters)]
        for row in matched:
            row.update(data)
        return len(matched)

    async def delete(self, table: str, filters: dict[str, Any] | None = None) -> int:
        rows = self._rows(table)
        keep = [r for r in rows if not _matches(r, filters)]
        deleted = len(rows) - len(keep)
        self.tables[table] = keep
        return deleted

    async def execute(self, sql: str, params: dict | None = None) -> None:
        if sql in self._database.fail_statements:
            raise FakeDbError(f"permission denied: {sql}", "42501")
        self.executed.append((sql, params))

    @asynccontextmanager
    async def savepoint(self, name: str):
        self.savepoints.append(name)
        saved = copy.deepcopy(self.tables)
        try:
            yield
        except BaseException:
            self.tables = saved
            raise

    async def commit(self) -> None:
        self._database.tables = self.tables
        self.committed = True
        self._database.executed.extend(self.executed)

    async def rollback(self) -> None:
        self.rolled_back = True


class FakeDatabase:
    """In-memory ``ImportDatabase``.

    Args:
        tables: Existing tables and their committed rows.
        dialect: Reported dialect (selects the resolver code path).
    """

    def __init__(
        self,
        tables: dict[str, list[dict]] | None = None,
        dialect: Dialect = Dialect.SQLITE,
        unique_keys=UNIQUE_KEYS,
    ) -> None:
        self.tables: dict[str, list[dict]] = copy.deepcopy(tables or {})
        self.dialect = dialect
        self.unique_keys = unique_keys
        self.transactions: list[FakeTransaction] = []
        self.executed: list[tuple[str, dict | None]] = []
        self.fail_inserts: set[str] = set()
        self.fail_statements: set[str] = set()
        self.closed = False

    async def begin(self) -> FakeTransaction:
        trx = FakeTransaction(self)
        self.transactions.append(trx)
        return trx

    async def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        if table not in self.tables:
            raise FakeDbError(f'relation "{table}" does not exist', "42P01")
        return len([r for r in self.tables[table] if _matches(r, filters)])

    async def close(self) -> None:
        self.closed = True


def make_snapshot(tables: dict, version: str = "2.0.0", **metadata) -> dict:
    """Build an export snapshot around *tables*."""
    return {
        "metadata": {
            "version": version,
            "exportedAt": "2025-01-01T00:00:00Z",
            "preserveIds": True,
            **metadata,
        },
        "tables": tables,
    }


@pytest.fixture
def users() -> list[dict]:
    return [
        {"id": "u1", "email": "a@x.com", "full_name": "Ada"},
        {"id": "u2", "email": "b@x.com", "full_name": "Bob"},
        {"id": "u3", "email": "c@x.com", "full_name": "Cy"},
    ]


@pytest.fixture
def posts() -> list[dict]:
    return [
        {"id": "p1", "slug": "home", "locale": "en", "type": "page", "parent_id": None},
        {"id": "p2", "slug": "about", "locale": "en", "type": "page", "parent_id": "p1"},
        {"id": "p3", "slug": "hello", "locale": "en", "type": "blog", "parent_id": None},
        {"id": "p4", "slug": "hallo", "locale": "de", "type": "blog", "translation_of_id": "p3"},
        {
            "id": "p5",
            "slug": "getting-started",
            "locale": "en",
            "type": "documentation",
            "robots_json": '{"index": true}',
        },
    ]
