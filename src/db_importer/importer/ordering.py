"""Table and row ordering for FK-safe imports.

Two orderings are applied before rows are written:

1. ``order_tables_by_dependency`` -- tables follow the static priority list
   in ``registry.TABLE_ORDER``; unknown tables go last in encounter order.
2. ``sort_posts_by_dependency`` -- within the content table, parents and
   translation sources are written before the rows that reference them.
   Cycles are broken by flushing the remaining rows unordered.

Usage:
    from db_importer.importer.ordering import (
        order_tables_by_dependency,
        sort_posts_by_dependency,
    )

    order_tables_by_dependency(["post_modules", "users", "posts"])
    # ['users', 'posts', 'post_modules']
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from db_importer.importer.registry import TABLE_ORDER

# Columns on the content table that reference another content row
POST_REFERENCE_FIELDS: tuple[str, ...] = ("parent_id", "translation_of_id")


def order_tables_by_dependency(
    tables: Iterable[str],
    priority: Sequence[str] = TABLE_ORDER,
) -> list[str]:
    """Order table names so FK parents come before their children.

    Args:
        tables: Table names present in the snapshot (optionally pre-filtered).
        priority: Static dependency order.  Defaults to ``TABLE_ORDER``.

    Returns:
        Listed tables in priority order, followed by any remaining tables in
        their original order.  Duplicates in *tables* are dropped.
    """
    remaining: list[str] = list(dict.fromkeys(tables))
    ordered: list[str] = []

    for name in priority:
        if name in remaining:
            ordered.append(name)
            remaining.remove(name)

    ordered.extend(remaining)
    return ordered


@dataclass
class PostOrdering:
    """Result of ``sort_posts_by_dependency``.

    Attributes:
        rows: Every input row exactly once, dependencies first where possible.
        cycle_ids: Ids of rows that could not be ordered (part of, or
            depending on, a reference cycle) and were appended as-is.
    """

    rows: list[dict] = field(default_factory=list)
    cycle_ids: list[Any] = field(default_factory=list)


def _references(row: dict) -> list[Any]:
    return [row[f] for f in POST_REFERENCE_FIELDS if row.get(f) is not None]


def sort_posts_by_dependency(rows: Sequence[dict]) -> PostOrdering:
    """Arrange content rows so referenced rows are written first.

    A row is eligible once every id it references through ``parent_id`` or
    ``translation_of_id`` has been placed.  References to ids that are not
    in *rows* at all count as satisfied; the target database may already
    hold them.  Iteration is bounded, and rows still waiting when the bound
    is hit are appended in input order.

    Args:
        rows: Content rows in export order.

    Returns:
        ``PostOrdering`` with the ordered rows and the ids of any rows that
        were flushed unordered.

    Example:
        >>> a = {"id": "a", "parent_id": "b"}
        >>> b = {"id": "b", "parent_id": None}
        >>> [r["id"] for r in sort_posts_by_dependency([a, b]).rows]
        ['b', 'a']
    """
    known_ids = {row.get("id") for row in rows if row.get("id") is not None}

    ordered: list[dict] = []
    processed: set[Any] = set()
    remaining: list[dict] = []

    # Roots: rows with no references
    for row in rows:
        if _references(row):
            remaining.append(row)
        else:
            ordered.append(row)
            if row.get("id") is not None:
                processed.add(row["id"])

    max_iterations = len(remaining) * 2 + 1
    iterations = 0

    while remaining and iterations < max_iterations:
        iterations += 1
        progressed = False
        still_waiting: list[dict] = []

        for row in remaining:
            ready = all(
                ref in processed or ref not in known_ids
                for ref in _references(row)
            )
            if ready:
                ordered.append(row)
                if row.get("id") is not None:
                    processed.add(row["id"])
                progressed = True
            else:
                still_waiting.append(row)

        remaining = still_waiting
        if not progressed:
            break

    ordered.extend(remaining)
    return PostOrdering(
        rows=ordered,
        cycle_ids=[row.get("id") for row in remaining],
    )
