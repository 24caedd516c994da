"""JSONB column normalization and parameter binding.

Structured columns arrive in exports either as parsed JSON or as JSON text
(some exporters stringify them).  ``normalize_row`` brings both to plain
Python data; ``bind_jsonb_params`` turns a normalized row into SQL
placeholders and bind parameters for the target dialect.

Usage:
    from db_importer.dialects import Dialect
    from db_importer.importer.jsonb import bind_jsonb_params, normalize_row

    row = normalize_row("posts", {"id": "p1", "robots_json": '{"index": true}'})
    bound = bind_jsonb_params(Dialect.POSTGRES, ["robots_json"], row)
    bound.placeholders["robots_json"]
    # 'CAST(:robots_json AS jsonb)'
"""

import json
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any

from db_importer.dialects import Dialect
from db_importer.importer.registry import JSONB_COLUMNS

_SCALARS = (str, int, float, bool, type(None))


def _is_plain(value: Any) -> bool:
    """True if *value* is built only from dict/list/JSON scalars."""
    if isinstance(value, _SCALARS):
        return True
    if type(value) is dict:
        return all(isinstance(k, str) and _is_plain(v) for k, v in value.items())
    if type(value) is list:
        return all(_is_plain(v) for v in value)
    return False


def normalize_value(value: Any) -> Any:
    """Normalize one structured column value.

    - ``None`` passes through.
    - Strings are parsed as JSON; unparseable strings are kept as-is.
    - Plain dict/list data is returned unchanged.
    - Anything else is deep-copied through a JSON round trip, which turns
      tuples into lists, custom mappings into dicts and datetimes into
      ISO strings.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    if _is_plain(value):
        return value
    return json.loads(json.dumps(value, default=_json_default))


def _json_default(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def normalize_row(
    table: str,
    row: dict,
    registry: Mapping[str, Collection[str]] = JSONB_COLUMNS,
) -> dict:
    """Return a copy of *row* with its registered JSONB columns normalized.

    Columns not in the registry are untouched.  Idempotent: normalizing an
    already-normalized row returns an equal row.
    """
    columns = registry.get(table)
    if not columns:
        return dict(row)

    normalized = dict(row)
    for column in columns:
        if column in normalized:
            normalized[column] = normalize_value(normalized[column])
    return normalized


@dataclass(frozen=True)
class BoundRow:
    """SQL placeholders and bind parameters for one row.

    Attributes:
        placeholders: Column name -> SQL value expression (``:p`` or a cast).
        params: Bind parameter name -> value.
    """

    placeholders: dict[str, str]
    params: dict[str, Any]


def bind_param_name(column: str, prefix: str = "") -> str:
    """Bind parameter name for *column*; non-identifier characters become ``_``."""
    safe = "".join(ch if ch.isalnum() or ch == "_" else "_" for ch in column)
    return f"{prefix}{safe}"


def bind_jsonb_params(
    dialect: Dialect,
    jsonb_columns: Collection[str],
    row: Mapping[str, Any],
    prefix: str = "",
) -> BoundRow:
    """Build placeholders and parameters for writing *row*.

    On Postgres every non-null JSONB value is serialized to JSON text and
    wrapped in ``CAST(:p AS jsonb)`` so the driver does not guess the type.
    Other dialects get plain placeholders; dict and list values are still
    serialized because DB-API drivers cannot bind them directly.

    Args:
        dialect: Target dialect.
        jsonb_columns: Structured columns of the table being written.
        row: Normalized row.
        prefix: Prefix for bind parameter names (keeps SET and WHERE
            parameters apart in one statement).
    """
    placeholders: dict[str, str] = {}
    params: dict[str, Any] = {}

    for column, value in row.items():
        param = bind_param_name(column, prefix)
        is_jsonb = column in jsonb_columns

        if is_jsonb and value is not None:
            text = json.dumps(value)
            if dialect is Dialect.POSTGRES:
                placeholders[column] = f"CAST(:{param} AS jsonb)"
            else:
                placeholders[column] = f":{param}"
            params[param] = text
        elif isinstance(value, (dict, list)):
            placeholders[column] = f":{param}"
            params[param] = json.dumps(value)
        else:
            placeholders[column] = f":{param}"
            params[param] = value

    return BoundRow(placeholders=placeholders, params=params)
