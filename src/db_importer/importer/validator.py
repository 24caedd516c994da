"""Export snapshot validation.

Checks an already-parsed snapshot for shape and version compatibility
before any database work starts.  Pure functions -- no I/O.

Usage:
    from db_importer.importer.validator import validate_export_data

    report = validate_export_data(snapshot)
    if not report.valid:
        raise ExportValidationError(report.error)
"""

from collections.abc import Mapping
from typing import Any

from db_importer.importer.models import ExportPreview, TablePreview, ValidationReport

SUPPORTED_EXPORT_MAJOR = "2"


def major_version(version: str) -> str:
    """Return the major component of a semver-like version string.

    Example:
        >>> major_version("2.4.1")
        '2'
        >>> major_version("v3")
        '3'
    """
    return version.strip().lstrip("vV").split(".")[0]


def table_rows(snapshot: Mapping[str, Any], table: str) -> list[dict]:
    """Return the rows of *table* from a snapshot.

    Accepts both a bare list of rows and a ``{"rows": [...]}`` wrapper.
    Missing tables and unrecognised shapes yield an empty list.
    """
    tables = snapshot.get("tables") or {}
    value = tables.get(table)
    if isinstance(value, Mapping):
        value = value.get("rows")
    if isinstance(value, list):
        return value
    return []


def validate_export_data(
    data: Any,
    supported_major: str = SUPPORTED_EXPORT_MAJOR,
) -> ValidationReport:
    """Validate the structure and version of an export snapshot.

    Args:
        data: Parsed JSON document.
        supported_major: Major version this engine can import.

    Returns:
        ``ValidationReport`` with ``valid`` and, when invalid, an ``error``
        message.

    Example:
        >>> validate_export_data({"metadata": {"version": "1.4.0"}, "tables": {}}).error
        'Incompatible export version: 1.4.0 (expected 2.x.x)'
    """
    if not isinstance(data, Mapping):
        return ValidationReport(valid=False, error="Invalid export data: not an object")

    metadata = data.get("metadata")
    tables = data.get("tables")
    if not metadata or tables is None:
        return ValidationReport(
            valid=False, error="Invalid export data: missing metadata or tables"
        )

    if not isinstance(metadata, Mapping):
        return ValidationReport(valid=False, error="Invalid export data: metadata is not an object")

    if not isinstance(tables, Mapping):
        return ValidationReport(valid=False, error="Invalid export data: tables is not an object")

    version = metadata.get("version")
    if not version:
        return ValidationReport(valid=False, error="Invalid export data: missing version")

    if not isinstance(version, str):
        return ValidationReport(
            valid=False, error=f"Invalid export data: version must be a string, got {version!r}"
        )

    if major_version(version) != supported_major:
        return ValidationReport(
            valid=False,
            error=(
                f"Incompatible export version: {version} "
                f"(expected {supported_major}.x.x)"
            ),
        )

    return ValidationReport(valid=True)


def describe_export(
    data: Any,
    supported_major: str = SUPPORTED_EXPORT_MAJOR,
) -> ExportPreview:
    """Validate a snapshot and summarise its contents.

    Used to preview an upload before importing it.  Invalid snapshots return
    a preview with ``valid=False`` and no table details.
    """
    report = validate_export_data(data, supported_major)
    if not report.valid:
        return ExportPreview(valid=False, error=report.error)

    details = [
        TablePreview(table=name, rows=len(table_rows(data, name)))
        for name in data["tables"]
    ]
    return ExportPreview(
        valid=True,
        metadata=dict(data["metadata"]),
        tables=len(details),
        total_rows=sum(d.rows for d in details),
        table_details=details,
    )
