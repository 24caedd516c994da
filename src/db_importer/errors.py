"""Exception hierarchy and database error classification.

Database drivers report constraint violations very differently (SQLSTATE
codes on Postgres, errno on MySQL, message text on SQLite).
``classify_db_error`` folds them into a small ``ConflictKind`` enum so the
conflict resolver can decide whether a failed row is a skip or fatal.

Usage:
    from db_importer.errors import ConflictKind, classify_db_error

    try:
        await trx.insert("users", row)
    except Exception as e:
        if classify_db_error(e) is ConflictKind.UNIQUE:
            ...
"""

from enum import Enum


class ImporterError(Exception):
    """Base class for all db-importer errors."""


class ExportValidationError(ImporterError, ValueError):
    """Raised when an export snapshot fails validation."""


class ProfileNotFoundError(ImporterError):
    """Raised when no database profile is configured."""


class RowImportError(ImporterError):
    """A single row could not be written.

    The originating database error is chained as ``__cause__``.
    """

    def __init__(self, table: str, row_id: object, message: str) -> None:
        self.table = table
        self.row_id = row_id
        super().__init__(f"{table} row {row_id!r}: {message}")


class TableImportError(ImporterError):
    """A table failed under a strategy that does not tolerate partial failure."""

    def __init__(self, table: str, message: str) -> None:
        self.table = table
        super().__init__(f"Failed to import {table}: {message}")


class ConflictKind(str, Enum):
    """Category of a database write failure."""

    UNIQUE = "unique"
    FOREIGN_KEY = "foreign_key"
    NOT_NULL = "not_null"
    OTHER = "other"


_SQLSTATE_KINDS = {
    "23505": ConflictKind.UNIQUE,
    "23503": ConflictKind.FOREIGN_KEY,
    "23502": ConflictKind.NOT_NULL,
}

_MYSQL_ERRNO_KINDS = {
    1062: ConflictKind.UNIQUE,
    1451: ConflictKind.FOREIGN_KEY,
    1452: ConflictKind.FOREIGN_KEY,
    1048: ConflictKind.NOT_NULL,
    1364: ConflictKind.NOT_NULL,
}

_MESSAGE_KINDS = (
    ("unique constraint failed", ConflictKind.UNIQUE),
    ("duplicate key", ConflictKind.UNIQUE),
    ("duplicate entry", ConflictKind.UNIQUE),
    ("foreign key constraint", ConflictKind.FOREIGN_KEY),
    ("violates foreign key", ConflictKind.FOREIGN_KEY),
    ("not null constraint failed", ConflictKind.NOT_NULL),
    ("violates not-null", ConflictKind.NOT_NULL),
    ("cannot be null", ConflictKind.NOT_NULL),
)


def _error_chain(exc: BaseException) -> list[BaseException]:
    """Walk SQLAlchemy ``orig`` and ``__cause__`` links, outermost first."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        orig = getattr(current, "orig", None)
        if isinstance(orig, BaseException) and orig not in chain:
            current = orig
        else:
            current = current.__cause__
    return chain


def classify_db_error(exc: BaseException) -> ConflictKind:
    """Classify a database error raised by any supported driver.

    Args:
        exc: The exception raised by the driver or SQLAlchemy.

    Returns:
        The matching ``ConflictKind``; ``ConflictKind.OTHER`` when the error
        is not a recognised constraint violation.

    Example:
        >>> class PgError(Exception):
        ...     sqlstate = "23505"
        >>> classify_db_error(PgError("dup"))
        <ConflictKind.UNIQUE: 'unique'>
    """
    chain = _error_chain(exc)

    for err in chain:
        code = getattr(err, "sqlstate", None) or getattr(err, "pgcode", None)
        if isinstance(code, str) and code in _SQLSTATE_KINDS:
            return _SQLSTATE_KINDS[code]

    for err in chain:
        args = getattr(err, "args", ())
        if args and isinstance(args[0], int) and args[0] in _MYSQL_ERRNO_KINDS:
            return _MYSQL_ERRNO_KINDS[args[0]]

    for err in chain:
        message = str(err).lower()
        for needle, kind in _MESSAGE_KINDS:
            if needle in message:
                return kind

    return ConflictKind.OTHER


def constraint_name(exc: BaseException) -> str | None:
    """Return the violated constraint name when the driver exposes it."""
    for err in _error_chain(exc):
        name = getattr(err, "constraint_name", None)
        if isinstance(name, str) and name:
            return name
        diag = getattr(err, "diag", None)
        name = getattr(diag, "constraint_name", None)
        if isinstance(name, str) and name:
            return name
    return None
