# src/forum_votes/db/errors.py
"""Translation of driver-level database errors into vote errors."""

from __future__ import annotations

from typing import Final

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from forum_votes.services.errors import (
    DeadlockDetected,
    LockTimeout,
    StorageFailure,
    VoteError,
)

# PostgreSQL SQLSTATE codes
PG_LOCK_NOT_AVAILABLE: Final[str] = "55P03"
PG_DEADLOCK_DETECTED: Final[str] = "40P01"
PG_SERIALIZATION_FAILURE: Final[str] = "40001"

# MySQL / MariaDB error numbers
MYSQL_LOCK_WAIT_TIMEOUT: Final[int] = 1205
MYSQL_DEADLOCK: Final[int] = 1213

_SQLITE_LOCKED_MESSAGES: Final[tuple[str, ...]] = (
    "database is locked",
    "database table is locked",
)


def _sqlstate(orig: object) -> str | None:
    # psycopg 3 exposes ``sqlstate``; psycopg2 exposes ``pgcode``.
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return str(code) if code else None


def _mysql_errno(orig: object) -> int | None:
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def classify_db_error(exc: SQLAlchemyError) -> VoteError:
    """Return the vote error matching a SQLAlchemy exception.

    The returned exception is not raised; callers chain it with
    ``raise ... from exc`` so the driver error stays attached.
    """
    message = str(exc)
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = _sqlstate(orig)
        if sqlstate == PG_LOCK_NOT_AVAILABLE:
            return LockTimeout(f"Timed out waiting for a row lock: {orig}")
        if sqlstate in {PG_DEADLOCK_DETECTED, PG_SERIALIZATION_FAILURE}:
            return DeadlockDetected(f"Transaction aborted by the database: {orig}")

        errno = _mysql_errno(orig)
        if errno == MYSQL_LOCK_WAIT_TIMEOUT:
            return LockTimeout(f"Timed out waiting for a row lock: {orig}")
        if errno == MYSQL_DEADLOCK:
            return DeadlockDetected(f"Transaction aborted by the database: {orig}")

        lowered = str(orig).lower()
        if any(text in lowered for text in _SQLITE_LOCKED_MESSAGES):
            return LockTimeout(f"Timed out waiting for the database lock: {orig}")
        message = str(orig)
    return StorageFailure(f"Storage failure: {message}")
