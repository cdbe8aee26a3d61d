"""Backend error-code lookup tables.

Each table recognises the errors raised by one family of drivers and places
them in the :class:`~sqlrecord.exceptions.ErrorKind` taxonomy. Tables are
stateless; drivers hold one as a class attribute.
"""

import re
import sqlite3
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Final, Optional

from sqlrecord.exceptions import ErrorKind
from sqlrecord.utils.type_guards import has_errno, has_pgcode, has_sqlite_errorcode, has_sqlstate

__all__ = ("ErrorCodeTable", "MySQLErrorCodes", "SQLStateErrorCodes", "SqliteErrorCodes")

PG_UNIQUE_VIOLATION: Final = "23505"
PG_SERIALIZATION_FAILURE: Final = "40001"

SQLITE_BUSY: Final = 5
SQLITE_LOCKED: Final = 6
SQLITE_LOCKED_SHAREDCACHE: Final = 262
SQLITE_BUSY_SNAPSHOT: Final = 517
SQLITE_CONSTRAINT_PRIMARYKEY: Final = 1555
SQLITE_CONSTRAINT_UNIQUE: Final = 2067

MYSQL_ER_DUP_ENTRY: Final = 1062
MYSQL_ER_LOCK_DEADLOCK: Final = 1213


class ErrorCodeTable(ABC):
    """Recognises one backend's errors."""

    error_types: "ClassVar[tuple[type[BaseException], ...]]" = (Exception,)
    """Exception classes raised by the backend's driver."""

    def is_driver_error(self, error: BaseException) -> bool:
        """Whether the error was raised by this backend and is recognised by the table."""
        return isinstance(error, self.error_types) and self.classify(error) is not None

    @abstractmethod
    def classify(self, error: BaseException) -> "Optional[ErrorKind]":
        """Return the kind of a backend error, or ``None`` when the error is not recognised."""

    def error_code(self, error: BaseException) -> "Optional[str]":
        return None

    def constraint_name(self, error: BaseException) -> "Optional[str]":
        return None

    def message(self, error: BaseException) -> str:
        return str(error)


class SQLStateErrorCodes(ErrorCodeTable):
    """PostgreSQL-wire backends reporting five-character SQLSTATE codes."""

    codes: "ClassVar[dict[str, ErrorKind]]" = {
        PG_UNIQUE_VIOLATION: ErrorKind.DUPLICATE_ENTRY,
        PG_SERIALIZATION_FAILURE: ErrorKind.SERIALIZATION_CONFLICT,
    }

    def error_code(self, error: BaseException) -> "Optional[str]":
        if has_sqlstate(error):
            return str(error.sqlstate)
        if has_pgcode(error):
            return str(error.pgcode)
        return None

    def classify(self, error: BaseException) -> "Optional[ErrorKind]":
        code = self.error_code(error)
        if code is None:
            return None
        return self.codes.get(code, ErrorKind.OTHER)

    def constraint_name(self, error: BaseException) -> "Optional[str]":
        diag = getattr(error, "diag", None)
        return getattr(diag, "constraint_name", None) if diag is not None else None

    def message(self, error: BaseException) -> str:
        diag = getattr(error, "diag", None)
        primary = getattr(diag, "message_primary", None) if diag is not None else None
        return primary or str(error)


class SqliteErrorCodes(ErrorCodeTable):
    """The standard library ``sqlite3`` driver.

    Extended result codes are only exposed from Python 3.11; older
    interpreters fall back to matching the message text.
    """

    error_types = (sqlite3.Error,)
    codes: "ClassVar[dict[int, ErrorKind]]" = {
        SQLITE_CONSTRAINT_UNIQUE: ErrorKind.DUPLICATE_ENTRY,
        SQLITE_CONSTRAINT_PRIMARYKEY: ErrorKind.DUPLICATE_ENTRY,
        SQLITE_BUSY: ErrorKind.SERIALIZATION_CONFLICT,
        SQLITE_BUSY_SNAPSHOT: ErrorKind.SERIALIZATION_CONFLICT,
        # Shared-cache databases lock per table and report it as LOCKED, not BUSY.
        SQLITE_LOCKED: ErrorKind.SERIALIZATION_CONFLICT,
        SQLITE_LOCKED_SHAREDCACHE: ErrorKind.SERIALIZATION_CONFLICT,
    }
    _constraint_regex: "ClassVar[re.Pattern[str]]" = re.compile(r"UNIQUE constraint failed: (.+)$")
    _lock_messages: "ClassVar[tuple[str, ...]]" = (
        "database is locked",
        "database table is locked",
        "database schema is locked",
    )

    def error_code(self, error: BaseException) -> "Optional[str]":
        if has_sqlite_errorcode(error):
            return str(error.sqlite_errorcode)
        return None

    def classify(self, error: BaseException) -> "Optional[ErrorKind]":
        if not isinstance(error, self.error_types):
            return None
        if has_sqlite_errorcode(error) and error.sqlite_errorcode in self.codes:
            return self.codes[error.sqlite_errorcode]
        text = str(error)
        if "UNIQUE constraint failed" in text:
            return ErrorKind.DUPLICATE_ENTRY
        if any(message in text for message in self._lock_messages):
            return ErrorKind.SERIALIZATION_CONFLICT
        return ErrorKind.OTHER

    def constraint_name(self, error: BaseException) -> "Optional[str]":
        match = self._constraint_regex.search(str(error))
        return match.group(1) if match else None


class MySQLErrorCodes(ErrorCodeTable):
    """MySQL and MariaDB connectors exposing numeric server errors.

    Provided for hosts that bring their own MySQL connection; the driver is not
    a dependency.
    """

    codes: "ClassVar[dict[int, ErrorKind]]" = {
        MYSQL_ER_DUP_ENTRY: ErrorKind.DUPLICATE_ENTRY,
        MYSQL_ER_LOCK_DEADLOCK: ErrorKind.SERIALIZATION_CONFLICT,
    }
    _constraint_regex: "ClassVar[re.Pattern[str]]" = re.compile(r"Duplicate entry .* for key '(.+)'")

    def _errno(self, error: BaseException) -> "Optional[int]":
        if has_errno(error):
            return error.errno
        args: Any = getattr(error, "args", ())
        if args and isinstance(args[0], int):
            return int(args[0])
        return None

    def error_code(self, error: BaseException) -> "Optional[str]":
        errno = self._errno(error)
        return None if errno is None else str(errno)

    def classify(self, error: BaseException) -> "Optional[ErrorKind]":
        errno = self._errno(error)
        if errno is None:
            return None
        return self.codes.get(errno, ErrorKind.OTHER)

    def constraint_name(self, error: BaseException) -> "Optional[str]":
        match = self._constraint_regex.search(self.message(error))
        return match.group(1) if match else None

    def message(self, error: BaseException) -> str:
        args: Any = getattr(error, "args", ())
        if len(args) > 1 and isinstance(args[1], str):
            return args[1]
        return str(error)
