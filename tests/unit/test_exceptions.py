import sqlite3
from typing import Any, Optional

import pytest

from sqlrecord.error_codes import MySQLErrorCodes, SQLStateErrorCodes, SqliteErrorCodes
from sqlrecord.exceptions import (
    DatabaseError,
    DuplicateEntryError,
    ErrorKind,
    Failure,
    ImproperConfigurationError,
    IntegrityError,
    NotFoundError,
    RowScanError,
    SerializationConflictError,
    SQLParsingError,
    SQLRecordError,
    TransactionFinalizationError,
    classify_error,
    map_database_error,
)


class FakeDiag:
    def __init__(self, constraint_name: Optional[str] = None, message_primary: Optional[str] = None) -> None:
        self.constraint_name = constraint_name
        self.message_primary = message_primary


class FakePgError(Exception):
    """Mimics a psycopg error: a SQLSTATE plus a diagnostic block."""

    def __init__(self, message: str, sqlstate: Optional[str], diag: Optional[FakeDiag] = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate
        self.diag = diag or FakeDiag()


class FakeMySQLError(Exception):
    """Mimics PyMySQL: ``args`` is ``(errno, message)``."""


def sqlite_error(message: str, errorcode: Optional[int] = None) -> sqlite3.Error:
    error = sqlite3.IntegrityError(message)
    if errorcode is not None:
        error.sqlite_errorcode = errorcode  # type: ignore[attr-defined]
    return error


def test_exception_hierarchy() -> None:
    assert issubclass(DuplicateEntryError, IntegrityError)
    assert issubclass(IntegrityError, DatabaseError)
    assert issubclass(SerializationConflictError, DatabaseError)
    assert issubclass(RowScanError, DatabaseError)
    assert issubclass(NotFoundError, DatabaseError)
    assert issubclass(DatabaseError, SQLRecordError)
    assert issubclass(SQLParsingError, SQLRecordError)
    assert issubclass(ImproperConfigurationError, SQLRecordError)
    assert issubclass(TransactionFinalizationError, SQLRecordError)


@pytest.mark.parametrize(
    ("error_type", "kind"),
    [
        (DuplicateEntryError, ErrorKind.DUPLICATE_ENTRY),
        (SerializationConflictError, ErrorKind.SERIALIZATION_CONFLICT),
        (DatabaseError, ErrorKind.OTHER),
        (RowScanError, ErrorKind.OTHER),
        (SQLParsingError, ErrorKind.PARSE_FAILURE),
        (ImproperConfigurationError, ErrorKind.CONFIGURATION),
    ],
)
def test_error_kinds(error_type: "type[SQLRecordError]", kind: ErrorKind) -> None:
    assert error_type.kind is kind
    assert classify_error(error_type("boom")) is kind


def test_only_serialization_conflicts_are_retryable() -> None:
    assert [kind for kind in ErrorKind if kind.is_retryable] == [ErrorKind.SERIALIZATION_CONFLICT]
    assert str(ErrorKind.DUPLICATE_ENTRY) == "duplicate_entry"


def test_exception_detail() -> None:
    error = ImproperConfigurationError("Bad record")
    assert str(error) == "Bad record"
    assert error.detail == "Bad record"
    assert repr(error) == "ImproperConfigurationError - Bad record"


def test_parsing_error_carries_position() -> None:
    error = SQLParsingError("Unterminated string literal at position 7", sql="SELECT 'x", position=7)

    assert error.position == 7
    assert error.sql == "SELECT 'x"
    assert "SQL: SELECT 'x" in str(error)


def test_exception_chaining() -> None:
    with pytest.raises(DuplicateEntryError) as exc_info:
        try:
            raise ValueError("Original error")
        except ValueError as e:
            raise DuplicateEntryError("Mapped error") from e

    assert isinstance(exc_info.value.__cause__, ValueError)


def test_unknown_errors_classify_as_other() -> None:
    assert classify_error(ValueError("x")) is ErrorKind.OTHER
    assert classify_error(ValueError("x"), SQLStateErrorCodes()) is ErrorKind.OTHER


@pytest.mark.parametrize(
    ("sqlstate", "kind", "error_type"),
    [
        ("23505", ErrorKind.DUPLICATE_ENTRY, DuplicateEntryError),
        ("40001", ErrorKind.SERIALIZATION_CONFLICT, SerializationConflictError),
        ("40P01", ErrorKind.OTHER, DatabaseError),
        ("42601", ErrorKind.OTHER, DatabaseError),
    ],
)
def test_sqlstate_classification(sqlstate: str, kind: ErrorKind, error_type: "type[DatabaseError]") -> None:
    table = SQLStateErrorCodes()
    error = FakePgError("raw", sqlstate, FakeDiag(constraint_name="user_email_key", message_primary="primary"))

    assert table.classify(error) is kind
    mapped = map_database_error(error, table)

    assert type(mapped) is error_type
    assert isinstance(mapped, DatabaseError)
    assert mapped.code == sqlstate
    assert mapped.backend_message == "primary"
    assert str(mapped) == f"{kind}: primary"


def test_duplicate_entry_carries_constraint_name() -> None:
    error = FakePgError("dup", "23505", FakeDiag(constraint_name="user_email_key"))

    mapped = map_database_error(error, SQLStateErrorCodes())

    assert isinstance(mapped, DuplicateEntryError)
    assert mapped.constraint == "user_email_key"
    assert mapped.backend_message == "dup"


def test_constraint_name_only_for_duplicates() -> None:
    error = FakePgError("conflict", "40001", FakeDiag(constraint_name="ignored"))

    mapped = map_database_error(error, SQLStateErrorCodes())

    assert isinstance(mapped, SerializationConflictError)
    assert mapped.constraint is None


def test_map_database_error_returns_mapped_errors_unchanged() -> None:
    error = SerializationConflictError("already mapped")
    assert map_database_error(error, SQLStateErrorCodes()) is error


def test_map_database_error_without_table() -> None:
    mapped = map_database_error(RuntimeError("driver exploded"))

    assert type(mapped) is DatabaseError
    assert mapped.backend_message == "driver exploded"


@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (sqlite_error("UNIQUE constraint failed: user.email", 2067), ErrorKind.DUPLICATE_ENTRY),
        (sqlite_error("UNIQUE constraint failed: user.id", 1555), ErrorKind.DUPLICATE_ENTRY),
        (sqlite_error("UNIQUE constraint failed: user.email"), ErrorKind.DUPLICATE_ENTRY),
        (sqlite3.OperationalError("database is locked"), ErrorKind.SERIALIZATION_CONFLICT),
        (sqlite_error("busy", 5), ErrorKind.SERIALIZATION_CONFLICT),
        (sqlite_error("busy snapshot", 517), ErrorKind.SERIALIZATION_CONFLICT),
        (sqlite_error("database table is locked", 6), ErrorKind.SERIALIZATION_CONFLICT),
        (sqlite_error("database table is locked", 262), ErrorKind.SERIALIZATION_CONFLICT),
        (sqlite3.OperationalError("database table is locked: user"), ErrorKind.SERIALIZATION_CONFLICT),
        (sqlite3.OperationalError("database schema is locked: main"), ErrorKind.SERIALIZATION_CONFLICT),
        (sqlite3.OperationalError("no such table: user"), ErrorKind.OTHER),
    ],
)
def test_sqlite_classification(error: sqlite3.Error, kind: ErrorKind) -> None:
    assert SqliteErrorCodes().classify(error) is kind


def test_sqlite_ignores_foreign_errors() -> None:
    table = SqliteErrorCodes()

    assert table.classify(ValueError("database is locked")) is None
    assert not table.is_driver_error(ValueError("database is locked"))
    assert table.is_driver_error(sqlite3.OperationalError("x"))


def test_sqlite_constraint_name() -> None:
    mapped = map_database_error(sqlite_error("UNIQUE constraint failed: user.email", 2067), SqliteErrorCodes())

    assert isinstance(mapped, DuplicateEntryError)
    assert mapped.constraint == "user.email"
    assert mapped.code == "2067"


@pytest.mark.parametrize(
    ("args", "kind", "constraint"),
    [
        ((1062, "Duplicate entry 'a@example.com' for key 'user.email'"), ErrorKind.DUPLICATE_ENTRY, "user.email"),
        ((1213, "Deadlock found when trying to get lock"), ErrorKind.SERIALIZATION_CONFLICT, None),
        ((1146, "Table 'app.nope' doesn't exist"), ErrorKind.OTHER, None),
    ],
)
def test_mysql_classification(args: "tuple[Any, ...]", kind: ErrorKind, constraint: Optional[str]) -> None:
    table = MySQLErrorCodes()
    error = FakeMySQLError(*args)

    assert table.classify(error) is kind
    mapped = map_database_error(error, table)
    assert mapped.kind is kind
    assert getattr(mapped, "constraint", None) == constraint


def test_failure_from_exception() -> None:
    error = FakePgError("conflict", "40001")

    failure = Failure.from_exception(error, SQLStateErrorCodes())

    assert failure.kind is ErrorKind.SERIALIZATION_CONFLICT
    assert failure.is_retryable
    with pytest.raises(FakePgError):
        failure.raise_error()


def test_failure_defaults_to_other() -> None:
    failure = Failure(ValueError("nope"))

    assert failure.kind is ErrorKind.OTHER
    assert not failure.is_retryable
