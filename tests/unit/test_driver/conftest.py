"""Fixtures for driver unit tests.

``ScriptedConnection`` is a DB-API connection that records every statement and
raises queued errors for chosen statements. Updates are staged until ``COMMIT``
and discarded on ``ROLLBACK`` or on a failed ``COMMIT``, which ends the
transaction the way PostgreSQL does.
"""

from collections import defaultdict
from typing import Any, Callable, Optional

import pytest

from sqlrecord.adapters.dbapi import DBAPIDriver


class PgError(Exception):
    """Driver error carrying a SQLSTATE."""

    def __init__(self, message: str, sqlstate: str) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


class ScriptedCursor:
    def __init__(self, connection: "ScriptedConnection") -> None:
        self.connection = connection
        self.description: Optional[list[tuple[Any, ...]]] = None
        self.rowcount = -1
        self.lastrowid: Optional[int] = None
        self.closed = False
        self._rows: list[tuple[Any, ...]] = []

    def execute(self, sql: str, parameters: "tuple[Any, ...]" = ()) -> None:
        self.connection.record(sql, parameters)
        if sql.startswith("SELECT"):
            self._rows = list(self.connection.rows)
            self.description = [(name, None, None, None, None, None, None) for name in self.connection.columns]
        else:
            self.rowcount = 1
            self.lastrowid = len(self.connection.statements)

    def fetchone(self) -> "Optional[tuple[Any, ...]]":
        return self._rows.pop(0) if self._rows else None

    def close(self) -> None:
        self.closed = True
        self.connection.closed_cursors += 1


class ScriptedConnection:
    def __init__(self) -> None:
        self.statements: list[str] = []
        self.parameters: list[tuple[Any, ...]] = []
        self.failures: dict[str, list[BaseException]] = defaultdict(list)
        self.rows: list[tuple[Any, ...]] = []
        self.columns: list[str] = []
        self.pending: list[tuple[Any, ...]] = []
        self.committed: list[tuple[Any, ...]] = []
        self.closed_cursors = 0
        self.closed = False

    def fail(self, sql: str, *errors: BaseException) -> None:
        """Queue errors raised by the next executions of ``sql``."""
        self.failures[sql].extend(errors)

    def record(self, sql: str, parameters: "tuple[Any, ...]") -> None:
        self.statements.append(sql)
        self.parameters.append(parameters)
        if self.failures.get(sql):
            if sql == "COMMIT":
                self.pending.clear()
            raise self.failures[sql].pop(0)
        if sql == "COMMIT":
            self.committed.extend(self.pending)
            self.pending.clear()
        elif sql == "ROLLBACK":
            self.pending.clear()
        elif sql.startswith(("INSERT", "UPDATE")):
            self.pending.append(parameters)

    def cursor(self) -> ScriptedCursor:
        return ScriptedCursor(self)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def connection() -> ScriptedConnection:
    return ScriptedConnection()


@pytest.fixture
def driver(connection: ScriptedConnection) -> DBAPIDriver:
    return DBAPIDriver(connection)


@pytest.fixture
def pg_error() -> "Callable[[str, str], PgError]":
    """Build a driver error for a SQLSTATE."""
    return PgError
