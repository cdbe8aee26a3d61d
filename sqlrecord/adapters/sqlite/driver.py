import contextlib
import sqlite3
from typing import Any, Optional

from sqlrecord.adapters.sqlite._types import SqliteConnection
from sqlrecord.core import IsolationLevel, RecordConfig
from sqlrecord.driver import SyncDriverAdapterBase
from sqlrecord.error_codes import SqliteErrorCodes
from sqlrecord.parameters.types import ParameterStyle
from sqlrecord.utils.logging import get_logger

__all__ = ("SqliteCursor", "SqliteDriver", "sqlite_record_config")

logger = get_logger("adapters.sqlite")

sqlite_record_config = RecordConfig(parameter_style=ParameterStyle.QMARK)


class SqliteCursor:
    """Context manager for SQLite cursor management."""

    def __init__(self, connection: "SqliteConnection") -> None:
        self.connection = connection
        self.cursor: Optional[sqlite3.Cursor] = None

    def __enter__(self) -> "sqlite3.Cursor":
        self.cursor = self.connection.cursor()
        return self.cursor

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.cursor is not None:
            # A close failure must not mask the statement's own error.
            with contextlib.suppress(Exception):
                self.cursor.close()


class SqliteDriver(SyncDriverAdapterBase):
    """Driver for the standard library ``sqlite3`` module.

    SQLite has no ``SET TRANSACTION``; every transaction is serializable. The
    requested level only chooses when the write lock is taken: ``REPEATABLE
    READ`` and ``SERIALIZABLE`` take it up front with ``BEGIN IMMEDIATE`` so
    that lock conflicts surface at ``BEGIN`` rather than mid-transaction.
    """

    __slots__ = ()

    error_codes = SqliteErrorCodes()

    @classmethod
    def default_record_config(cls) -> RecordConfig:
        return sqlite_record_config

    def with_cursor(self, connection: "SqliteConnection") -> "SqliteCursor":
        return SqliteCursor(connection)

    def begin_statements(self, isolation_level: IsolationLevel) -> "list[str]":
        if isolation_level in {IsolationLevel.REPEATABLE_READ, IsolationLevel.SERIALIZABLE}:
            return ["BEGIN IMMEDIATE"]
        return ["BEGIN"]

    def commit(self) -> None:
        """Commit, rolling back if the commit fails.

        A failed ``COMMIT`` leaves a SQLite transaction open, unlike
        PostgreSQL where it always ends the transaction.
        """
        try:
            super().commit()
        except Exception:
            if self.connection.in_transaction:
                # The commit error is the one reported.
                with contextlib.suppress(sqlite3.Error):
                    self.connection.rollback()
                logger.debug("Rolled back SQLite transaction after failed commit")
            raise
