"""Thread-local SQLite connection pool."""

import sqlite3
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlrecord.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = ("SqliteConnectionPool",)

logger = get_logger("adapters.sqlite.pool")


class SqliteConnectionPool:
    """One connection per thread, opened on first use and reused afterwards.

    Connections are opened in autocommit mode (``isolation_level=None``) so the
    driver controls transactions with explicit statements.
    """

    __slots__ = ("_closed", "_connection_parameters", "_connections", "_lock", "_thread_local", "enable_wal")

    def __init__(self, connection_parameters: "dict[str, Any]", enable_wal: bool = True) -> None:
        self._connection_parameters = {**connection_parameters, "isolation_level": None}
        self._thread_local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._lock = threading.Lock()
        self._closed = False
        self.enable_wal = enable_wal

    def __repr__(self) -> str:
        return f"SqliteConnectionPool(database={self._connection_parameters.get('database')!r}, size={self.size()})"

    def _create_connection(self) -> sqlite3.Connection:
        connection = sqlite3.connect(**self._connection_parameters)
        # WAL lets readers proceed while another thread holds the write lock.
        if self.enable_wal and not self._is_memory_database():
            connection.execute("PRAGMA journal_mode = WAL")
        connection.execute("PRAGMA foreign_keys = ON")
        return connection

    def _is_memory_database(self) -> bool:
        database = str(self._connection_parameters.get("database", ""))
        return database == ":memory:" or "mode=memory" in database

    def acquire(self) -> sqlite3.Connection:
        """Return the calling thread's connection, opening it if needed."""
        if self._closed:
            msg = "Cannot acquire a connection from a closed pool"
            raise RuntimeError(msg)
        # No lock on the fast path: only the owning thread sees this attribute.
        connection = getattr(self._thread_local, "connection", None)
        if connection is None:
            connection = self._create_connection()
            self._thread_local.connection = connection
            with self._lock:
                self._connections.append(connection)
            logger.debug("Opened SQLite connection for thread %s", threading.get_ident())
        return connection

    @contextmanager
    def get_connection(self) -> "Generator[sqlite3.Connection, None, None]":
        yield self.acquire()

    def size(self) -> int:
        return len(self._connections)

    def close(self) -> None:
        """Close every connection opened by the pool."""
        with self._lock:
            connections, self._connections = self._connections, []
            self._closed = True
        for connection in connections:
            connection.close()
        # Drop references held by other threads' locals.
        self._thread_local = threading.local()
        logger.debug("Closed %d SQLite connection(s)", len(connections))
