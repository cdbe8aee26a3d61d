"""SQLite adapter for SQLRecord."""

from sqlrecord.adapters.sqlite._types import SqliteConnection
from sqlrecord.adapters.sqlite.config import SqliteConfig, SqliteConnectionParams
from sqlrecord.adapters.sqlite.driver import SqliteCursor, SqliteDriver
from sqlrecord.adapters.sqlite.pool import SqliteConnectionPool

__all__ = (
    "SqliteConfig",
    "SqliteConnection",
    "SqliteConnectionParams",
    "SqliteConnectionPool",
    "SqliteCursor",
    "SqliteDriver",
)
