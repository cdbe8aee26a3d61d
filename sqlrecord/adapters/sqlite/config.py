"""SQLite database configuration with thread-local connections."""

import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ClassVar, Optional, TypedDict, Union, cast

from typing_extensions import NotRequired

from sqlrecord.adapters.sqlite._types import SqliteConnection
from sqlrecord.adapters.sqlite.driver import SqliteDriver, sqlite_record_config
from sqlrecord.adapters.sqlite.pool import SqliteConnectionPool
from sqlrecord.config import SyncDatabaseConfig
from sqlrecord.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlrecord.core import RecordConfig

logger = get_logger("adapters.sqlite")


class SqliteConnectionParams(TypedDict, total=False):
    """SQLite connection parameters."""

    database: NotRequired[str]
    timeout: NotRequired[float]
    detect_types: NotRequired[int]
    check_same_thread: NotRequired[bool]
    cached_statements: NotRequired[int]
    uri: NotRequired[bool]
    enable_wal: NotRequired[bool]


__all__ = ("SqliteConfig", "SqliteConnectionParams")


class SqliteConfig(SyncDatabaseConfig[SqliteConnection, SqliteConnectionPool, SqliteDriver]):
    """SQLite configuration with thread-local connections."""

    driver_type: "ClassVar[type[SqliteDriver]]" = SqliteDriver
    connection_type: "ClassVar[type[SqliteConnection]]" = SqliteConnection

    def __init__(
        self,
        *,
        pool_config: "Optional[Union[SqliteConnectionParams, dict[str, Any]]]" = None,
        pool_instance: "Optional[SqliteConnectionPool]" = None,
        record_config: "Optional[RecordConfig]" = None,
    ) -> None:
        """Initialize SQLite configuration.

        An in-memory database is shared by every thread using this
        configuration, so each configuration gets a uniquely named one.

        Args:
            pool_config: Connection settings plus ``enable_wal``.
            pool_instance: Pre-created pool instance
            record_config: Statement settings. Defaults to ``?`` markers passed through.
        """
        pool_config = dict(pool_config or {})
        if "database" not in pool_config or pool_config["database"] == ":memory:":
            pool_config["database"] = f"file:memory_{uuid.uuid4().hex}?mode=memory&cache=shared"
            pool_config["uri"] = True
        elif str(pool_config["database"]).startswith("file:") and not pool_config.get("uri"):
            logger.debug("Database URI detected (%s); enabling uri mode", pool_config["database"])
            pool_config["uri"] = True
        pool_config.setdefault("check_same_thread", False)

        super().__init__(
            pool_config=cast("dict[str, Any]", pool_config),
            pool_instance=pool_instance,
            record_config=record_config or sqlite_record_config,
        )

    def _get_connection_config_dict(self) -> "dict[str, Any]":
        """Get connection configuration as plain dict for pool creation."""
        excluded_keys = {"enable_wal"}
        return {k: v for k, v in self.pool_config.items() if v is not None and k not in excluded_keys}

    def _create_pool(self) -> SqliteConnectionPool:
        return SqliteConnectionPool(
            connection_parameters=self._get_connection_config_dict(),
            enable_wal=self.pool_config.get("enable_wal", True),
        )

    def _close_pool(self) -> None:
        if self.pool_instance:
            self.pool_instance.close()

    def create_connection(self) -> SqliteConnection:
        """Get the calling thread's connection from the pool."""
        return self.provide_pool().acquire()

    @contextmanager
    def provide_connection(self, *args: "Any", **kwargs: "Any") -> "Generator[SqliteConnection, None, None]":
        """Provide a SQLite connection context manager.

        Yields:
            SqliteConnection: A thread-local connection
        """
        pool = self.provide_pool()
        with pool.get_connection() as connection:
            yield connection

    @contextmanager
    def provide_session(
        self, *args: "Any", record_config: "Optional[RecordConfig]" = None, **kwargs: "Any"
    ) -> "Generator[SqliteDriver, None, None]":
        """Provide a SQLite driver session.

        Yields:
            SqliteDriver: A driver instance with thread-local connection
        """
        with self.provide_connection(*args, **kwargs) as connection:
            yield self.create_driver(connection, record_config)
