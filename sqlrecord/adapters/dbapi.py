"""Generic adapter for any DB-API 2.0 connection.

Hosts that manage their own connections wrap them here. The connection must
not open transactions implicitly: the driver issues ``BEGIN`` itself.

Backends whose errors do not carry SQLSTATE codes need a driver subclass with
a matching table::

    class MySQLDriver(DBAPIDriver):
        error_codes = MySQLErrorCodes()

    config = DBAPIConfig(connect=lambda: pymysql.connect(autocommit=True), driver_type=MySQLDriver)
"""

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional

from sqlrecord.config import NoPoolSyncConfig
from sqlrecord.driver import SyncDriverAdapterBase

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlrecord.core import RecordConfig

__all__ = ("DBAPIConfig", "DBAPIDriver")


class DBAPIDriver(SyncDriverAdapterBase):
    """A generic driver suitable for DB-API compliant connections."""

    __slots__ = ()

    @contextmanager
    def with_cursor(self, connection: Any) -> "Generator[Any, None, None]":
        cursor = connection.cursor()
        try:
            yield cursor
        finally:
            cursor.close()


class DBAPIConfig(NoPoolSyncConfig[Any, DBAPIDriver]):
    """Opens a new connection from ``connect`` for every session."""

    driver_type: "ClassVar[type[DBAPIDriver]]" = DBAPIDriver
    connection_type: "ClassVar[type[Any]]" = object

    def __init__(
        self,
        *,
        connect: "Callable[..., Any]",
        connection_config: "Optional[dict[str, Any]]" = None,
        record_config: "Optional[RecordConfig]" = None,
        driver_type: "Optional[type[DBAPIDriver]]" = None,
    ) -> None:
        """Initialize the configuration.

        Args:
            connect: Factory returning an open connection.
            connection_config: Keyword arguments passed to ``connect``.
            record_config: Statement settings. Defaults to ``$n`` placeholders.
            driver_type: Driver subclass to wrap connections in.
        """
        super().__init__(connection_config=connection_config, record_config=record_config)
        self.connect = connect
        if driver_type is not None:
            self.driver_type = driver_type  # type: ignore[misc]

    def create_connection(self) -> Any:
        return self.connect(**self.connection_config)

    @contextmanager
    def provide_connection(self, *args: Any, **kwargs: Any) -> "Generator[Any, None, None]":
        connection = self.create_connection()
        try:
            yield connection
        finally:
            connection.close()

    @contextmanager
    def provide_session(
        self, *args: Any, record_config: "Optional[RecordConfig]" = None, **kwargs: Any
    ) -> "Generator[DBAPIDriver, None, None]":
        with self.provide_connection(*args, **kwargs) as connection:
            yield self.create_driver(connection, record_config)
