"""Psycopg database configuration using TypedDict for better maintainability."""

import contextlib
from typing import TYPE_CHECKING, Any, ClassVar, Optional, TypedDict, Union

from psycopg import connect
from psycopg_pool import ConnectionPool
from typing_extensions import NotRequired

from sqlrecord.adapters.psycopg._types import PsycopgSyncConnection
from sqlrecord.adapters.psycopg.driver import PsycopgSyncDriver, psycopg_record_config
from sqlrecord.config import SyncDatabaseConfig
from sqlrecord.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from sqlrecord.core import RecordConfig

logger = get_logger("adapters.psycopg")

__all__ = ("PsycopgConfig", "PsycopgConnectionParams", "PsycopgPoolParams")

_POOL_KEYS = frozenset(
    {
        "min_size",
        "max_size",
        "name",
        "timeout",
        "max_waiting",
        "max_lifetime",
        "max_idle",
        "reconnect_timeout",
        "num_workers",
        "configure",
    }
)


class PsycopgConnectionParams(TypedDict, total=False):
    """Psycopg connection parameters."""

    conninfo: NotRequired[str]
    """Connection string in libpq format."""
    host: NotRequired[str]
    port: NotRequired[int]
    user: NotRequired[str]
    password: NotRequired[str]
    dbname: NotRequired[str]
    connect_timeout: NotRequired[float]
    options: NotRequired[str]
    application_name: NotRequired[str]
    sslmode: NotRequired[str]


class PsycopgPoolParams(PsycopgConnectionParams, total=False):
    """Psycopg pool parameters.

    Connection parameters plus everything ``psycopg_pool.ConnectionPool`` accepts.
    """

    min_size: NotRequired[int]
    """Minimum number of connections in the pool."""
    max_size: NotRequired[int]
    """Maximum number of connections in the pool."""
    name: NotRequired[str]
    timeout: NotRequired[float]
    """Timeout for acquiring connections."""
    max_waiting: NotRequired[int]
    max_lifetime: NotRequired[float]
    max_idle: NotRequired[float]
    reconnect_timeout: NotRequired[float]
    num_workers: NotRequired[int]
    configure: NotRequired["Callable[[PsycopgSyncConnection], None]"]
    """Callback to configure new connections."""


class PsycopgConfig(SyncDatabaseConfig[PsycopgSyncConnection, ConnectionPool, PsycopgSyncDriver]):
    """Configuration for psycopg connections backed by ``psycopg_pool``.

    Connections are always opened in autocommit mode; the driver opens
    transactions explicitly.
    """

    driver_type: "ClassVar[type[PsycopgSyncDriver]]" = PsycopgSyncDriver
    connection_type: "ClassVar[type[PsycopgSyncConnection]]" = PsycopgSyncConnection

    def __init__(
        self,
        *,
        pool_config: "Optional[Union[PsycopgPoolParams, dict[str, Any]]]" = None,
        pool_instance: "Optional[ConnectionPool]" = None,
        record_config: "Optional[RecordConfig]" = None,
    ) -> None:
        super().__init__(
            pool_config=dict(pool_config or {}),
            pool_instance=pool_instance,
            record_config=record_config or psycopg_record_config,
        )

    def _connection_kwargs(self) -> "dict[str, Any]":
        kwargs = {k: v for k, v in self.pool_config.items() if k not in _POOL_KEYS and k != "conninfo"}
        # The driver issues BEGIN itself; psycopg must not open implicit transactions.
        kwargs["autocommit"] = True
        return kwargs

    def _create_pool(self) -> ConnectionPool:
        logger.info("Creating psycopg connection pool")
        pool_kwargs = {k: v for k, v in self.pool_config.items() if k in _POOL_KEYS}
        pool = ConnectionPool(
            conninfo=self.pool_config.get("conninfo", ""), kwargs=self._connection_kwargs(), open=False, **pool_kwargs
        )
        # Fail at configuration time rather than on the first query.
        try:
            pool.open(wait=True)
        except Exception:
            logger.exception("Failed to open psycopg connection pool")
            pool.close()
            raise
        return pool

    def _close_pool(self) -> None:
        if not self.pool_instance:
            return
        logger.info("Closing psycopg connection pool")
        self.pool_instance.close()

    def create_connection(self) -> PsycopgSyncConnection:
        """Create a single connection outside the pool."""
        return connect(self.pool_config.get("conninfo", ""), **self._connection_kwargs())

    @contextlib.contextmanager
    def provide_connection(self, *args: Any, **kwargs: Any) -> "Generator[PsycopgSyncConnection, None, None]":
        """Provide a pooled connection context manager.

        Yields:
            A psycopg Connection instance.
        """
        pool = self.provide_pool()
        with pool.connection() as connection:
            yield connection

    @contextlib.contextmanager
    def provide_session(
        self, *args: Any, record_config: "Optional[RecordConfig]" = None, **kwargs: Any
    ) -> "Generator[PsycopgSyncDriver, None, None]":
        """Provide a driver session context manager.

        Yields:
            A PsycopgSyncDriver instance.
        """
        with self.provide_connection(*args, **kwargs) as connection:
            yield self.create_driver(connection, record_config)
