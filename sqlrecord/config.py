from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Optional, TypeVar, Union

from sqlrecord.core import RecordConfig
from sqlrecord.utils.logging import get_logger

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from sqlrecord.driver import SyncDriverAdapterBase


__all__ = ("ConfigT", "DatabaseConfigProtocol", "DriverT", "NoPoolSyncConfig", "SyncDatabaseConfig")

ConfigT = TypeVar("ConfigT", bound="Union[SyncDatabaseConfig[Any, Any, Any], NoPoolSyncConfig[Any, Any]]")

ConnectionT = TypeVar("ConnectionT")
PoolT = TypeVar("PoolT")
DriverT = TypeVar("DriverT", bound="SyncDriverAdapterBase")

logger = get_logger("config")


class DatabaseConfigProtocol(ABC, Generic[ConnectionT, PoolT, DriverT]):
    """Protocol defining the interface for database configurations."""

    __slots__ = ("pool_instance", "record_config")
    driver_type: "ClassVar[type[Any]]"
    connection_type: "ClassVar[type[Any]]"
    supports_connection_pooling: "ClassVar[bool]" = False
    record_config: "RecordConfig"

    def __hash__(self) -> int:
        return id(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.pool_instance == other.pool_instance and self.record_config == other.record_config

    def __repr__(self) -> str:
        return f"{type(self).__name__}(pool_instance={self.pool_instance!r}, record_config={self.record_config!r})"

    @abstractmethod
    def create_connection(self) -> ConnectionT:
        """Create and return a new database connection."""
        raise NotImplementedError

    @abstractmethod
    def provide_connection(self, *args: Any, **kwargs: Any) -> "AbstractContextManager[ConnectionT]":
        """Provide a database connection context manager."""
        raise NotImplementedError

    @abstractmethod
    def provide_session(self, *args: Any, **kwargs: Any) -> "AbstractContextManager[DriverT]":
        """Provide a database session context manager."""
        raise NotImplementedError

    @abstractmethod
    def create_pool(self) -> PoolT:
        """Create and return connection pool."""
        raise NotImplementedError

    @abstractmethod
    def close_pool(self) -> None:
        """Terminate the connection pool."""
        raise NotImplementedError

    @abstractmethod
    def provide_pool(self, *args: Any, **kwargs: Any) -> PoolT:
        """Provide pool instance."""
        raise NotImplementedError

    def create_driver(self, connection: ConnectionT, record_config: "Optional[RecordConfig]" = None) -> DriverT:
        """Wrap a connection in this configuration's driver."""
        return self.driver_type(connection=connection, record_config=record_config or self.record_config)  # type: ignore[no-any-return]


class NoPoolSyncConfig(DatabaseConfigProtocol[ConnectionT, None, DriverT]):
    """Base class for a sync database configurations that do not implement a pool."""

    __slots__ = ("connection_config",)
    supports_connection_pooling: "ClassVar[bool]" = False

    def __init__(
        self, *, connection_config: "Optional[dict[str, Any]]" = None, record_config: "Optional[RecordConfig]" = None
    ) -> None:
        self.pool_instance = None
        self.connection_config = connection_config or {}
        self.record_config = record_config or RecordConfig()

    def create_pool(self) -> None:
        return None

    def close_pool(self) -> None:
        return None

    def provide_pool(self, *args: Any, **kwargs: Any) -> None:
        return None


class SyncDatabaseConfig(DatabaseConfigProtocol[ConnectionT, PoolT, DriverT]):
    """Generic Sync Database Configuration."""

    __slots__ = ("pool_config",)
    supports_connection_pooling: "ClassVar[bool]" = True

    def __init__(
        self,
        *,
        pool_config: "Optional[dict[str, Any]]" = None,
        pool_instance: "Optional[PoolT]" = None,
        record_config: "Optional[RecordConfig]" = None,
    ) -> None:
        self.pool_instance = pool_instance
        self.pool_config = pool_config or {}
        self.record_config = record_config or RecordConfig()

    def create_pool(self) -> PoolT:
        """Create the pool unless one already exists.

        Returns:
            The pool.
        """
        if self.pool_instance is not None:
            return self.pool_instance
        self.pool_instance = self._create_pool()
        logger.debug("Created pool for %s", type(self).__name__)
        return self.pool_instance

    def close_pool(self) -> None:
        self._close_pool()
        self.pool_instance = None
        logger.debug("Closed pool for %s", type(self).__name__)

    def provide_pool(self, *args: Any, **kwargs: Any) -> PoolT:
        """Provide pool instance."""
        if self.pool_instance is None:
            self.pool_instance = self.create_pool()
        return self.pool_instance

    @abstractmethod
    def _create_pool(self) -> PoolT:
        """Actual pool creation implementation."""
        raise NotImplementedError

    @abstractmethod
    def _close_pool(self) -> None:
        """Actual pool destruction implementation."""
        raise NotImplementedError
