import atexit
from contextlib import contextmanager
from typing import TYPE_CHECKING, Annotated, Any, Callable, Optional, Union

from sqlrecord.config import ConfigT, DatabaseConfigProtocol
from sqlrecord.exceptions import ImproperConfigurationError
from sqlrecord.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlrecord.core import IsolationLevel
    from sqlrecord.driver import RecordTransaction, SyncDriverAdapterBase
    from sqlrecord.typing import ResultT

__all__ = ("SQLRecord",)

logger = get_logger()


class SQLRecord:
    """Registry of database configurations and their pools.

    Replaces a process-wide connection global: each configuration is added
    explicitly, sessions are requested by key, and pools are closed at exit.

    Example:
        >>> db = SQLRecord()
        >>> sqlite = db.add_config(SqliteConfig(pool_config={"database": "app.db"}))
        >>> with db.provide_session(sqlite) as driver:
        ...     driver.execute("DELETE FROM user WHERE id = ?", 1)
    """

    __slots__ = ("_configs",)

    def __init__(self) -> None:
        self._configs: dict[Any, DatabaseConfigProtocol[Any, Any, Any]] = {}
        atexit.register(self._cleanup_pools)

    def _cleanup_pools(self) -> None:
        """Close every open pool at program exit."""
        cleaned = 0
        for config in self._configs.values():
            if not config.supports_connection_pooling or config.pool_instance is None:
                continue
            try:
                config.close_pool()
                cleaned += 1
            except Exception:
                # Remaining pools are still closed.
                logger.exception("Failed to close pool for %s", type(config).__name__)
        self._configs.clear()
        if cleaned:
            logger.debug("Closed %d pool(s) at exit", cleaned)

    def add_config(self, config: "ConfigT") -> "type[ConfigT]":
        """Add a new configuration to the manager.

        Returns:
            A unique type key that can be used to retrieve the configuration later.
        """
        # Two configs of the same class get distinct keys through their ids.
        key = Annotated[type(config), id(config)]  # type: ignore[valid-type]
        self._configs[key] = config
        return key  # type: ignore[return-value]

    def get_config(self, name: "Union[type[ConfigT], Any]") -> "ConfigT":
        """Retrieve a configuration by its key.

        Raises:
            ImproperConfigurationError: If no configuration is registered under ``name``.
        """
        config = self._configs.get(name)
        if config is None:
            msg = f"No configuration found for {name}"
            raise ImproperConfigurationError(msg)
        return config  # type: ignore[return-value]

    def _resolve(self, name: Any) -> "DatabaseConfigProtocol[Any, Any, Any]":
        if isinstance(name, DatabaseConfigProtocol):
            return name
        return self.get_config(name)

    def provide_connection(self, name: Any, *args: Any, **kwargs: Any) -> Any:
        return self._resolve(name).provide_connection(*args, **kwargs)

    def provide_session(self, name: Any, *args: Any, **kwargs: Any) -> Any:
        """Provide a driver session for a configuration key or instance."""
        return self._resolve(name).provide_session(*args, **kwargs)

    def get_pool(self, name: Any) -> Any:
        return self._resolve(name).provide_pool()

    def close_pool(self, name: Any) -> None:
        self._resolve(name).close_pool()

    def close_all_pools(self) -> None:
        for config in self._configs.values():
            if config.supports_connection_pooling and config.pool_instance is not None:
                config.close_pool()

    def transact(
        self,
        name: Any,
        work: "Callable[[RecordTransaction], ResultT]",
        isolation_level: "Optional[Union[IsolationLevel, str]]" = None,
    ) -> "ResultT":
        """Run a unit of work in a transaction on a fresh session, retrying on conflicts."""
        driver: SyncDriverAdapterBase
        with self.provide_session(name) as driver:
            return driver.transact(work, isolation_level)

    @contextmanager
    def begin(
        self, name: Any, isolation_level: "Optional[Union[IsolationLevel, str]]" = None
    ) -> "Generator[RecordTransaction, None, None]":
        """Open a session and a transaction on it. Unfinalized transactions roll back on exit."""
        with self.provide_session(name) as driver, driver.begin(isolation_level) as tx:
            yield tx
