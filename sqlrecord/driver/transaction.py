"""Transactions and the retrying unit-of-work executor."""

from typing import TYPE_CHECKING, Any, Callable, NoReturn, Optional, Union

from sqlrecord.core import IsolationLevel
from sqlrecord.exceptions import (
    Failure,
    ImproperConfigurationError,
    SQLRecordError,
    TransactionFinalizationError,
    map_database_error,
)
from sqlrecord.utils.logging import get_logger, retry_fields

if TYPE_CHECKING:
    from types import TracebackType

    from sqlrecord.driver._common import ExecutionResult
    from sqlrecord.driver._rows import RecordRow, RecordRows
    from sqlrecord.driver._sync import SyncDriverAdapterBase
    from sqlrecord.typing import RecordT, ResultT, WorkResult

__all__ = ("RecordTransaction", "run_in_transaction")

logger = get_logger("driver.transaction")


class RecordTransaction:
    """An open transaction on a driver's connection.

    Once committed or rolled back the transaction is finalized and issues no
    further statements. Leaving a ``with`` block rolls back a transaction that
    was not finalized.
    """

    __slots__ = ("driver", "finalized", "isolation_level")

    def __init__(self, driver: "SyncDriverAdapterBase", isolation_level: IsolationLevel) -> None:
        self.driver = driver
        self.isolation_level = isolation_level
        self.finalized = False

    def __repr__(self) -> str:
        return f"RecordTransaction(isolation_level={self.isolation_level!s}, finalized={self.finalized})"

    def __enter__(self) -> "RecordTransaction":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.finalize()

    def _ensure_open(self, action: str) -> None:
        if self.finalized:
            msg = f"Cannot {action}: transaction already finalized"
            raise ImproperConfigurationError(msg)

    def execute(self, sql: str, *args: Any) -> "ExecutionResult":
        self._ensure_open("execute")
        return self.driver.execute(sql, *args)

    def query_row(self, sql: str, *args: Any) -> "RecordRow":
        self._ensure_open("query")
        return self.driver.query_row(sql, *args)

    def query(self, sql: str, *args: Any) -> "RecordRows":
        self._ensure_open("query")
        return self.driver.query(sql, *args)

    def query_one(self, record_type: "type[RecordT]", sql: str, *args: Any) -> "RecordT":
        self._ensure_open("query")
        return self.driver.query_one(record_type, sql, *args)

    def query_all(self, record_type: "type[RecordT]", sql: str, *args: Any) -> "list[RecordT]":
        self._ensure_open("query")
        return self.driver.query_all(record_type, sql, *args)

    def commit(self) -> None:
        """Commit. The transaction is finalized even if the commit fails."""
        self._ensure_open("commit")
        self.finalized = True
        self.driver.commit()

    def rollback(self) -> None:
        self._ensure_open("roll back")
        self.finalized = True
        self.driver.rollback()

    def finalize(self) -> None:
        """Roll back unless already finalized.

        Raises:
            TransactionFinalizationError: If the rollback fails. The connection
                may be unusable.
        """
        if self.finalized:
            return
        self.finalized = True
        try:
            self.driver.rollback()
        except Exception as exc:
            msg = f"Rollback of unfinalized transaction failed: {exc}"
            raise TransactionFinalizationError(msg) from exc


def _surface(failure: Failure, driver: "SyncDriverAdapterBase") -> NoReturn:
    error = failure.error
    if isinstance(error, SQLRecordError):
        raise error
    if driver.error_codes.is_driver_error(error):
        raise map_database_error(error, driver.error_codes) from error
    logger.error("Unit of work failed with unexpected %s", type(error).__name__, exc_info=error)
    failure.raise_error()


def _log_retry(
    driver: "SyncDriverAdapterBase", stage: str, attempt: int, level: IsolationLevel, failure: Failure
) -> None:
    error = failure.error
    code = getattr(error, "code", None) if isinstance(error, SQLRecordError) else driver.error_codes.error_code(error)
    logger.warning(
        "Serialization conflict on %s at %s, retrying (attempt %d): %s",
        stage,
        level,
        attempt,
        error,
        extra=retry_fields(stage, attempt, level, failure, code),
    )


def run_in_transaction(
    driver: "SyncDriverAdapterBase",
    work: "Callable[[RecordTransaction], WorkResult[ResultT]]",
    isolation_level: "Optional[Union[IsolationLevel, str]]" = None,
) -> "ResultT":
    """Run a unit of work in a transaction, retrying on serialization conflicts.

    ``work`` receives the transaction and either returns its value or returns a
    :class:`~sqlrecord.exceptions.Failure`; raising is treated the same as
    returning a failure. If the transaction is still open when ``work``
    succeeds, it is committed.

    Serialization conflicts, whether raised while opening the transaction, by
    the work or by the commit, roll back and restart the whole unit immediately.
    There is no attempt limit. Every other failure is rolled back and raised.

    Args:
        driver: Driver whose connection runs the transaction.
        work: The unit of work. It may run more than once.
        isolation_level: Level for every attempt. Defaults to the driver's.

    Raises:
        TransactionFinalizationError: If rolling back an attempt fails. This
            replaces whatever error caused the rollback.

    Returns:
        The value returned by the successful attempt.
    """
    level = IsolationLevel.coerce(isolation_level or driver.record_config.default_isolation_level)
    attempt = 0
    while True:
        attempt += 1
        try:
            tx = driver.begin(level)
        except Exception as exc:
            failure = Failure.from_exception(exc, driver.error_codes)
            if not failure.is_retryable:
                raise
            _log_retry(driver, "begin", attempt, level, failure)
            continue
        try:
            try:
                result = work(tx)
            except Exception as exc:  # noqa: BLE001
                result = Failure.from_exception(exc, driver.error_codes)

            if isinstance(result, Failure):
                if result.is_retryable:
                    _log_retry(driver, "work", attempt, level, result)
                    continue
                _surface(result, driver)

            if not tx.finalized:
                try:
                    tx.commit()
                except Exception as exc:  # noqa: BLE001
                    failure = Failure.from_exception(exc, driver.error_codes)
                    if failure.is_retryable:
                        _log_retry(driver, "commit", attempt, level, failure)
                        continue
                    _surface(failure, driver)
            if attempt > 1:
                logger.debug(
                    "Unit of work committed after %d attempts", attempt, extra=retry_fields("commit", attempt, level)
                )
            return result
        finally:
            # A no-op once committed; rolls back every abandoned attempt.
            tx.finalize()
