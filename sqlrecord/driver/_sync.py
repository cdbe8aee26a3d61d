"""Synchronous driver base class."""

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from sqlrecord.core import IsolationLevel
from sqlrecord.driver._common import CommonDriverAttributesMixin, ExecutionResult
from sqlrecord.driver._rows import RecordRow, RecordRows, _column_names
from sqlrecord.driver.transaction import RecordTransaction, run_in_transaction
from sqlrecord.exceptions import TransactionFinalizationError
from sqlrecord.mapping.materializer import new_record
from sqlrecord.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlrecord.typing import RecordT, ResultT

logger = get_logger("driver")

__all__ = ("SyncDriverAdapterBase",)


class SyncDriverAdapterBase(CommonDriverAttributesMixin):
    """Runs statements on one connection and manages its transactions.

    Adapters supply cursor handling and the statements that open a transaction
    at a given isolation level.
    """

    __slots__ = ()

    @abstractmethod
    def with_cursor(self, connection: Any) -> Any:
        """Create and return a context manager for cursor acquisition and cleanup."""

    def begin_statements(self, isolation_level: IsolationLevel) -> "list[str]":
        """Statements that open a transaction at ``isolation_level``.

        The default suits PostgreSQL-wire backends.
        """
        return ["BEGIN", f"SET TRANSACTION ISOLATION LEVEL {isolation_level}"]

    def _execute_control(self, sql: str) -> None:
        with self.handle_database_exceptions(), self.with_cursor(self.connection) as cursor:
            cursor.execute(sql)

    def begin_transaction(self, isolation_level: "Optional[Union[IsolationLevel, str]]" = None) -> IsolationLevel:
        """Open a transaction on the connection.

        If the isolation level cannot be applied, the freshly opened
        transaction is rolled back before the error propagates.

        Raises:
            TransactionFinalizationError: If that rollback fails too. The
                original error is kept as the exception context.

        Returns:
            The isolation level in effect.
        """
        level = IsolationLevel.coerce(isolation_level or self.record_config.default_isolation_level)
        first, *rest = self.begin_statements(level)
        # Nothing to undo if the opening statement itself fails.
        self._execute_control(first)
        try:
            for statement in rest:
                self._execute_control(statement)
        except Exception as exc:
            try:
                self.rollback()
            except Exception as rollback_exc:
                # The connection may still hold the half-opened transaction.
                msg = f"Rollback after failing to set isolation level {level} failed: {rollback_exc}"
                raise TransactionFinalizationError(msg) from rollback_exc
            logger.debug("Rolled back transaction after failing to set isolation level %s: %s", level, exc)
            raise
        logger.debug("Began transaction at %s", level, extra={"isolation_level": level})
        return level

    def commit(self) -> None:
        """Commit the current transaction on the current connection."""
        self._execute_control("COMMIT")

    def rollback(self) -> None:
        """Rollback the current transaction on the current connection."""
        self._execute_control("ROLLBACK")

    def execute(self, sql: str, *args: Any) -> ExecutionResult:
        """Run a statement that returns no rows.

        Args:
            sql: Statement using ``?`` markers.
            *args: Positional arguments. Records expand to their insertable fields.

        Returns:
            Affected row count and last inserted row id.
        """
        statement, parameters = self.prepare_statement(sql, args)
        with self.handle_database_exceptions(), self.with_cursor(self.connection) as cursor:
            cursor.execute(statement, parameters)
            return ExecutionResult(rowcount=cursor.rowcount, lastrowid=getattr(cursor, "lastrowid", None))

    def query_row(self, sql: str, *args: Any) -> RecordRow:
        """Run a query and fetch at most its first row."""
        statement, parameters = self.prepare_statement(sql, args)
        with self.handle_database_exceptions(), self.with_cursor(self.connection) as cursor:
            cursor.execute(statement, parameters)
            return RecordRow(cursor.fetchone(), _column_names(cursor.description))

    def query(self, sql: str, *args: Any) -> RecordRows:
        """Run a query and return a handle over its rows.

        The caller must exhaust or close the handle.
        """
        statement, parameters = self.prepare_statement(sql, args)
        # The cursor outlives this call; RecordRows closes it.
        with self.handle_database_exceptions():
            cursor = self.connection.cursor()
            try:
                cursor.execute(statement, parameters)
            except Exception:
                cursor.close()
                raise
        return RecordRows(self, cursor)

    def query_one(self, record_type: "type[RecordT]", sql: str, *args: Any) -> "RecordT":
        """Fetch one row into a new record.

        Raises:
            NotFoundError: If the query returned no row.
        """
        record = new_record(record_type)
        self.query_row(sql, *args).scan(record)
        return record

    def query_all(self, record_type: "type[RecordT]", sql: str, *args: Any) -> "list[RecordT]":
        """Fetch every row into new records.

        The first row that fails to scan aborts the call; no partial list is
        returned.
        """
        records: list[RecordT] = []
        with self.query(sql, *args) as rows:
            while rows.next():
                record = new_record(record_type)
                rows.scan(record)
                records.append(record)
        return records

    def begin(self, isolation_level: "Optional[Union[IsolationLevel, str]]" = None) -> RecordTransaction:
        """Start a transaction.

        Example:
            >>> with driver.begin() as tx:
            ...     tx.execute("UPDATE user SET token = ? WHERE id = ?", "t", 1)
            ...     tx.commit()
        """
        level = self.begin_transaction(isolation_level)
        return RecordTransaction(self, level)

    def transact(
        self,
        work: "Callable[[RecordTransaction], ResultT]",
        isolation_level: "Optional[Union[IsolationLevel, str]]" = None,
    ) -> "ResultT":
        """Run ``work`` in a transaction, retrying on serialization conflicts."""
        return run_in_transaction(self, work, isolation_level)

    def transact_serializable(self, work: "Callable[[RecordTransaction], ResultT]") -> "ResultT":
        return run_in_transaction(self, work, IsolationLevel.SERIALIZABLE)
