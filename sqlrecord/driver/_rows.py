"""Row handles returned by queries."""

from typing import TYPE_CHECKING, Any, Optional

from sqlrecord.exceptions import NotFoundError, RowScanError
from sqlrecord.mapping.materializer import scan_row

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from types import TracebackType

    from sqlrecord.driver._common import CommonDriverAttributesMixin

__all__ = ("RecordRow", "RecordRows")


def _column_names(description: Any) -> "list[str]":
    return [column[0] for column in description or ()]


class RecordRow:
    """A single fetched row, possibly absent."""

    __slots__ = ("_columns", "_values")

    def __init__(self, values: "Optional[Sequence[Any]]", columns: "Optional[list[str]]" = None) -> None:
        self._values = values
        self._columns = columns or []

    def __repr__(self) -> str:
        return f"RecordRow({self._values!r})"

    @property
    def values(self) -> "Optional[Sequence[Any]]":
        return self._values

    def columns(self) -> "list[str]":
        return list(self._columns)

    def scan(self, *destinations: Any) -> None:
        """Copy the row into destinations.

        Raises:
            NotFoundError: If the query returned no row.
            RowScanError: If the row does not fit the destinations.
        """
        if self._values is None:
            msg = "no rows in result set"
            raise NotFoundError(msg)
        scan_row(self._values, *destinations)


class RecordRows:
    """Cursor-backed iteration over a result set.

    Call :meth:`next` to advance, then :meth:`scan` to copy the current row::

        with driver.query("SELECT id, email FROM user") as rows:
            while rows.next():
                rows.scan(user_id, email)

    Iterating yields :class:`RecordRow` objects. The cursor is closed when the
    result set is exhausted or :meth:`close` is called.
    """

    __slots__ = ("_current", "_cursor", "_driver", "closed")

    def __init__(self, driver: "CommonDriverAttributesMixin", cursor: Any) -> None:
        self._driver = driver
        self._cursor = cursor
        self._current: Optional[Sequence[Any]] = None
        self.closed = False

    def __enter__(self) -> "RecordRows":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    def __iter__(self) -> "Iterator[RecordRow]":
        # Read once; description is gone after the cursor closes on exhaustion.
        columns = self.columns()
        while self.next():
            yield RecordRow(self._current, columns)

    def columns(self) -> "list[str]":
        return _column_names(self._cursor.description)

    def next(self) -> bool:
        """Advance to the next row.

        Returns:
            ``False`` once the result set is exhausted, after closing the cursor.
        """
        if self.closed:
            return False
        with self._driver.handle_database_exceptions():
            self._current = self._cursor.fetchone()
        if self._current is None:
            # Exhaustion releases the cursor even without a with block.
            self.close()
            return False
        return True

    def scan(self, *destinations: Any) -> None:
        if self._current is None:
            msg = "scan called without a current row; call next() first"
            raise RowScanError(msg)
        scan_row(self._current, *destinations)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        with self._driver.handle_database_exceptions():
            self._cursor.close()
