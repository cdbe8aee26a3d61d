"""Common driver attributes and statement preparation."""

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ClassVar, NamedTuple, Optional

from mypy_extensions import trait

from sqlrecord.core import RecordConfig
from sqlrecord.error_codes import ErrorCodeTable, SQLStateErrorCodes
from sqlrecord.exceptions import SQLRecordError, map_database_error
from sqlrecord.mapping.expander import expand_arguments
from sqlrecord.parameters.translator import get_translator
from sqlrecord.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = ("CommonDriverAttributesMixin", "ExecutionResult")


logger = get_logger("driver")


class ExecutionResult(NamedTuple):
    """Outcome of a statement that returns no rows.

    Attributes:
        rowcount: Rows affected, as reported by the cursor. ``-1`` when unknown.
        lastrowid: Row id of the last insert where the backend reports one.
    """

    rowcount: int
    lastrowid: Optional[Any] = None


@trait
class CommonDriverAttributesMixin:
    """Connection, settings and error lookup shared by every driver."""

    __slots__ = ("connection", "record_config")
    connection: "Any"
    record_config: "RecordConfig"

    error_codes: "ClassVar[ErrorCodeTable]" = SQLStateErrorCodes()
    """Lookup used to classify errors raised by this driver's backend."""

    def __init__(self, connection: "Any", record_config: "Optional[RecordConfig]" = None) -> None:
        """Initialize the driver.

        Args:
            connection: Open DB-API 2.0 connection. The driver does not own it.
            record_config: Statement settings. Defaults to the driver's own.
        """
        self.connection = connection
        self.record_config = record_config or self.default_record_config()

    @classmethod
    def default_record_config(cls) -> RecordConfig:
        return RecordConfig()

    def prepare_statement(self, sql: str, args: "tuple[Any, ...]") -> "tuple[str, tuple[Any, ...]]":
        """Translate markers and expand record arguments.

        Args:
            sql: Statement using ``?`` markers.
            args: Positional arguments, records included.

        Returns:
            The backend statement and its flat parameter tuple.
        """
        # Expansion runs on every call; only the translation is cached.
        return get_translator(self.record_config.parameter_style).translate(sql), expand_arguments(*args)

    @contextmanager
    def handle_database_exceptions(self) -> "Generator[None, None, None]":
        """Map backend errors raised inside the block into the error taxonomy.

        Errors that are already mapped, and errors that do not come from the
        backend driver, propagate unchanged.
        """
        try:
            yield
        except SQLRecordError:
            raise
        except Exception as exc:
            # Programming errors in callbacks and unrecognised driver errors keep their type.
            if not self.error_codes.is_driver_error(exc):
                raise
            error = map_database_error(exc, self.error_codes)
            logger.debug("Mapped %s to %s", type(exc).__name__, type(error).__name__)
            raise error from exc
