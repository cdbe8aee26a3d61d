from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, ClassVar, NoReturn, Optional

if TYPE_CHECKING:
    from sqlrecord.error_codes import ErrorCodeTable

__all__ = (
    "DatabaseError",
    "DuplicateEntryError",
    "ErrorKind",
    "Failure",
    "ImproperConfigurationError",
    "IntegrityError",
    "NotFoundError",
    "RowScanError",
    "SQLParsingError",
    "SQLRecordError",
    "SerializationConflictError",
    "TransactionFinalizationError",
    "classify_error",
    "map_database_error",
)


class ErrorKind(Enum):
    """Taxonomy of failures surfaced by the mapping layer."""

    DUPLICATE_ENTRY = auto()
    SERIALIZATION_CONFLICT = auto()
    OTHER = auto()
    PARSE_FAILURE = auto()
    CONFIGURATION = auto()

    def __str__(self) -> str:
        """String representation.

        Returns:
            Lowercase name of the kind.
        """
        return self.name.lower()

    @property
    def is_retryable(self) -> bool:
        return self is ErrorKind.SERIALIZATION_CONFLICT


class SQLRecordError(Exception):
    """Base exception class from which all SQLRecord exceptions inherit."""

    kind: "ClassVar[ErrorKind]" = ErrorKind.OTHER
    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLRecordError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(SQLRecordError):
    """Improper Configuration error.

    Raised for programming mistakes: a type without mapping metadata, a record
    handed to the wrong descriptor, or a nullable field whose scalar kind has no
    registered wrapper. Never retried.
    """

    kind = ErrorKind.CONFIGURATION


class SQLParsingError(SQLRecordError):
    """Issues parsing SQL statements."""

    kind = ErrorKind.PARSE_FAILURE
    sql: Optional[str]
    position: Optional[int]

    def __init__(
        self, message: Optional[str] = None, sql: Optional[str] = None, position: Optional[int] = None
    ) -> None:
        if message is None:
            message = "Issues parsing SQL statement."
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql
        self.position = position


class DatabaseError(SQLRecordError):
    """Opaque backend failure.

    Carries whatever structure the backend error exposed so callers can decide
    between "already handled" and "needs to bubble up".
    """

    code: Optional[str]
    constraint: Optional[str]
    backend_message: Optional[str]

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: "Optional[str]" = None,
        constraint: "Optional[str]" = None,
        backend_message: "Optional[str]" = None,
    ) -> None:
        super().__init__(detail=message or backend_message or "Database operation failed.")
        self.code = code
        self.constraint = constraint
        self.backend_message = backend_message


class IntegrityError(DatabaseError):
    """Data integrity error."""


class DuplicateEntryError(IntegrityError):
    """A uniqueness constraint was violated."""

    kind = ErrorKind.DUPLICATE_ENTRY


class SerializationConflictError(DatabaseError):
    """The backend aborted the transaction to preserve serializability.

    Transient: the whole transaction may be retried.
    """

    kind = ErrorKind.SERIALIZATION_CONFLICT


class RowScanError(DatabaseError):
    """A row could not be copied into its destinations."""


class NotFoundError(DatabaseError):
    """A single row was required but the result set was empty."""


class TransactionFinalizationError(SQLRecordError):
    """Rolling back an unfinalized transaction failed.

    The connection itself may be unusable; this is escalated regardless of the
    error that caused the rollback.
    """


_KIND_TO_ERROR: "dict[ErrorKind, type[DatabaseError]]" = {
    ErrorKind.DUPLICATE_ENTRY: DuplicateEntryError,
    ErrorKind.SERIALIZATION_CONFLICT: SerializationConflictError,
    ErrorKind.OTHER: DatabaseError,
}


def classify_error(error: BaseException, error_codes: "Optional[ErrorCodeTable]" = None) -> ErrorKind:
    """Place an error in the taxonomy.

    Args:
        error: A raised exception, either already mapped or straight from the driver.
        error_codes: Backend lookup used for unmapped driver errors.

    Returns:
        The error kind. Anything unrecognised is ``ErrorKind.OTHER``.
    """
    if isinstance(error, SQLRecordError):
        return error.kind
    if error_codes is not None:
        kind = error_codes.classify(error)
        if kind is not None:
            return kind
    return ErrorKind.OTHER


def map_database_error(error: BaseException, error_codes: "Optional[ErrorCodeTable]" = None) -> SQLRecordError:
    """Translate a driver exception into the taxonomy.

    Args:
        error: Exception raised by the driver.
        error_codes: Backend lookup for codes, constraint names and messages.

    Returns:
        The mapped exception. Already-mapped errors are returned unchanged.
    """
    if isinstance(error, SQLRecordError):
        return error
    kind = classify_error(error, error_codes)
    error_class = _KIND_TO_ERROR.get(kind, DatabaseError)
    if error_codes is None:
        return error_class(str(error), backend_message=str(error))
    backend_message = error_codes.message(error)
    return error_class(
        f"{kind}: {backend_message}",
        code=error_codes.error_code(error),
        constraint=error_codes.constraint_name(error) if kind is ErrorKind.DUPLICATE_ENTRY else None,
        backend_message=backend_message,
    )


@dataclass(frozen=True)
class Failure:
    """Tagged failure returned by a unit of work instead of raising."""

    error: BaseException
    kind: ErrorKind = ErrorKind.OTHER

    @classmethod
    def from_exception(cls, error: BaseException, error_codes: "Optional[ErrorCodeTable]" = None) -> "Failure":
        return cls(error=error, kind=classify_error(error, error_codes))

    @property
    def is_retryable(self) -> bool:
        return self.kind.is_retryable

    def raise_error(self) -> NoReturn:
        raise self.error
