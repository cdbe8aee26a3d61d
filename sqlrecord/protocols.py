"""Runtime-checkable protocols for SQLRecord to replace duck typing.

This module provides protocols that can be used for static type checking
and runtime isinstance() checks, replacing ad hoc hasattr() checks.
"""

from typing import Any, Optional, Protocol, runtime_checkable

__all__ = (
    "DataclassProtocol",
    "HasErrnoProtocol",
    "HasPgcodeProtocol",
    "HasSqlstateProtocol",
    "HasSqliteErrorcodeProtocol",
    "Scanner",
)


@runtime_checkable
class Scanner(Protocol):
    """A destination that decodes a single column value into itself.

    Custom scalar types implementing this protocol are treated as opaque leaf
    values by the mapper, never as records.
    """

    def scan(self, value: Any) -> None:
        """Copy a raw column value into this destination."""
        ...


@runtime_checkable
class DataclassProtocol(Protocol):
    """Protocol for instance checking dataclasses."""

    __dataclass_fields__: "dict[str, Any]"


@runtime_checkable
class HasSqlstateProtocol(Protocol):
    """psycopg 3 style errors carrying a SQLSTATE code."""

    sqlstate: "Optional[str]"


@runtime_checkable
class HasPgcodeProtocol(Protocol):
    """psycopg2 style errors carrying a SQLSTATE code."""

    pgcode: "Optional[str]"


@runtime_checkable
class HasErrnoProtocol(Protocol):
    """MySQL connector errors carrying a numeric server error."""

    errno: int


@runtime_checkable
class HasSqliteErrorcodeProtocol(Protocol):
    """sqlite3 errors carrying the extended result code."""

    sqlite_errorcode: int
