"""Type guard functions for runtime type checking in SQLRecord.

This module provides type-safe runtime checks that help the type checker
understand type narrowing, replacing ad hoc hasattr() checks.
"""

from typing import TYPE_CHECKING, Any

from sqlrecord.protocols import (
    DataclassProtocol,
    HasErrnoProtocol,
    HasPgcodeProtocol,
    HasSqliteErrorcodeProtocol,
    HasSqlstateProtocol,
    Scanner,
)

if TYPE_CHECKING:
    from typing_extensions import TypeGuard

__all__ = (
    "has_errno",
    "has_pgcode",
    "has_sqlite_errorcode",
    "has_sqlstate",
    "is_dataclass_instance",
    "is_dataclass_type",
    "is_scanner",
    "is_scanner_type",
)


def is_dataclass_instance(obj: Any) -> "TypeGuard[DataclassProtocol]":
    """Check if an object is a dataclass instance.

    Args:
        obj: An object to check.

    Returns:
        True if the object is a dataclass instance.
    """
    return not isinstance(obj, type) and hasattr(type(obj), "__dataclass_fields__")


def is_dataclass_type(obj: Any) -> "TypeGuard[type[DataclassProtocol]]":
    """Check if an object is a dataclass class.

    Args:
        obj: An object to check.

    Returns:
        True if the object is a class decorated with ``@dataclass``.
    """
    return isinstance(obj, type) and hasattr(obj, "__dataclass_fields__")


def is_scanner(obj: Any) -> "TypeGuard[Scanner]":
    """Check if an object can decode a column value into itself.

    Args:
        obj: Value to check.

    Returns:
        True if the object exposes a callable ``scan`` method.
    """
    return not isinstance(obj, type) and isinstance(obj, Scanner)


def is_scanner_type(obj: Any) -> bool:
    """Check if a class declares a callable ``scan`` method."""
    return isinstance(obj, type) and callable(getattr(obj, "scan", None))


def has_sqlstate(obj: Any) -> "TypeGuard[HasSqlstateProtocol]":
    """Check if an error exposes a ``sqlstate`` attribute (psycopg 3)."""
    return isinstance(obj, HasSqlstateProtocol) and obj.sqlstate is not None


def has_pgcode(obj: Any) -> "TypeGuard[HasPgcodeProtocol]":
    """Check if an error exposes a ``pgcode`` attribute (psycopg2)."""
    return isinstance(obj, HasPgcodeProtocol) and obj.pgcode is not None


def has_errno(obj: Any) -> "TypeGuard[HasErrnoProtocol]":
    """Check if an error exposes a numeric ``errno`` attribute (MySQL connectors)."""
    return isinstance(obj, HasErrnoProtocol) and isinstance(obj.errno, int)


def has_sqlite_errorcode(obj: Any) -> "TypeGuard[HasSqliteErrorcodeProtocol]":
    """Check if an error exposes the sqlite extended result code (Python 3.11+)."""
    return isinstance(obj, HasSqliteErrorcodeProtocol) and isinstance(obj.sqlite_errorcode, int)
