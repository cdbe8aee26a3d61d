"""Nullable scan wrappers.

A nullable field is scanned through a wrapper matching its scalar kind. The
wrapper decodes ``NULL`` to the kind's zero value, and the decoded value is
copied back into the field once the whole row has been scanned.
"""

import datetime
import threading
from decimal import Decimal
from typing import Any, ClassVar, Generic, TypeVar

from sqlrecord.exceptions import ImproperConfigurationError

__all__ = (
    "NullBool",
    "NullBytes",
    "NullDate",
    "NullDateTime",
    "NullDecimal",
    "NullFloat",
    "NullInt",
    "NullString",
    "NullValue",
    "get_nullable_wrapper",
    "register_nullable",
)

T = TypeVar("T")


class NullValue(Generic[T]):
    """Base class for nullable scan targets."""

    __slots__ = ("valid", "value")

    zero: "ClassVar[Any]" = None

    def __init__(self, value: "Any" = None) -> None:
        self.value: T = self.zero if value is None else value
        self.valid = value is not None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.value == other.value and self.valid == other.valid

    def __hash__(self) -> int:
        return hash((type(self), self.value, self.valid))

    def scan(self, value: Any) -> None:
        if value is None:
            self.value = self.zero
            self.valid = False
            return
        self.value = self.decode(value)
        self.valid = True

    def decode(self, value: Any) -> T:
        return value  # type: ignore[no-any-return]


class NullString(NullValue[str]):
    __slots__ = ()
    zero = ""

    def decode(self, value: Any) -> str:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value).decode("utf-8")
        return str(value)


class NullInt(NullValue[int]):
    __slots__ = ()
    zero = 0

    def decode(self, value: Any) -> int:
        return int(value)


class NullFloat(NullValue[float]):
    __slots__ = ()
    zero = 0.0

    def decode(self, value: Any) -> float:
        return float(value)


class NullBool(NullValue[bool]):
    __slots__ = ()
    zero = False

    def decode(self, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in {"t", "true", "1", "y", "yes"}
        return bool(value)


class NullBytes(NullValue[bytes]):
    __slots__ = ()
    zero = b""

    def decode(self, value: Any) -> bytes:
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)


class NullDecimal(NullValue[Decimal]):
    __slots__ = ()
    zero = Decimal(0)

    def decode(self, value: Any) -> Decimal:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))


class NullDate(NullValue["datetime.date | None"]):
    """Dates have no zero value; ``NULL`` reads back as ``None``."""

    __slots__ = ()

    def decode(self, value: Any) -> datetime.date:
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        return datetime.date.fromisoformat(str(value))


class NullDateTime(NullValue["datetime.datetime | None"]):
    """Timestamps have no zero value; ``NULL`` reads back as ``None``."""

    __slots__ = ()

    def decode(self, value: Any) -> datetime.datetime:
        if isinstance(value, datetime.datetime):
            return value
        return datetime.datetime.fromisoformat(str(value))


_wrappers: "dict[Any, type[NullValue[Any]]]" = {
    str: NullString,
    int: NullInt,
    float: NullFloat,
    bool: NullBool,
    bytes: NullBytes,
    Decimal: NullDecimal,
    datetime.date: NullDate,
    datetime.datetime: NullDateTime,
}
_wrappers_lock = threading.Lock()


def register_nullable(kind: Any, wrapper: "type[NullValue[Any]]") -> None:
    """Register the wrapper used for nullable fields of ``kind``.

    Args:
        kind: Scalar type of the field, after ``Optional`` is removed.
        wrapper: ``NullValue`` subclass decoding values of that kind.
    """
    with _wrappers_lock:
        _wrappers[kind] = wrapper


def get_nullable_wrapper(kind: Any) -> "type[NullValue[Any]]":
    """Look up the wrapper for a scalar kind.

    Raises:
        ImproperConfigurationError: If no wrapper is registered for ``kind``.
    """
    wrapper = _wrappers.get(kind)
    if wrapper is None:
        name = getattr(kind, "__name__", kind)
        msg = f"No nullable wrapper registered for field type {name!s}"
        raise ImproperConfigurationError(msg)
    return wrapper
