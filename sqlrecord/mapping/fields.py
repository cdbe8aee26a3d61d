"""Column metadata attached to dataclass fields.

A field takes part in mapping only when its ``metadata`` carries a ``db`` tag of
the form ``name[,null][,autoinc]``::

    @dataclass
    class User:
        id: int = column("id", autoincrement=True, default=0)
        email: str = column("email", nullable=True, default="")
        token: str = column("token", default="")
        cache: dict = field(default_factory=dict)  # invisible to the mapper
"""

import datetime
import re
import types
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Final, Optional, Union, get_args, get_origin

from sqlrecord.exceptions import ImproperConfigurationError

__all__ = (
    "COLUMN_METADATA_KEY",
    "ZERO_VALUES",
    "FieldDescriptor",
    "column",
    "descriptor_from_tag",
    "format_column_tag",
    "parse_column_tag",
    "resolve_scalar_type",
)

COLUMN_METADATA_KEY: Final = "db"
NULL_OPTION: Final = "null"
AUTOINC_OPTION: Final = "autoinc"

_NONE_TYPE: Final = type(None)
_BUILTIN_NAMES: Final[dict[str, type]] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "bytes": bytes,
    "Decimal": Decimal,
    "decimal.Decimal": Decimal,
    "date": datetime.date,
    "datetime.date": datetime.date,
    "datetime": datetime.datetime,
    "datetime.datetime": datetime.datetime,
}
_OPTIONAL_STRING_RE: Final = re.compile(r"^(?:typing\.)?Optional\[(?P<inner>.+)\]$")
_UNION_NONE_STRING_RE: Final = re.compile(r"^(?:(?P<left>.+?)\s*\|\s*None|None\s*\|\s*(?P<right>.+))$")

ZERO_VALUES: Final[dict[type, Any]] = {
    str: "",
    int: 0,
    float: 0.0,
    bool: False,
    bytes: b"",
    Decimal: Decimal(0),
}


def format_column_tag(name: str, *, nullable: bool = False, autoincrement: bool = False) -> str:
    options = [name]
    if nullable:
        options.append(NULL_OPTION)
    if autoincrement:
        options.append(AUTOINC_OPTION)
    return ",".join(options)


def parse_column_tag(tag: str) -> "tuple[str, bool, bool]":
    """Split a ``name[,null][,autoinc]`` tag.

    Unknown options are ignored.

    Args:
        tag: The raw tag.

    Raises:
        ImproperConfigurationError: If the column name is empty.

    Returns:
        Tuple of ``(column, nullable, autoincrement)``.
    """
    name, *options = (part.strip() for part in tag.split(","))
    if not name:
        msg = f"Column tag {tag!r} has no column name"
        raise ImproperConfigurationError(msg)
    return name, NULL_OPTION in options, AUTOINC_OPTION in options


def column(name: str, *, nullable: bool = False, autoincrement: bool = False, **field_kwargs: Any) -> Any:
    """Declare a mapped dataclass field.

    Args:
        name: Column name.
        nullable: Zero values are written as NULL and NULL reads back as the zero value.
        autoincrement: The database generates the value; it is never inserted.
        **field_kwargs: Passed through to :func:`dataclasses.field`.

    Returns:
        A dataclass field carrying the column tag in its metadata.
    """
    # Copy so a caller's metadata mapping is never mutated.
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata[COLUMN_METADATA_KEY] = format_column_tag(name, nullable=nullable, autoincrement=autoincrement)
    return field(metadata=metadata, **field_kwargs)


def _strip_optional_string(annotation: str) -> "tuple[str, bool]":
    text = annotation.strip().strip("'\"")
    match = _OPTIONAL_STRING_RE.match(text)
    if match:
        return match.group("inner").strip(), True
    match = _UNION_NONE_STRING_RE.match(text)
    if match:
        return (match.group("left") or match.group("right")).strip(), True
    return text, False


def resolve_scalar_type(annotation: Any) -> "tuple[Any, bool]":
    """Reduce a field annotation to its scalar kind.

    ``Optional[X]`` and ``X | None`` reduce to ``X``. Unresolved string
    annotations naming a builtin scalar are mapped to the type; other strings are
    returned unchanged.

    Args:
        annotation: The field's annotation.

    Returns:
        Tuple of ``(scalar_type, admits_none)``.
    """
    if isinstance(annotation, str):
        # Forward references that get_type_hints could not resolve.
        inner, admits_none = _strip_optional_string(annotation)
        return _BUILTIN_NAMES.get(inner, inner), admits_none
    if annotation is Any:
        return annotation, True
    if get_origin(annotation) in {Union, types.UnionType}:
        args = get_args(annotation)
        remaining = [arg for arg in args if arg is not _NONE_TYPE]
        admits_none = len(remaining) != len(args)
        if len(remaining) == 1:
            return remaining[0], admits_none
        return annotation, admits_none
    return annotation, annotation is _NONE_TYPE


@dataclass(frozen=True)
class FieldDescriptor:
    """Mapping metadata for one dataclass field."""

    name: str
    """Attribute name on the record."""
    column: str
    """Column name in the table."""
    nullable: bool = False
    autoincrement: bool = False
    scalar_type: Any = None
    """Underlying scalar kind, with ``Optional`` removed."""
    admits_none: bool = False
    """Whether the annotation itself accepts ``None``."""

    def is_zero(self, value: Any) -> bool:
        """Check whether a value is the zero value of this field's scalar kind.

        ``None`` is always a zero value. Kinds without a known zero value only
        treat ``None`` as zero.
        """
        if value is None:
            return True
        zero = ZERO_VALUES.get(self.scalar_type, _NONE_TYPE)
        if zero is _NONE_TYPE:
            return False
        # Exact type match: False == 0 and 0 == 0.0 would otherwise cross kinds.
        return type(value) is type(zero) and value == zero

    @property
    def tag(self) -> str:
        return format_column_tag(self.column, nullable=self.nullable, autoincrement=self.autoincrement)


def descriptor_from_tag(name: str, tag: str, annotation: "Optional[Any]" = None) -> FieldDescriptor:
    column_name, nullable, autoincrement = parse_column_tag(tag)
    scalar_type, admits_none = resolve_scalar_type(annotation)
    return FieldDescriptor(
        name=name,
        column=column_name,
        nullable=nullable,
        autoincrement=autoincrement,
        scalar_type=scalar_type,
        admits_none=admits_none,
    )
