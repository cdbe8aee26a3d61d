"""Expansion of statement arguments.

Record instances in an argument list are replaced in place by the values of
their insertable fields, so ``execute(descriptor.insert_statement(), user)``
binds exactly one value per placeholder.
"""

from typing import Any

from sqlrecord.exceptions import ImproperConfigurationError
from sqlrecord.mapping.materializer import Ref
from sqlrecord.mapping.nullables import NullValue
from sqlrecord.mapping.registry import RecordDescriptor, get_record_info
from sqlrecord.utils.type_guards import is_scanner

__all__ = ("expand_arguments", "flatten_record")


def flatten_record(record: Any, descriptor: RecordDescriptor) -> "list[Any]":
    """Return the bind values of a record's insertable fields.

    Autoincrement fields are always omitted. A nullable field holding its zero
    value binds as ``None``.

    Args:
        record: Instance to read.
        descriptor: Descriptor of the instance's type.

    Raises:
        ImproperConfigurationError: If ``record`` is not an instance of the described type.

    Returns:
        Values in insert column order.
    """
    if type(record) is not descriptor.record_type:
        msg = (
            f"Cannot flatten {type(record).__qualname__} with the descriptor "
            f"of {descriptor.record_type.__qualname__}"
        )
        raise ImproperConfigurationError(msg)
    values: list[Any] = []
    for field in descriptor.insert_fields:
        value = getattr(record, field.name)
        if field.nullable and field.is_zero(value):
            value = None
        values.append(value)
    return values


def expand_arguments(*args: Any) -> "tuple[Any, ...]":
    """Replace each record instance by its insertable values.

    A nullable wrapper binds its value, or ``None`` when it is not valid.
    Other scalars, including custom ``Scanner`` values, pass through unchanged.

    Raises:
        ImproperConfigurationError: For a ``Ref``, which is a scan destination
            and has no bind value.

    Example:
        >>> expand_arguments(User(email="", token="t"), 7)
        (None, 't', 7)
    """
    expanded: list[Any] = []
    for arg in args:
        if isinstance(arg, Ref):
            msg = "Ref is a scan destination and cannot be bound; pass its value instead"
            raise ImproperConfigurationError(msg)
        if isinstance(arg, NullValue):
            expanded.append(arg.value if arg.valid else None)
            continue
        descriptor = None if is_scanner(arg) else get_record_info(arg)
        if descriptor is None:
            expanded.append(arg)
        else:
            expanded.extend(flatten_record(arg, descriptor))
    return tuple(expanded)
