"""Row materialization.

A row is copied into a flat list of scan targets built from the caller's
destinations. Record instances expand into one target per mapped field,
autoincrement fields included. Field values are staged and written to the
record once every column has been scanned; nullable fields decode through a
wrapper first.
"""

import dataclasses
from typing import Any, Generic, Optional, Sequence, TypeVar, Union

from sqlrecord.exceptions import ImproperConfigurationError, RowScanError
from sqlrecord.mapping.fields import FieldDescriptor
from sqlrecord.mapping.nullables import NullValue, get_nullable_wrapper
from sqlrecord.mapping.registry import describe, get_record_info
from sqlrecord.protocols import Scanner
from sqlrecord.utils.type_guards import is_dataclass_type, is_scanner

__all__ = ("FieldTarget", "NullableFieldTarget", "Ref", "ScanPlan", "build_scan_plan", "new_record", "scan_row")

T = TypeVar("T")


class Ref(Generic[T]):
    """Holder for a plain scalar destination.

    Example:
        >>> count = Ref[int]()
        >>> driver.query_row("SELECT count(*) FROM user").scan(count)
        >>> count.value
        3
    """

    __slots__ = ("value",)

    def __init__(self, value: "Optional[T]" = None) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Ref({self.value!r})"

    def scan(self, value: Any) -> None:
        self.value = value


class FieldTarget:
    """Stages a column for a record attribute.

    The value is checked when scanned and written to the record by
    :meth:`copy_back`, so a failed row leaves the record untouched.
    """

    __slots__ = ("field", "record", "value")

    def __init__(self, record: Any, field: FieldDescriptor) -> None:
        self.record = record
        self.field = field
        self.value: Any = None

    def scan(self, value: Any) -> None:
        if value is None and not self.field.admits_none:
            kind = getattr(self.field.scalar_type, "__name__", self.field.scalar_type)
            msg = f"converting NULL to {kind} is unsupported (field {self.field.name!r})"
            raise RowScanError(msg)
        self.value = value

    def copy_back(self) -> None:
        setattr(self.record, self.field.name, self.value)


class NullableFieldTarget:
    """Scans a column into a nullable wrapper, then copies the value to the record."""

    __slots__ = ("field", "record", "wrapper")

    def __init__(self, record: Any, field: FieldDescriptor) -> None:
        self.record = record
        self.field = field
        self.wrapper: NullValue[Any] = get_nullable_wrapper(field.scalar_type)()

    def scan(self, value: Any) -> None:
        self.wrapper.scan(value)

    def copy_back(self) -> None:
        setattr(self.record, self.field.name, self.wrapper.value)


@dataclasses.dataclass
class ScanPlan:
    targets: "list[Scanner]"
    deferred: "list[Union[FieldTarget, NullableFieldTarget]]" = dataclasses.field(default_factory=list)
    """Record field targets, written back only once the whole row scanned."""

    def __len__(self) -> int:
        return len(self.targets)

    def apply(self, values: "Sequence[Any]") -> None:
        """Copy one row into the targets.

        Record fields are assigned only after every column scanned. Caller
        supplied scanners such as ``Ref`` receive their column directly.

        Raises:
            RowScanError: If the column count differs from the target count,
                or a column cannot be stored in its target.
        """
        if len(values) != len(self.targets):
            msg = f"expected {len(values)} destination arguments in scan, not {len(self.targets)}"
            raise RowScanError(msg)
        for target, value in zip(self.targets, values):
            target.scan(value)
        for target in self.deferred:
            target.copy_back()


def build_scan_plan(*destinations: Any) -> ScanPlan:
    """Flatten destinations into scan targets.

    Args:
        *destinations: ``Ref`` holders, ``Scanner`` objects or record instances.

    Raises:
        ImproperConfigurationError: For a destination that can hold no value,
            or a nullable field without a registered wrapper.

    Returns:
        The plan, with one target per expected column.
    """
    plan = ScanPlan(targets=[])
    for destination in destinations:
        if is_scanner(destination):
            plan.targets.append(destination)
            continue
        descriptor = get_record_info(destination)
        if descriptor is None:
            msg = (
                f"Cannot scan into {type(destination).__qualname__}; "
                "use a Ref, a Scanner or a mapped record instance"
            )
            raise ImproperConfigurationError(msg)
        for field in descriptor.fields:
            target: "Union[FieldTarget, NullableFieldTarget]"
            if field.nullable:
                target = NullableFieldTarget(destination, field)
            else:
                target = FieldTarget(destination, field)
            plan.targets.append(target)
            plan.deferred.append(target)
    return plan


def scan_row(values: "Sequence[Any]", *destinations: Any) -> None:
    build_scan_plan(*destinations).apply(values)


def new_record(record_type: "type[T]") -> T:
    """Create an empty record to scan into.

    The dataclass ``__init__`` is bypassed so fields without defaults need not
    be supplied. Such fields start as ``None`` and are expected to be filled by
    the scan.

    Raises:
        ImproperConfigurationError: If ``record_type`` is not a mappable dataclass.
    """
    if not is_dataclass_type(record_type):
        msg = f"{getattr(record_type, '__qualname__', record_type)} is not a dataclass and cannot be mapped"
        raise ImproperConfigurationError(msg)
    if describe(record_type) is None:
        msg = f"{record_type.__qualname__} is a scalar type, not a record"
        raise ImproperConfigurationError(msg)
    # object.__setattr__ works for slotted dataclasses as well as plain ones.
    record = object.__new__(record_type)
    for field in dataclasses.fields(record_type):
        if field.default is not dataclasses.MISSING:
            value = field.default
        elif field.default_factory is not dataclasses.MISSING:
            value = field.default_factory()
        else:
            value = None
        object.__setattr__(record, field.name, value)
    return record
