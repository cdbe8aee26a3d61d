"""Record metadata registry.

Each mapped dataclass is introspected once. The resulting descriptor holds the
table name, the ordered mapped fields and the column strings used to write
statements, and is cached for the life of the process.
"""

import dataclasses
import threading
from dataclasses import dataclass
from typing import Any, Optional, get_type_hints

from sqlrecord.exceptions import ImproperConfigurationError
from sqlrecord.mapping.fields import COLUMN_METADATA_KEY, FieldDescriptor, descriptor_from_tag
from sqlrecord.parameters.types import PLACEHOLDER_MARKER
from sqlrecord.utils.logging import get_logger
from sqlrecord.utils.type_guards import is_dataclass_instance, is_dataclass_type, is_scanner_type

__all__ = ("RecordDescriptor", "RecordRegistry", "clear_registry", "describe", "get_record_info", "get_registry")

logger = get_logger("mapping.registry")


@dataclass(frozen=True)
class RecordDescriptor:
    """Column layout of a mapped record type.

    ``insert_columns`` and ``placeholders`` always have the same number of
    entries, in the same order.
    """

    record_type: type
    table_name: str
    fields: "tuple[FieldDescriptor, ...]"
    columns: str
    """Every mapped column, for ``SELECT``."""
    prefixed_columns: str
    """Every mapped column qualified with the table name, for joins."""
    insert_columns: str
    """Mapped columns minus autoincrement ones, for ``INSERT``."""
    placeholders: str
    """One ``?`` marker per insert column."""

    @property
    def insert_fields(self) -> "tuple[FieldDescriptor, ...]":
        return tuple(field for field in self.fields if not field.autoincrement)

    @property
    def column_names(self) -> "tuple[str, ...]":
        return tuple(field.column for field in self.fields)

    @property
    def nullable_fields(self) -> "tuple[FieldDescriptor, ...]":
        return tuple(field for field in self.fields if field.nullable)

    def insert_statement(self) -> str:
        return f"INSERT INTO {self.table_name} ({self.insert_columns}) VALUES ({self.placeholders})"

    def select_statement(self) -> str:
        return f"SELECT {self.columns} FROM {self.table_name}"


def _resolve_annotations(record_type: type) -> "dict[str, Any]":
    try:
        return get_type_hints(record_type)
    except (NameError, TypeError):
        logger.debug("Could not resolve annotations of %s; using raw field types", record_type.__qualname__)
        return {field.name: field.type for field in dataclasses.fields(record_type)}


def build_descriptor(record_type: type) -> RecordDescriptor:
    """Introspect a dataclass into a descriptor.

    Args:
        record_type: A mutable dataclass with at least one mapped field.

    Raises:
        ImproperConfigurationError: If the type is frozen or maps no fields.

    Returns:
        The descriptor. It is not registered.
    """
    if record_type.__dataclass_params__.frozen:  # type: ignore[attr-defined]
        msg = f"{record_type.__qualname__} is frozen; mapped records must be mutable"
        raise ImproperConfigurationError(msg)

    annotations = _resolve_annotations(record_type)
    fields = tuple(
        descriptor_from_tag(field.name, field.metadata[COLUMN_METADATA_KEY], annotations.get(field.name, field.type))
        for field in dataclasses.fields(record_type)
        if field.metadata.get(COLUMN_METADATA_KEY)
    )
    if not fields:
        msg = f"{record_type.__qualname__} has no fields with {COLUMN_METADATA_KEY!r} column metadata"
        raise ImproperConfigurationError(msg)

    table_name = record_type.__name__.lower()
    column_names = [field.column for field in fields]
    insert_names = [field.column for field in fields if not field.autoincrement]
    return RecordDescriptor(
        record_type=record_type,
        table_name=table_name,
        fields=fields,
        columns=", ".join(column_names),
        prefixed_columns=", ".join(f"{table_name}.{name}" for name in column_names),
        insert_columns=", ".join(insert_names),
        placeholders=", ".join(PLACEHOLDER_MARKER for _ in insert_names),
    )


class RecordRegistry:
    """Append-only cache of record descriptors.

    Lookups of registered types take no lock. Construction happens under a lock
    and the descriptor is published only once fully built.
    """

    __slots__ = ("_descriptors", "_lock")

    def __init__(self) -> None:
        self._descriptors: dict[type, RecordDescriptor] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, record_type: object) -> bool:
        return record_type in self._descriptors

    def describe(self, record: Any) -> "Optional[RecordDescriptor]":
        """Return the descriptor of a record type, building it on first use.

        Args:
            record: A dataclass type or instance.

        Raises:
            ImproperConfigurationError: If the type is not a dataclass, or maps no fields.

        Returns:
            The descriptor, or ``None`` when the type implements ``scan`` and is
            therefore an opaque scalar.
        """
        record_type = record if isinstance(record, type) else type(record)
        descriptor = self._descriptors.get(record_type)
        if descriptor is not None:
            return descriptor
        if is_scanner_type(record_type):
            # Custom scalar; scanned whole rather than field by field.
            return None
        if not is_dataclass_type(record_type):
            msg = f"{record_type.__qualname__} is not a dataclass and cannot be mapped"
            raise ImproperConfigurationError(msg)

        with self._lock:
            # Another thread may have built it while we waited.
            descriptor = self._descriptors.get(record_type)
            if descriptor is None:
                descriptor = build_descriptor(record_type)
                self._descriptors[record_type] = descriptor
                logger.debug(
                    "Registered record %s as table %s (%d columns)",
                    record_type.__qualname__,
                    descriptor.table_name,
                    len(descriptor.fields),
                    extra={"table": descriptor.table_name},
                )
        return descriptor

    def get_record_info(self, value: Any) -> "Optional[RecordDescriptor]":
        """Lenient lookup: ``None`` for anything that is not a record instance."""
        if not is_dataclass_instance(value):
            return None
        return self.describe(value)

    def clear(self) -> None:
        with self._lock:
            self._descriptors.clear()


_registry = RecordRegistry()


def get_registry() -> RecordRegistry:
    return _registry


def describe(record: Any) -> "Optional[RecordDescriptor]":
    """Describe a record type using the process-wide registry.

    Example:
        >>> describe(User).insert_columns
        'email, token'
    """
    return _registry.describe(record)


def get_record_info(value: Any) -> "Optional[RecordDescriptor]":
    return _registry.get_record_info(value)


def clear_registry() -> None:
    _registry.clear()
