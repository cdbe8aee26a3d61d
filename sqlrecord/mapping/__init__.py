"""Record mapping: field metadata, descriptors, argument expansion and row scanning."""

from sqlrecord.mapping.expander import expand_arguments, flatten_record
from sqlrecord.mapping.fields import COLUMN_METADATA_KEY, FieldDescriptor, column, parse_column_tag
from sqlrecord.mapping.materializer import Ref, ScanPlan, build_scan_plan, new_record, scan_row
from sqlrecord.mapping.nullables import (
    NullBool,
    NullBytes,
    NullDate,
    NullDateTime,
    NullDecimal,
    NullFloat,
    NullInt,
    NullString,
    NullValue,
    get_nullable_wrapper,
    register_nullable,
)
from sqlrecord.mapping.registry import (
    RecordDescriptor,
    RecordRegistry,
    clear_registry,
    describe,
    get_record_info,
    get_registry,
)

__all__ = (
    "COLUMN_METADATA_KEY",
    "FieldDescriptor",
    "NullBool",
    "NullBytes",
    "NullDate",
    "NullDateTime",
    "NullDecimal",
    "NullFloat",
    "NullInt",
    "NullString",
    "NullValue",
    "RecordDescriptor",
    "RecordRegistry",
    "Ref",
    "ScanPlan",
    "build_scan_plan",
    "clear_registry",
    "column",
    "describe",
    "expand_arguments",
    "flatten_record",
    "get_nullable_wrapper",
    "get_record_info",
    "get_registry",
    "new_record",
    "parse_column_tag",
    "register_nullable",
    "scan_row",
)
