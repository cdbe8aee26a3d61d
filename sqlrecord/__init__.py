"""SQLRecord: dataclass records over DB-API connections, with retrying transactions."""

from sqlrecord import driver, exceptions, mapping, parameters, typing, utils
from sqlrecord.__metadata__ import __version__
from sqlrecord.base import SQLRecord
from sqlrecord.config import NoPoolSyncConfig, SyncDatabaseConfig
from sqlrecord.core import IsolationLevel, RecordConfig
from sqlrecord.driver import ExecutionResult, RecordRow, RecordRows, RecordTransaction, SyncDriverAdapterBase
from sqlrecord.error_codes import ErrorCodeTable, MySQLErrorCodes, SQLStateErrorCodes, SqliteErrorCodes
from sqlrecord.exceptions import (
    DatabaseError,
    DuplicateEntryError,
    ErrorKind,
    Failure,
    ImproperConfigurationError,
    NotFoundError,
    RowScanError,
    SerializationConflictError,
    SQLParsingError,
    SQLRecordError,
    TransactionFinalizationError,
)
from sqlrecord.mapping import (
    RecordDescriptor,
    Ref,
    column,
    describe,
    expand_arguments,
    get_record_info,
    register_nullable,
)
from sqlrecord.parameters import ParameterStyle, translate

__all__ = (
    "DatabaseError",
    "DuplicateEntryError",
    "ErrorCodeTable",
    "ErrorKind",
    "ExecutionResult",
    "Failure",
    "ImproperConfigurationError",
    "IsolationLevel",
    "MySQLErrorCodes",
    "NoPoolSyncConfig",
    "NotFoundError",
    "ParameterStyle",
    "RecordConfig",
    "RecordDescriptor",
    "RecordRow",
    "RecordRows",
    "RecordTransaction",
    "Ref",
    "RowScanError",
    "SQLParsingError",
    "SQLRecord",
    "SQLRecordError",
    "SQLStateErrorCodes",
    "SerializationConflictError",
    "SqliteErrorCodes",
    "SyncDatabaseConfig",
    "SyncDriverAdapterBase",
    "TransactionFinalizationError",
    "__version__",
    "column",
    "describe",
    "driver",
    "exceptions",
    "expand_arguments",
    "get_record_info",
    "mapping",
    "parameters",
    "register_nullable",
    "translate",
    "typing",
    "utils",
)
