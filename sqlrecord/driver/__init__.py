"""Driver base classes, row handles and transactions."""

from sqlrecord.driver._common import CommonDriverAttributesMixin, ExecutionResult
from sqlrecord.driver._rows import RecordRow, RecordRows
from sqlrecord.driver._sync import SyncDriverAdapterBase
from sqlrecord.driver.transaction import RecordTransaction, run_in_transaction

__all__ = (
    "CommonDriverAttributesMixin",
    "ExecutionResult",
    "RecordRow",
    "RecordRows",
    "RecordTransaction",
    "SyncDriverAdapterBase",
    "run_in_transaction",
)
