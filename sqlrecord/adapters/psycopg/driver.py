from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

import psycopg

from sqlrecord.adapters.psycopg._types import PsycopgSyncConnection
from sqlrecord.core import RecordConfig
from sqlrecord.driver import SyncDriverAdapterBase
from sqlrecord.error_codes import SQLStateErrorCodes
from sqlrecord.exceptions import ErrorKind
from sqlrecord.parameters.types import ParameterStyle

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = ("PsycopgErrorCodes", "PsycopgSyncDriver", "psycopg_record_config")

psycopg_record_config = RecordConfig(parameter_style=ParameterStyle.POSITIONAL_PYFORMAT)


class PsycopgErrorCodes(SQLStateErrorCodes):
    """SQLSTATE lookup for psycopg 3.

    Client-side psycopg errors carry no SQLSTATE and are classified as
    ``ErrorKind.OTHER``.
    """

    error_types = (psycopg.Error,)

    def classify(self, error: BaseException) -> "Optional[ErrorKind]":
        kind = super().classify(error)
        # e.g. OperationalError on a closed connection, which has no sqlstate
        if kind is None and isinstance(error, self.error_types):
            return ErrorKind.OTHER
        return kind


class PsycopgSyncDriver(SyncDriverAdapterBase):
    """Driver for psycopg 3 connections.

    Connections are expected in autocommit mode; transactions are opened with
    explicit ``BEGIN`` followed by ``SET TRANSACTION ISOLATION LEVEL``.
    """

    __slots__ = ()

    error_codes = PsycopgErrorCodes()

    @classmethod
    def default_record_config(cls) -> RecordConfig:
        return psycopg_record_config

    @contextmanager
    def with_cursor(self, connection: "PsycopgSyncConnection") -> "Generator[Any, None, None]":
        cursor = connection.cursor()
        try:
            yield cursor
        finally:
            cursor.close()
