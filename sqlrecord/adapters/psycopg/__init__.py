"""Psycopg (PostgreSQL) adapter for SQLRecord."""

from sqlrecord.adapters.psycopg._types import PsycopgSyncConnection
from sqlrecord.adapters.psycopg.config import PsycopgConfig, PsycopgConnectionParams, PsycopgPoolParams
from sqlrecord.adapters.psycopg.driver import PsycopgErrorCodes, PsycopgSyncDriver

__all__ = (
    "PsycopgConfig",
    "PsycopgConnectionParams",
    "PsycopgErrorCodes",
    "PsycopgPoolParams",
    "PsycopgSyncConnection",
    "PsycopgSyncDriver",
)
