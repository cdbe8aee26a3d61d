from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from psycopg import Connection
    from typing_extensions import TypeAlias

    PsycopgSyncConnection: TypeAlias = Connection[Any]
else:
    from psycopg import Connection

    PsycopgSyncConnection = Connection

__all__ = ("PsycopgSyncConnection",)
