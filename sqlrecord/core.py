"""Statement-level settings shared by drivers."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlrecord.exceptions import ImproperConfigurationError
from sqlrecord.parameters.types import DEFAULT_PARAMETER_STYLE, ParameterStyle

__all__ = ("IsolationLevel", "RecordConfig")


class IsolationLevel(str, Enum):
    """Transaction isolation levels, valued by their SQL spelling."""

    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def coerce(cls, value: Any) -> "IsolationLevel":
        """Accept a member, its name or its SQL spelling in any case.

        Raises:
            ImproperConfigurationError: If the value names no isolation level.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().upper().replace("_", " ")
            for level in cls:
                if level.value == normalized:
                    return level
        msg = f"Unsupported isolation level: {value!r}"
        raise ImproperConfigurationError(msg)


@dataclass(frozen=True)
class RecordConfig:
    """Settings applied to every statement a driver runs.

    Attributes:
        parameter_style: Target style for ``?`` markers.
        default_isolation_level: Level used by ``begin()`` and ``transact()``
            when none is given.
    """

    parameter_style: ParameterStyle = DEFAULT_PARAMETER_STYLE
    default_isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED

    def __post_init__(self) -> None:
        object.__setattr__(self, "default_isolation_level", IsolationLevel.coerce(self.default_isolation_level))
