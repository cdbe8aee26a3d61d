"""Placeholder styles understood by the translator."""

from enum import Enum
from typing import Final

__all__ = ("DEFAULT_PARAMETER_STYLE", "PLACEHOLDER_MARKER", "ParameterStyle")

PLACEHOLDER_MARKER: Final = "?"
"""The driver-neutral positional placeholder accepted in every statement."""


class ParameterStyle(str, Enum):
    """Parameter style enumeration with string values."""

    QMARK = "qmark"
    NUMERIC = "numeric"
    POSITIONAL_COLON = "positional_colon"
    POSITIONAL_PYFORMAT = "pyformat_positional"

    def __str__(self) -> str:
        """String representation for better error messages.

        Returns:
            The enum value as a string.
        """
        return self.value

    def placeholder(self, index: int) -> str:
        """Render the placeholder token for a 1-based position.

        Args:
            index: 1-based position of the placeholder in the statement.

        Returns:
            The backend token, e.g. ``$3`` for ``NUMERIC``.
        """
        if self is ParameterStyle.NUMERIC:
            return f"${index}"
        if self is ParameterStyle.POSITIONAL_COLON:
            return f":{index}"
        if self is ParameterStyle.POSITIONAL_PYFORMAT:
            return "%s"
        return PLACEHOLDER_MARKER

    @property
    def escapes_percent(self) -> bool:
        """Whether literal ``%`` must be doubled for this style's driver."""
        return self is ParameterStyle.POSITIONAL_PYFORMAT


DEFAULT_PARAMETER_STYLE: Final = ParameterStyle.NUMERIC
