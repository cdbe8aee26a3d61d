"""Placeholder translation.

Statements are written with a single driver-neutral ``?`` marker. Before they
reach a driver, every marker outside a single-quoted string literal is replaced
by the backend's positional token, numbered left to right from 1. Literal text,
including backslash escapes, is copied unchanged.
"""

import re
import threading
from typing import Final, Optional

from sqlrecord.exceptions import SQLParsingError
from sqlrecord.parameters.types import DEFAULT_PARAMETER_STYLE, ParameterStyle
from sqlrecord.utils.logging import get_logger

__all__ = ("PlaceholderTranslator", "clear_translation_cache", "get_translator", "translate", "translation_cache_size")

logger = get_logger("parameters.translator")

# Spans are tried in order at each position; exactly one can match because
# ``other`` never consumes a quote or a marker.
_SPAN_REGEX: Final = re.compile(
    r"""
    (?P<string>'(?:\\.|[^'\\])*') |   # single-quoted literal, \x consumes any one character
    (?P<placeholder>\?) |              # the positional marker
    (?P<other>[^?']+)                  # everything else
    """,
    re.VERBOSE | re.DOTALL,
)


class PlaceholderTranslator:
    """Rewrites ``?`` markers into one target style, memoizing per statement."""

    __slots__ = ("_cache", "_lock", "style")

    def __init__(self, style: ParameterStyle = DEFAULT_PARAMETER_STYLE) -> None:
        self.style = style
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(style={self.style!r})"

    def translate(self, sql: str) -> str:
        """Translate a statement, consulting the cache first.

        Args:
            sql: Statement using ``?`` markers.

        Raises:
            SQLParsingError: If a string literal is not terminated.

        Returns:
            The statement in this translator's style.
        """
        # Unlocked read: entries are only ever added, and a dict lookup is atomic.
        cached = self._cache.get(sql)
        if cached is not None:
            return cached
        translated = self._rewrite(sql)
        # First writer wins so every caller sees the same string object.
        with self._lock:
            return self._cache.setdefault(sql, translated)

    def _rewrite(self, sql: str) -> str:
        parts: list[str] = []
        index = 1
        position = 0
        length = len(sql)
        escape_percent = self.style.escapes_percent
        while position < length:
            match = _SPAN_REGEX.match(sql, position)
            if match is None:
                msg = f"Unterminated string literal at position {position}"
                raise SQLParsingError(msg, sql=sql, position=position)
            # Numbering continues across literals; markers inside them are not counted.
            if match.lastgroup == "placeholder":
                parts.append(self.style.placeholder(index))
                index += 1
            else:
                text = match.group()
                # pyformat drivers treat a lone % as a format directive, even inside literals.
                parts.append(text.replace("%", "%%") if escape_percent else text)
            position = match.end()
        return "".join(parts)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


_translators: "dict[ParameterStyle, PlaceholderTranslator]" = {
    style: PlaceholderTranslator(style) for style in ParameterStyle
}


def get_translator(style: "Optional[ParameterStyle]" = None) -> PlaceholderTranslator:
    """Return the process-wide translator for a style."""
    return _translators[style or DEFAULT_PARAMETER_STYLE]


def translate(sql: str, style: "Optional[ParameterStyle]" = None) -> str:
    """Translate ``?`` markers into the target style's positional tokens.

    Args:
        sql: Statement using ``?`` markers.
        style: Target style. Defaults to ``ParameterStyle.NUMERIC`` (``$1``, ``$2``, ...).

    Returns:
        The rewritten statement.

    Example:
        >>> translate("SELECT * FROM t WHERE a=? AND b='x?' AND c=?")
        "SELECT * FROM t WHERE a=$1 AND b='x?' AND c=$2"
    """
    return get_translator(style).translate(sql)


def clear_translation_cache() -> None:
    """Drop every memoized translation."""
    for translator in _translators.values():
        translator.clear()
    logger.debug("Placeholder translation cache cleared")


def translation_cache_size() -> int:
    return sum(len(translator) for translator in _translators.values())
