"""Driver-neutral placeholder handling."""

from sqlrecord.parameters.translator import (
    PlaceholderTranslator,
    clear_translation_cache,
    get_translator,
    translate,
    translation_cache_size,
)
from sqlrecord.parameters.types import DEFAULT_PARAMETER_STYLE, PLACEHOLDER_MARKER, ParameterStyle

__all__ = (
    "DEFAULT_PARAMETER_STYLE",
    "PLACEHOLDER_MARKER",
    "ParameterStyle",
    "PlaceholderTranslator",
    "clear_translation_cache",
    "get_translator",
    "translate",
    "translation_cache_size",
)
