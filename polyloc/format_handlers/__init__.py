#!/usr/bin/env python3
"""
Format handlers for localization file formats.

Supported formats:
- text: Plain text files, one string per file
- strings: Apple .strings files
- json: i18next/react-intl style nested JSON
- xliff: XLIFF 1.2 / 2.0 files
- xcstrings: Xcode String Catalogs
"""

from .base import (
    FormatHandler,
    FormatRegistry,
    PlaceholderPattern,
    PLACEHOLDER_PATTERNS,
    file_id,
)
from .ios_strings import IosStringsHandler
from .json_handler import JsonHandler
from .text import TextHandler
from .xcstrings import XcstringsHandler
from .xliff_handler import XliffHandler

# Register handlers by format name
FormatRegistry.register(TextHandler)
FormatRegistry.register(IosStringsHandler)
FormatRegistry.register(JsonHandler)
FormatRegistry.register(XliffHandler)
FormatRegistry.register(XcstringsHandler)

__all__ = [
    'FormatHandler',
    'FormatRegistry',
    'PlaceholderPattern',
    'PLACEHOLDER_PATTERNS',
    'IosStringsHandler',
    'JsonHandler',
    'TextHandler',
    'XcstringsHandler',
    'XliffHandler',
    'file_id',
]
