#!/usr/bin/env python3
"""
Base classes for format handlers.

FormatHandler is the abstract base class that all format-specific handlers
must implement. A handler exports one project file, in one target language,
into an XLIFF 2.0 interchange document, and imports a translated document
back into the project format.
"""

import hashlib
import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from ..xliff.model import STATE_INITIAL, STATE_TRANSLATED, Note, Segment, Unit, XliffDocument, XliffFile

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class PlaceholderPattern:
    """Pattern definition for placeholder detection."""
    name: str
    pattern: str  # Regex pattern

    def find_all(self, text: str) -> list[str]:
        """Find all placeholders matching this pattern."""
        return [m.group(0) for m in re.finditer(self.pattern, text)]


# Common placeholder patterns across formats
PLACEHOLDER_PATTERNS = {
    'i18next': PlaceholderPattern('i18next', r'{{(\w+)}}'),          # {{name}}
    'icu': PlaceholderPattern('icu', r'\{(\w+)\}'),                   # {name}
    'printf': PlaceholderPattern('printf', r'%(?:\d+\$)?[sd]'),       # %s, %1$s, %d
    'ios': PlaceholderPattern('ios', r'%(?:\d+\$)?(?:@|ld|lu|d|f)'),  # %@, %1$@, %ld
}


def file_id(source_path: PathLike) -> str:
    """Stable <file> id of a project file: SHA-256 of its project-relative path."""
    return hashlib.sha256(str(source_path).encode("utf-8")).hexdigest()


def relative_original(target_path: PathLike, base_path: PathLike) -> str:
    """Target path relative to the project folder, with forward slashes."""
    return Path(os.path.relpath(target_path, base_path)).as_posix()


def make_unit(unit_id: str, source: str, target: Optional[str], notes: Optional[list[str]] = None) -> Unit:
    """
    Build a unit for an exported string.

    A unit with an existing translation starts as "translated"; one without
    has no target and starts as "initial".
    """
    return Unit(
        id=unit_id,
        notes=[Note(text=n) for n in (notes or [])],
        segment=Segment(
            source=source,
            target=target if target else None,
            state=STATE_TRANSLATED if target else STATE_INITIAL,
        ),
    )


def make_document(
    units: list[Unit],
    source_path: PathLike,
    target_path: PathLike,
    source_language: str,
    target_language: str,
    base_path: PathLike,
) -> XliffDocument:
    """Wrap units into a single-file XLIFF 2.0 document."""
    return XliffDocument(
        source_language=source_language,
        target_language=target_language,
        files=[XliffFile(
            id=file_id(relative_original(source_path, base_path)),
            original=relative_original(target_path, base_path),
            elements=list(units),
        )],
    )


class FormatHandler(ABC):
    """
    Abstract base class for format-specific handlers.

    Each format handler converts between one localization file format and
    the XLIFF interchange document for a single target language.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Format name as used in the configuration file."""
        pass

    @property
    @abstractmethod
    def file_extensions(self) -> list[str]:
        """List of file extensions this handler supports (without dot)."""
        pass

    @property
    def placeholder_patterns(self) -> list[PlaceholderPattern]:
        """
        Placeholder patterns used by this format.

        Override in subclasses to specify format-specific patterns.
        Default returns empty list (no placeholder validation).
        """
        return []

    @abstractmethod
    def export_document(
        self,
        source_path: PathLike,
        target_path: PathLike,
        source_language: str,
        target_language: str,
        base_path: PathLike,
    ) -> XliffDocument:
        """
        Export a project file into an interchange document.

        Args:
            source_path: File holding the source language strings
            target_path: File holding the target language strings (may not exist)
            source_language: Source language code
            target_language: Target language code
            base_path: Project folder, used for the document's original path

        Returns:
            XliffDocument for the target language
        """
        pass

    @abstractmethod
    def import_document(
        self,
        document: XliffDocument,
        source_path: PathLike,
        target_path: PathLike,
    ) -> None:
        """
        Write a translated interchange document into the project format.

        Args:
            document: Translated document
            source_path: File holding the source language strings
            target_path: File to write
        """
        pass

    def extract_placeholders(self, text: str) -> list[str]:
        """
        Extract all placeholders from text using this format's patterns.

        Args:
            text: Text to extract placeholders from

        Returns:
            List of placeholder strings found (deduplicated, order preserved)
        """
        placeholders = []
        for pattern in self.placeholder_patterns:
            placeholders.extend(pattern.find_all(text))
        return list(dict.fromkeys(placeholders))

    def validate_placeholders(
        self,
        source: str,
        translation: str,
    ) -> list[str]:
        """
        Validate that all source placeholders exist in translation.

        Args:
            source: Original source text
            translation: Translated text

        Returns:
            List of missing placeholder error messages
        """
        missing = set(self.extract_placeholders(source)) - set(self.extract_placeholders(translation))
        return [f"Missing placeholder in translation: {p}" for p in sorted(missing)]

    def translated_text(self, unit: Unit, location: PathLike) -> Optional[str]:
        """
        Target text of a unit, or None when it has no usable translation.

        Missing placeholders are reported but do not reject the translation.
        """
        segment = unit.segment
        if segment is None:
            logger.warning(f"No segment in {location} for unit {unit.id!r}")
            return None
        if segment.effective_state == STATE_INITIAL or segment.target is None:
            logger.warning(f"Unit {unit.id!r} in {location} is not translated, skip merging")
            return None
        for error in self.validate_placeholders(segment.source, segment.target):
            logger.warning(f"{location} [{unit.id}]: {error}")
        return segment.target


class FormatRegistry:
    """Registry of available format handlers."""

    _handlers: dict[str, type[FormatHandler]] = {}

    @classmethod
    def register(cls, handler_class: type[FormatHandler]) -> None:
        """Register a format handler class."""
        # Create instance to get properties
        handler = handler_class()
        cls._handlers[handler.name.lower()] = handler_class

    @classmethod
    def get_handler(cls, name: str) -> FormatHandler:
        """Get handler instance by name."""
        name_lower = name.lower()
        if name_lower not in cls._handlers:
            available = ', '.join(cls._handlers.keys())
            raise ValueError(f"Unknown format: {name}. Available: {available}")
        return cls._handlers[name_lower]()

    @classmethod
    def list_formats(cls) -> list[dict[str, Any]]:
        """List all registered formats with their extensions."""
        result = []
        for name, handler_class in cls._handlers.items():
            handler = handler_class()
            result.append({
                'name': handler.name,
                'extensions': handler.file_extensions,
            })
        return result
