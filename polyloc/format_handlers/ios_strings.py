#!/usr/bin/env python3
"""
iOS .strings format handler.

Handles export and import of Apple .strings localization files used in
iOS, macOS, watchOS, and tvOS applications.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .base import FormatHandler, PathLike, PlaceholderPattern, PLACEHOLDER_PATTERNS, make_document, make_unit
from ..xliff.model import XliffDocument

logger = logging.getLogger(__name__)

_PAIR_RE = re.compile(r'"((?:[^"\\]|\\.)*)"\s*=\s*"((?:[^"\\]|\\.)*)"\s*;', re.DOTALL)
_ESCAPE_RE = re.compile(r'\\(.)', re.DOTALL)
_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', '\\': '\\'}


@dataclass
class StringsItem:
    """One key/value pair of a .strings file with its comment."""
    key: str
    value: str
    comment: Optional[str] = None


class IosStringsHandler(FormatHandler):
    """
    Handler for iOS/macOS .strings files.

    .strings format structure:
    ```
    /* Comment about the string */
    "key.name" = "Value text";

    // Another style of comment
    "greeting" = "Hello, %@!";
    ```

    Comments become unit notes; keys become unit ids.
    """

    @property
    def name(self) -> str:
        return "strings"

    @property
    def file_extensions(self) -> list[str]:
        return ["strings"]

    @property
    def placeholder_patterns(self) -> list[PlaceholderPattern]:
        """iOS uses Objective-C/Swift format specifiers."""
        return [
            PLACEHOLDER_PATTERNS['ios'],     # %@, %d, %ld, %f
            PLACEHOLDER_PATTERNS['printf'],  # %s, %d
        ]

    def parse(self, content: str) -> list[StringsItem]:
        """
        Parse .strings content into items.

        Args:
            content: Raw .strings file content

        Returns:
            List of StringsItem objects in file order
        """
        items = []
        current_comment = []

        lines = content.split('\n')
        i = 0

        while i < len(lines):
            line = lines[i].strip()

            # Block comment /* ... */
            if line.startswith('/*'):
                comment_text = line[2:]
                while '*/' not in comment_text and i < len(lines) - 1:
                    i += 1
                    comment_text += '\n' + lines[i]
                current_comment.append(comment_text.split('*/', 1)[0].strip())

            # Line comment // ...
            elif line.startswith('//'):
                current_comment.append(line[2:].strip())

            # Key-value pair, possibly spanning lines: "key" = "value";
            elif line.startswith('"'):
                statement = line
                while (not _PAIR_RE.match(statement) and not statement.rstrip().endswith('";')
                       and i < len(lines) - 1):
                    i += 1
                    statement += '\n' + lines[i]
                match = _PAIR_RE.match(statement)
                if match:
                    items.append(StringsItem(
                        key=self._unescape_string(match.group(1)),
                        value=self._unescape_string(match.group(2)),
                        comment='\n'.join(current_comment) if current_comment else None,
                    ))
                else:
                    logger.warning(f"Unterminated .strings entry: {line[:60]}")
                current_comment = []

            i += 1

        return items

    def _unescape_string(self, s: str) -> str:
        """Unescape .strings file escapes."""
        return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(0)), s)

    def _escape_string(self, s: str) -> str:
        """Escape string for .strings format."""
        return (
            s.replace('\\', '\\\\')
            .replace('"', '\\"')
            .replace('\n', '\\n')
            .replace('\t', '\\t')
        )

    def reconstruct(self, items: list[StringsItem]) -> str:
        """
        Render items as a .strings file.

        Args:
            items: Items in output order

        Returns:
            Complete .strings file content
        """
        blocks = []
        for item in items:
            lines = []
            if item.comment:
                lines.append(f'/* {item.comment} */')
            lines.append(f'"{self._escape_string(item.key)}" = "{self._escape_string(item.value)}";')
            blocks.append('\n'.join(lines))
        return '\n\n'.join(blocks) + '\n'

    def export_document(
        self,
        source_path: PathLike,
        target_path: PathLike,
        source_language: str,
        target_language: str,
        base_path: PathLike,
    ) -> XliffDocument:
        sources = self.parse(Path(source_path).read_text(encoding="utf-8"))
        target_file = Path(target_path)
        targets = {}
        if target_file.exists():
            targets = {item.key: item.value for item in self.parse(target_file.read_text(encoding="utf-8"))}

        units = [
            make_unit(
                item.key,
                item.value,
                targets.get(item.key),
                [item.comment] if item.comment else [],
            )
            for item in sources if item.key
        ]
        return make_document(units, source_path, target_path, source_language, target_language, base_path)

    def import_document(
        self,
        document: XliffDocument,
        source_path: PathLike,
        target_path: PathLike,
    ) -> None:
        items = []
        for xliff_file in document.files:
            for _, unit in xliff_file.iter_units():
                if unit.segment is None:
                    logger.warning(f"No segment in {target_path} for unit {unit.id!r}")
                    continue
                text = self.translated_text(unit, target_path)
                items.append(StringsItem(
                    key=unit.id,
                    # Untranslated strings fall back to the source text
                    value=text if text is not None else unit.segment.source,
                    comment=unit.notes[0].text if unit.notes else None,
                ))

        target_file = Path(target_path)
        target_file.parent.mkdir(parents=True, exist_ok=True)
        target_file.write_text(self.reconstruct(items), encoding="utf-8")
