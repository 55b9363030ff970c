#!/usr/bin/env python3
"""
JSON format handler for i18next/react-intl style localization files.

Nested objects are flattened to one unit per string leaf. The unit id is
the key path, each key percent-encoded and joined with "/".
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any
from urllib.parse import unquote

from .base import FormatHandler, PathLike, PlaceholderPattern, PLACEHOLDER_PATTERNS, make_document, make_unit
from ..entity import encode_key_component
from ..xliff.model import XliffDocument

logger = logging.getLogger(__name__)


def path_to_unit_id(path: list[str]) -> str:
    """Unit id of a key path."""
    return "/".join(encode_key_component(p) for p in path)


def unit_id_to_path(unit_id: str) -> list[str]:
    """Key path of a unit id."""
    return [unquote(p) for p in unit_id.split("/")]


class JsonHandler(FormatHandler):
    """
    Handler for JSON localization files (i18next, react-intl, vue-i18n).

    Supports structures like:
    ```json
    {
      "welcome": "Welcome",
      "user": {
        "greeting": "Hello {{name}}",
        "messages": ["First", "Second"]
      }
    }
    ```

    Only string leaves are translated. On import the source file provides
    the structure, so arrays and non-string values survive unchanged.
    """

    @property
    def name(self) -> str:
        return "json"

    @property
    def file_extensions(self) -> list[str]:
        return ["json"]

    @property
    def placeholder_patterns(self) -> list[PlaceholderPattern]:
        """JSON files commonly use i18next and ICU placeholders."""
        return [
            PLACEHOLDER_PATTERNS['i18next'],  # {{name}}
            PLACEHOLDER_PATTERNS['icu'],       # {name}
        ]

    def _load(self, path: PathLike) -> Any:
        try:
            return json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}")

    def _flatten(self, obj: Any, path: list[str], leaves: list[tuple[list[str], str]]) -> None:
        """
        Recursively collect string leaves with their key paths.

        Args:
            obj: Current object (dict, list, or scalar)
            path: Keys leading to obj
            leaves: List to append (path, value) pairs to
        """
        if isinstance(obj, dict):
            for key, value in obj.items():
                self._flatten(value, path + [str(key)], leaves)
        elif isinstance(obj, list):
            for i, item in enumerate(obj):
                self._flatten(item, path + [str(i)], leaves)
        elif isinstance(obj, str):
            leaves.append((path, obj))
        # Numbers, booleans and null are not translatable

    def _lookup(self, obj: Any, path: list[str]) -> Any:
        for key in path:
            if isinstance(obj, dict):
                obj = obj.get(key)
            elif isinstance(obj, list) and key.isdigit() and int(key) < len(obj):
                obj = obj[int(key)]
            else:
                return None
        return obj

    def _set_nested(self, obj: Any, path: list[str], value: str) -> bool:
        """
        Replace the value at path inside obj.

        Returns:
            False when the path does not exist in obj
        """
        for key in path[:-1]:
            obj = self._lookup(obj, [key])
            if obj is None:
                return False
        final_key = path[-1]
        if isinstance(obj, dict) and final_key in obj:
            obj[final_key] = value
            return True
        if isinstance(obj, list) and final_key.isdigit() and int(final_key) < len(obj):
            obj[int(final_key)] = value
            return True
        return False

    def export_document(
        self,
        source_path: PathLike,
        target_path: PathLike,
        source_language: str,
        target_language: str,
        base_path: PathLike,
    ) -> XliffDocument:
        sources = self._load(source_path)
        targets = self._load(target_path) if Path(target_path).exists() else {}

        leaves: list[tuple[list[str], str]] = []
        self._flatten(sources, [], leaves)

        units = []
        for path, value in leaves:
            target = self._lookup(targets, path)
            units.append(make_unit(
                path_to_unit_id(path),
                value,
                target if isinstance(target, str) else None,
            ))
        return make_document(units, source_path, target_path, source_language, target_language, base_path)

    def import_document(
        self,
        document: XliffDocument,
        source_path: PathLike,
        target_path: PathLike,
    ) -> None:
        result = copy.deepcopy(self._load(source_path))

        for xliff_file in document.files:
            for _, unit in xliff_file.iter_units():
                text = self.translated_text(unit, target_path)
                if text is None:
                    # Untranslated strings keep the source text
                    continue
                if not self._set_nested(result, unit_id_to_path(unit.id), text):
                    logger.warning(f"Key {unit.id!r} no longer exists in {source_path}")

        target_file = Path(target_path)
        target_file.parent.mkdir(parents=True, exist_ok=True)
        target_file.write_text(json.dumps(result, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
