#!/usr/bin/env python3
"""
Xcode String Catalog (.xcstrings) format handler.

A String Catalog is a single JSON file holding every language of a target,
so the configured path has no ${LANGUAGE} placeholder and each import adds
one language to the file written by the previous one.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Optional

from .base import FormatHandler, PathLike, PlaceholderPattern, PLACEHOLDER_PATTERNS, make_document
from ..xliff.model import STATE_INITIAL, STATE_TRANSLATED, Note, Segment, Unit, XliffDocument

logger = logging.getLogger(__name__)

STATE_CATALOG_TRANSLATED = "translated"


def localized_value(localization: Optional[dict[str, Any]]) -> tuple[Optional[str], Optional[str]]:
    """
    Value and state of one language of a catalog entry.

    Plain strings live in a stringUnit; string sets keep their first value.

    Returns:
        (value, state), either of them None when missing
    """
    if not localization:
        return None, None
    unit = localization.get("stringUnit")
    if unit:
        return unit.get("value"), unit.get("state")
    string_set = localization.get("stringSet")
    if string_set:
        values = string_set.get("values") or [None]
        return values[0], string_set.get("state")
    return None, None


class XcstringsHandler(FormatHandler):
    """
    Handler for Xcode String Catalogs.

    Structure:
    ```json
    {
      "sourceLanguage" : "en",
      "strings" : {
        "Hello, %@!" : {
          "comment" : "Greeting on the start screen",
          "localizations" : {
            "en" : { "stringUnit" : { "state" : "translated", "value" : "Hello, %@!" } },
            "de" : { "stringUnit" : { "state" : "needs_review", "value" : "Hallo, %@!" } }
          }
        }
      },
      "version" : "1.0"
    }
    ```

    Only target strings in state "translated" count as translated; every
    other catalog state ("new", "needs_review", ...) is exported as "initial"
    so the string gets translated again. Keys marked shouldTranslate=false
    are left out.
    """

    @property
    def name(self) -> str:
        return "xcstrings"

    @property
    def file_extensions(self) -> list[str]:
        return ["xcstrings"]

    @property
    def placeholder_patterns(self) -> list[PlaceholderPattern]:
        return [PLACEHOLDER_PATTERNS['ios']]

    def _load(self, path: PathLike) -> dict[str, Any]:
        try:
            catalog = json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid String Catalog {path}: {e}")
        if not isinstance(catalog, dict) or not isinstance(catalog.get("strings", {}), dict):
            raise ValueError(f"Invalid String Catalog {path}: missing strings object")
        return catalog

    def _catalog_path(self, source_path: PathLike, target_path: PathLike) -> Path:
        return Path(target_path) if Path(target_path).exists() else Path(source_path)

    def export_document(
        self,
        source_path: PathLike,
        target_path: PathLike,
        source_language: str,
        target_language: str,
        base_path: PathLike,
    ) -> XliffDocument:
        catalog = self._load(self._catalog_path(source_path, target_path))

        units = []
        for key, entry in catalog.get("strings", {}).items():
            if entry.get("shouldTranslate") is False:
                continue
            localizations = entry.get("localizations") or {}
            source, _ = localized_value(localizations.get(source_language))
            target, state = localized_value(localizations.get(target_language))
            translated = state == STATE_CATALOG_TRANSLATED and bool(target)

            units.append(Unit(
                id=key,
                notes=[Note(text=entry["comment"])] if entry.get("comment") else [],
                segment=Segment(
                    source=source or key,
                    target=target or None,
                    state=STATE_TRANSLATED if translated else STATE_INITIAL,
                ),
            ))
        return make_document(units, source_path, target_path, source_language, target_language, base_path)

    def import_document(
        self,
        document: XliffDocument,
        source_path: PathLike,
        target_path: PathLike,
    ) -> None:
        language = document.target_language
        if not language:
            raise ValueError(f"Cannot import into {target_path}: document has no target language")

        catalog = copy.deepcopy(self._load(self._catalog_path(source_path, target_path)))
        catalog.setdefault("sourceLanguage", document.source_language)
        catalog.setdefault("version", "1.0")
        strings = catalog.setdefault("strings", {})
        uses_string_set = any(
            "stringSet" in ((entry.get("localizations") or {}).get(catalog["sourceLanguage"]) or {})
            for entry in strings.values()
        )

        for xliff_file in document.files:
            for _, unit in xliff_file.iter_units():
                text = self.translated_text(unit, target_path)
                if text is None:
                    continue
                entry = strings.setdefault(unit.id, {})
                if entry.get("localizations") is None:
                    entry["localizations"] = {}
                if uses_string_set:
                    value = {"stringSet": {"state": STATE_CATALOG_TRANSLATED, "values": [text]}}
                else:
                    value = {"stringUnit": {"state": STATE_CATALOG_TRANSLATED, "value": text}}
                entry["localizations"][language] = value

        target_file = Path(target_path)
        target_file.parent.mkdir(parents=True, exist_ok=True)
        # Xcode writes catalogs with " : " separators
        text = json.dumps(catalog, indent=2, ensure_ascii=False, separators=(",", " : "))
        target_file.write_text(text + "\n", encoding="utf-8")
