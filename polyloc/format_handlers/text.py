#!/usr/bin/env python3
"""
Plain text format handler.

The whole file is one translatable string (release notes, store
descriptions, ...).
"""

import logging
from pathlib import Path

from .base import FormatHandler, PathLike, file_id, make_document, make_unit, relative_original
from ..xliff.model import XliffDocument

logger = logging.getLogger(__name__)


class TextHandler(FormatHandler):
    """Handler for plain text files: one file, one unit."""

    @property
    def name(self) -> str:
        return "text"

    @property
    def file_extensions(self) -> list[str]:
        return ["txt", "text", "md"]

    def export_document(
        self,
        source_path: PathLike,
        target_path: PathLike,
        source_language: str,
        target_language: str,
        base_path: PathLike,
    ) -> XliffDocument:
        source = Path(source_path).read_text(encoding="utf-8")
        target_file = Path(target_path)
        target = target_file.read_text(encoding="utf-8") if target_file.exists() else ""

        # The unit shares the file's id
        unit = make_unit(file_id(relative_original(source_path, base_path)), source, target)
        return make_document([unit], source_path, target_path, source_language, target_language, base_path)

    def import_document(
        self,
        document: XliffDocument,
        source_path: PathLike,
        target_path: PathLike,
    ) -> None:
        units = [u for f in document.files for _, u in f.iter_units()]
        if not units:
            logger.warning(f"No unit to import into {target_path}")
            return

        text = self.translated_text(units[0], target_path)
        if text is None:
            return

        target_file = Path(target_path)
        target_file.parent.mkdir(parents=True, exist_ok=True)
        target_file.write_text(text, encoding="utf-8")
