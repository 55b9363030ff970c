#!/usr/bin/env python3
"""
XLIFF format handler.

For projects that already keep their strings in XLIFF files (one per
language). Both dialects are accepted; a file is written back in the
dialect of the file it was exported from. XLIFF 1.2 files are updated in
place so their headers and tool-specific attributes survive.
"""

import logging
from pathlib import Path

from .base import FormatHandler, PathLike, relative_original
from ..xliff.legacy import apply_to_legacy
from ..xliff.model import LegacyDocument, XliffDocument
from ..xliff.parser import load_document, parse_xliff_path, save_document, save_legacy_document

logger = logging.getLogger(__name__)


class XliffHandler(FormatHandler):
    """Handler for XLIFF 1.2 and 2.0 files."""

    @property
    def name(self) -> str:
        return "xliff"

    @property
    def file_extensions(self) -> list[str]:
        return ["xliff", "xlf"]

    def _template(self, source_path: PathLike, target_path: PathLike) -> Path:
        # an existing target file carries earlier translations
        return Path(target_path) if Path(target_path).exists() else Path(source_path)

    def export_document(
        self,
        source_path: PathLike,
        target_path: PathLike,
        source_language: str,
        target_language: str,
        base_path: PathLike,
    ) -> XliffDocument:
        path = self._template(source_path, target_path)
        document = load_document(path, source_language, target_language)

        if document.target_language is None:
            document.target_language = target_language
        elif document.target_language != target_language:
            raise ValueError(
                f"Target language mismatch in {path}: {document.target_language} vs {target_language}"
            )

        original = relative_original(target_path, base_path)
        for xliff_file in document.files:
            if xliff_file.original is None:
                xliff_file.original = original
        return document

    def import_document(
        self,
        document: XliffDocument,
        source_path: PathLike,
        target_path: PathLike,
    ) -> None:
        template = parse_xliff_path(self._template(source_path, target_path))
        if isinstance(template, LegacyDocument):
            updated = apply_to_legacy(template, document)
            logger.debug(f"Writing {target_path} as XLIFF 1.2 ({updated} translations)")
            save_legacy_document(target_path, template)
        else:
            save_document(target_path, document)
