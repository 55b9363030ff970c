#!/usr/bin/env python3
"""
Localization bundles: the on-disk state of a translation project.

A bundle is a folder with one sub-folder per configured localization
(named after the hash of its id) holding one XLIFF 2.0 file per target
language:

    .polyloc/
      3f2a9c1e/
        de.xliff
        ja.xliff

Exporting writes a fresh bundle and carries over approved translations from
the previous one. Translating updates the bundle in place. Importing writes
the translations back into the project files.
"""

import hashlib
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from .batcher import TokenCount, TokenCounter
from .config import Config, LocalizationConfig
from .entity import extract_entities, merge_prior_translations, write_back
from .format_handlers import FormatRegistry
from .translator.base import Translator
from .translator.orchestrator import ProgressCallback, Reviewer, TranslationOrchestrator, TranslationReport
from .xliff.parser import load_document, save_document

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def localization_folder(localization_id: str) -> str:
    """Bundle sub-folder of a localization: first 8 hex chars of SHA-256 of its id."""
    return hashlib.sha256(localization_id.encode("utf-8")).hexdigest()[:8]


def find_xliff_files(bundle_path: PathLike) -> list[Path]:
    """All .xliff files of a bundle, sorted for a stable processing order."""
    return sorted(Path(bundle_path).rglob("*.xliff"))


def merge_previous_document(path: PathLike, previous_path: PathLike) -> None:
    """
    Carry translations from a previous export into a fresh document.

    Args:
        path: Freshly exported document, rewritten in place
        previous_path: The same document from the previous export
    """
    fresh_doc = load_document(path)
    previous_doc = load_document(previous_path)

    entities = extract_entities([fresh_doc])
    merge_prior_translations(entities, extract_entities([previous_doc]))
    write_back([fresh_doc], entities)
    save_document(path, fresh_doc)


def merge_bundles(bundle_path: PathLike, previous_bundle_path: PathLike) -> None:
    """
    Carry translations from a previous bundle into a fresh one.

    Missing previous bundles or files are skipped; on a first run there is
    nothing to merge.

    Args:
        bundle_path: Fresh bundle, updated in place
        previous_bundle_path: Bundle of the previous export
    """
    bundle_path = Path(bundle_path)
    previous_bundle_path = Path(previous_bundle_path)
    if not previous_bundle_path.is_dir():
        logger.info(f"No previous bundle at {previous_bundle_path}, nothing to merge")
        return

    for path in find_xliff_files(bundle_path):
        previous_path = previous_bundle_path / path.relative_to(bundle_path)
        if not previous_path.exists():
            logger.info(f"No previous version of {path.relative_to(bundle_path)}")
            continue
        logger.info(f"Merging previous translations into {path.relative_to(bundle_path)}")
        merge_previous_document(path, previous_path)


def export_localization_bundle(
    localization: LocalizationConfig,
    base_language: str,
    base_folder: PathLike,
    output_folder: PathLike,
) -> Path:
    """
    Export one localization into <output_folder>/<lang>.xliff files.

    Args:
        localization: Localization to export
        base_language: Source language of the project
        base_folder: Project folder the localization paths are relative to
        output_folder: Folder to write the documents to

    Returns:
        output_folder as Path
    """
    handler = FormatRegistry.get_handler(localization.format)
    base_folder = Path(base_folder)
    output_folder = Path(output_folder)
    source_path = base_folder / localization.path_for(base_language)

    for language in localization.languages:
        if language == base_language:
            continue
        target_path = base_folder / localization.path_for(language)
        logger.info(f"Exporting {target_path}")
        document = handler.export_document(source_path, target_path, base_language, language, base_folder)
        save_document(output_folder / f"{language}.xliff", document)

    return output_folder


def import_localization_bundle(
    localization: LocalizationConfig,
    bundle_path: PathLike,
    base_language: str,
    base_folder: PathLike,
) -> None:
    """
    Write the translated documents of one localization into project files.

    Args:
        localization: Localization to import
        bundle_path: Folder holding <lang>.xliff files of the localization
        base_language: Source language of the project
        base_folder: Project folder the localization paths are relative to
    """
    handler = FormatRegistry.get_handler(localization.format)
    base_folder = Path(base_folder)
    source_path = base_folder / localization.path_for(base_language)

    for language in localization.languages:
        if language == base_language:
            continue
        xliff_path = Path(bundle_path) / f"{language}.xliff"
        if not xliff_path.exists():
            logger.warning(f"Missing {xliff_path}, skipping {language}")
            continue
        target_path = base_folder / localization.path_for(language)
        logger.info(f"Importing {xliff_path} into {target_path}")
        handler.import_document(load_document(xliff_path), source_path, target_path)


def export_localizations(config: Config) -> Path:
    """
    Export every localization and merge the previous bundle into it.

    The new bundle is built in a temporary folder and replaces the export
    folder only once complete.

    Args:
        config: Project configuration

    Returns:
        Path of the bundle (the configured export folder)
    """
    export_path = config.export_path
    staging = Path(tempfile.mkdtemp(prefix="polyloc-export-"))
    try:
        for localization in config.localizations:
            export_localization_bundle(
                localization,
                config.base_language,
                config.base_folder,
                staging / localization_folder(localization.id),
            )
        merge_bundles(staging, export_path)

        if export_path.exists():
            shutil.rmtree(export_path)
        export_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staging), str(export_path))
    finally:
        if staging.exists():
            shutil.rmtree(staging)

    logger.info(f"Exported {len(config.localizations)} localizations to {export_path}")
    return export_path


def import_localizations(config: Config, bundle_path: Optional[PathLike] = None) -> None:
    """Import every localization of a bundle (default: the export folder)."""
    bundle_path = Path(bundle_path) if bundle_path else config.export_path
    for localization in config.localizations:
        import_localization_bundle(
            localization,
            bundle_path / localization_folder(localization.id),
            config.base_language,
            config.base_folder,
        )


async def translate_bundle(
    bundle_path: PathLike,
    service: Translator,
    context: Optional[str] = None,
    reviewer: Optional[Reviewer] = None,
    on_progress: Optional[ProgressCallback] = None,
    count_tokens: Optional[TokenCount] = None,
) -> TranslationReport:
    """
    Translate every document of a bundle in place.

    Documents are rewritten once, after the whole run; batches that failed
    leave their strings untranslated.

    Args:
        bundle_path: Bundle to translate
        service: Translation service
        context: Project description sent with every batch
        reviewer: Interactive review function; None for automatic mode
        on_progress: Receives the progress fraction
        count_tokens: Token counter (default: the service's tokenizer)

    Returns:
        TranslationReport
    """
    settings = await service.fetch_config()
    if count_tokens is None:
        count_tokens = TokenCounter(settings.tokenizer, settings.tokenizer_model)

    paths = find_xliff_files(bundle_path)
    documents = [load_document(path) for path in paths]
    entities = extract_entities(documents)
    logger.info(f"Loaded {len(entities)} strings from {len(paths)} documents")

    orchestrator = TranslationOrchestrator(
        service,
        settings,
        count_tokens,
        context=context,
        reviewer=reviewer,
        on_progress=on_progress,
    )
    report = await orchestrator.run(list(entities.values()))

    write_back(documents, entities)
    for path, document in zip(paths, documents):
        save_document(path, document)
    return report
